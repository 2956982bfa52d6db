"""Database seeder: categories, an admin account, members and sample posts.

The admin created here is the only way to obtain ``role=admin``; the public
registration endpoint always creates members.
"""
import argparse
import asyncio
import random
import time

from sqlalchemy import select

from blog_api.database import Base, async_session, engine
from blog_api.models import ROLE_ADMIN, Category, Comment, Post, User
from blog_api.security import hash_password
from blog_api.services.post_service import normalize_tags
from blog_api.services.slugs import assign_slug

CATEGORIES = {
    "Engineering": "Build notes and deep dives",
    "Product": "Roadmaps and release notes",
    "Culture": "How we work",
}
TAGS = ["python", "fastapi", "postgresql", "redis", "testing", "performance", "security"]


async def _ensure_admin(session, email: str, password: str) -> User:
    # Login looks accounts up by lowercased email.
    email = email.strip().lower()
    admin = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if admin is None:
        admin = User(name="Administrator", email=email, password_hash=hash_password(password))
        session.add(admin)
    admin.role = ROLE_ADMIN
    await session.flush()
    return admin


async def seed(admin_email: str, admin_password: str, num_posts: int, reset: bool) -> None:
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        admin = await _ensure_admin(session, admin_email, admin_password)
        print(f"  Admin: {admin.email} ({admin.id})")

        categories = []
        for name, description in CATEGORIES.items():
            category = (
                await session.execute(select(Category).where(Category.name == name))
            ).scalar_one_or_none()
            if category is None:
                category = Category(description=description)
                assign_slug(category, "name", name)
                session.add(category)
            categories.append(category)
        await session.flush()
        print(f"  Categories: {len(categories)}")

        members = []
        for i in range(5):
            email = f"member{i}@example.com"
            member = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if member is None:
                member = User(name=f"Member {i}", email=email, password_hash=hash_password("password"))
                session.add(member)
            members.append(member)
        await session.flush()

        created = 0
        for i in range(num_posts):
            post = Post(
                content=f"Body of sample post {i}. " * 10,
                excerpt=f"Sample post {i}",
                tags=normalize_tags(random.sample(TAGS, k=random.randint(1, 3))),
                is_published=random.random() > 0.1,
                category_id=random.choice(categories).id,
                author_id=random.choice(members).id,
            )
            assign_slug(post, "title", f"Sample post {i} on {random.choice(TAGS)}")
            exists = (
                await session.execute(select(Post.id).where(Post.slug == post.slug))
            ).scalar_one_or_none()
            if exists:
                continue
            session.add(post)
            await session.flush()
            for _ in range(random.randint(0, 3)):
                session.add(Comment(content="Thanks for sharing!", post_id=post.id, author_id=random.choice(members).id))
            created += 1

        await session.commit()

    print(f"Seeded {created} posts in {time.perf_counter() - start:.1f}s")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--admin-email", default="admin@example.com")
    parser.add_argument("--admin-password", required=True)
    parser.add_argument("--posts", type=int, default=20, help="Number of sample posts")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    args = parser.parse_args()
    asyncio.run(seed(args.admin_email, args.admin_password, args.posts, args.reset))


if __name__ == "__main__":
    main()

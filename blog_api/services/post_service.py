"""
Post service: business logic for the Post aggregate.

Design notes
------------
- Posts are addressed by id or slug; every lookup goes through
  ``resolver.resolve``.
- The view counter is bumped by a single ``UPDATE ... SET view_count =
  view_count + 1`` run from a background task with its own session.  It
  never reads the row first, so concurrent readers cannot lose increments,
  and every failure is swallowed because counting is best-effort.
- Slugs are assigned by ``slugs.assign_slug`` before flush.  The existence
  check before insert/update is only a fast path; the unique index on
  ``posts.slug`` is the authority and its violation becomes ``DuplicateSlug``.
- Update and delete are gated by ``permissions.authorize``.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.
"""
import logging

from sqlalchemy import String, delete, func, literal_column, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload, selectinload

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.errors import DuplicateSlug, ValidationFailed
from blog_api.models import Category, Comment, Post, User
from blog_api.schemas import PostCreate, PostUpdate
from blog_api.services.permissions import authorize
from blog_api.services.resolver import resolve
from blog_api.services.slugs import assign_slug

logger = logging.getLogger(__name__)

# Fields an update may overwrite directly; category is handled separately.
UPDATABLE_FIELDS: tuple[str, ...] = (
    "title",
    "content",
    "excerpt",
    "featured_image",
    "tags",
    "is_published",
)


def _summary_options():
    return (
        joinedload(Post.author).load_only(User.id, User.name),
        joinedload(Post.category),
    )


def _detail_options():
    return _summary_options() + (
        selectinload(Post.comments).joinedload(Comment.author).load_only(User.id, User.name),
    )


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _author_to_dict(author: User | None) -> dict | None:
    if author is None:
        return None
    return {"id": author.id, "name": author.name}


def _post_to_dict(post: Post) -> dict:
    """Serialise a Post for list views (no content, no comments)."""
    category = post.category
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "featured_image": post.featured_image,
        "tags": list(post.tags or []),
        "is_published": post.is_published,
        "view_count": post.view_count,
        "author": _author_to_dict(post.author),
        "category": (
            {"id": category.id, "name": category.name, "slug": category.slug}
            if category is not None
            else None
        ),
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
    }


def _post_detail_to_dict(post: Post) -> dict:
    data = _post_to_dict(post)
    data["content"] = post.content
    data["comments"] = [comment_to_dict(c) for c in post.comments]
    return data


def comment_to_dict(comment: Comment) -> dict:
    return {
        "author": _author_to_dict(comment.author),
        "content": comment.content,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip tags, drop blanks and repeats, keep first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


async def _load_post(db: AsyncSession, post_id: str) -> Post:
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(*_detail_options())
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).scalar_one()


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: str | None = None) -> bool:
    q = select(Post.id).where(Post.slug == slug)
    if exclude_id is not None:
        q = q.where(Post.id != exclude_id)
    # A pending slug change must reach the database through _flush_post only.
    with db.no_autoflush:
        return (await db.execute(q.limit(1))).scalar_one_or_none() is not None


async def _flush_post(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateSlug("A post with this title already exists") from exc


def search_document():
    """
    ``to_tsvector('english', title || ' ' || content)`` rendered with
    literals only, so it matches the ix_posts_search GIN index expression.
    """
    return func.to_tsvector(
        literal_column("'english'"),
        Post.title + literal_column("' '", String) + Post.content,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_posts(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    category: str | None = None,
) -> dict:
    """
    Return one page of posts, drafts included, newest first.

    *category* may be an id or a slug.  A filter that resolves to nothing is
    ignored and the unfiltered page is returned.
    """
    category_id = None
    if category:
        found = await resolve(db, Category, category)
        if found is not None:
            category_id = found.id

    cache_key = cache.posts_list_key(page, limit, category_id)
    cached = await cache.get(cache_key)
    if cached:
        return cached

    conditions = []
    if category_id is not None:
        conditions.append(Post.category_id == category_id)

    total: int = (
        await db.execute(select(func.count()).select_from(Post).where(*conditions))
    ).scalar_one()

    q = (
        select(Post)
        .where(*conditions)
        .options(*_summary_options())
        .order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = (await db.execute(q)).scalars().all()

    response = {
        "posts": [_post_to_dict(p) for p in posts],
        "page": page,
        "limit": limit,
        "total": total,
    }
    await cache.set(cache_key, response, ttl=settings.CACHE_TTL_LIST)
    return response


async def get_post(db: AsyncSession, id_or_slug: str) -> dict | None:
    """
    Return the detail dict (content and comments included) for the post
    addressed by *id_or_slug*, or None.  Does not count the view; the caller
    dispatches ``increment_view_count`` once the read has succeeded.
    """
    post = await resolve(db, Post, id_or_slug, *_detail_options())
    if post is None:
        return None
    return _post_detail_to_dict(post)


async def search_posts(db: AsyncSession, q: str, limit: int | None = None) -> list[dict]:
    """
    Text search over all posts, capped at ``settings.SEARCH_LIMIT``.

    PostgreSQL uses its full-text matcher; other backends fall back to a
    case-insensitive substring match on any term.
    """
    terms = q.split()
    if not terms:
        return []

    if db.get_bind().dialect.name == "postgresql":
        match = search_document().op("@@")(func.plainto_tsquery("english", q))
    else:
        match = or_(
            *(
                or_(Post.title.icontains(term, autoescape=True), Post.content.icontains(term, autoescape=True))
                for term in terms
            )
        )

    stmt = (
        select(Post)
        .where(match)
        .options(*_summary_options())
        .order_by(Post.created_at.desc())
        .limit(limit or settings.SEARCH_LIMIT)
    )
    return [_post_to_dict(p) for p in (await db.execute(stmt)).scalars().all()]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_post(db: AsyncSession, author: User, data: PostCreate) -> dict:
    """
    Create a post owned by *author*.

    The category must resolve (by id or slug); otherwise the write is
    rejected with ``ValidationFailed``.
    """
    category = await resolve(db, Category, data.category)
    if category is None:
        raise ValidationFailed("Invalid category")

    post = Post(
        content=data.content,
        excerpt=data.excerpt,
        featured_image=data.featured_image,
        tags=normalize_tags(data.tags),
        is_published=data.is_published,
        category_id=category.id,
        author_id=author.id,
    )
    assign_slug(post, "title", data.title.strip())
    if await _slug_taken(db, post.slug):
        raise DuplicateSlug("A post with this title already exists")

    db.add(post)
    await _flush_post(db)
    logger.info("Post %s created by %s", post.id, author.id)

    await cache.invalidate_posts()
    return _post_detail_to_dict(await _load_post(db, post.id))


async def update_post(db: AsyncSession, actor: User, id_or_slug: str, data: PostUpdate) -> dict | None:
    """
    Apply an allow-listed partial update and return the updated detail dict.

    Returns None when the post does not exist; raises ``Forbidden`` when
    *actor* is neither the author nor an admin.  The slug is re-derived only
    when the title actually changes.  A category that does not resolve is
    ignored and the post keeps its current one.
    """
    post = await resolve(db, Post, id_or_slug)
    if post is None:
        return None
    authorize(actor, post)

    changes = data.model_dump(exclude_unset=True)
    category_ref = changes.pop("category", None)

    # Resolve before touching the post so the lookup cannot autoflush a half-applied update.
    if category_ref:
        category = await resolve(db, Category, category_ref)
        if category is not None:
            post.category_id = category.id
        else:
            logger.debug("Ignoring unresolved category %r on post %s", category_ref, post.id)

    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field == "title":
            if assign_slug(post, "title", value.strip()) and await _slug_taken(db, post.slug, post.id):
                raise DuplicateSlug("A post with this title already exists")
        elif field == "tags":
            post.tags = normalize_tags(value)
        else:
            setattr(post, field, value)

    await _flush_post(db)
    await cache.invalidate_posts()
    return _post_detail_to_dict(await _load_post(db, post.id))


async def delete_post(db: AsyncSession, actor: User, id_or_slug: str) -> bool:
    """
    Delete the post and its comments.

    Returns False when the post does not exist; raises ``Forbidden`` when
    *actor* may not modify it.
    """
    post = await resolve(db, Post, id_or_slug)
    if post is None:
        return False
    authorize(actor, post)

    await db.execute(delete(Comment).where(Comment.post_id == post.id))
    await db.delete(post)
    await db.flush()
    logger.info("Post %s deleted by %s", post.id, actor.id)

    await cache.invalidate_posts()
    return True


async def increment_view_count(session_factory: async_sessionmaker[AsyncSession], post_id: str) -> None:
    """
    Add one to the post's view counter in place.

    Runs detached from the request that served the post, in its own session.
    The statement leaves ``updated_at`` untouched, and any failure is logged
    at debug level and dropped.
    """
    stmt = (
        update(Post)
        .where(Post.id == post_id)
        .values(view_count=Post.view_count + 1, updated_at=Post.updated_at)
        .execution_options(synchronize_session=False)
    )
    try:
        async with session_factory() as session:
            await session.execute(stmt)
            await session.commit()
    except Exception as exc:
        logger.debug("View count update for post %s dropped: %s", post_id, exc)

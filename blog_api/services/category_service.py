"""
Category service: listing and creation.

The name lookup before insert is a fast path for the common duplicate; two
concurrent creations can both pass it, so the unique indexes on ``name`` and
``slug`` decide the winner and the loser's ``IntegrityError`` is translated
into ``DuplicateName`` / ``DuplicateSlug``.  Translating it rolls back the
request transaction; creation is the only write in it.
"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import CATEGORIES_KEY, cache
from blog_api.config import settings
from blog_api.errors import DuplicateName, DuplicateSlug
from blog_api.models import Category
from blog_api.schemas import CategoryCreate
from blog_api.services.slugs import assign_slug


def category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "created_at": category.created_at.isoformat() if category.created_at else None,
        "updated_at": category.updated_at.isoformat() if category.updated_at else None,
    }


def duplicate_error_for(exc: IntegrityError) -> DuplicateName | DuplicateSlug:
    """Pick the conflict type from the violated constraint's name."""
    # SQLite reports "categories.slug"; PostgreSQL names the index "ix_categories_slug".
    detail = str(exc.orig).lower()
    if "categories.slug" in detail or "categories_slug" in detail:
        return DuplicateSlug("Category slug already exists")
    return DuplicateName("Category already exists")


async def _find_by_name(db: AsyncSession, name: str) -> Category | None:
    result = await db.execute(select(Category).where(Category.name == name))
    return result.scalar_one_or_none()


async def get_categories(db: AsyncSession) -> list[dict]:
    """Return every category ordered by name (cached)."""
    cached = await cache.get(CATEGORIES_KEY)
    if cached is not None:
        return cached

    result = await db.execute(select(Category).order_by(Category.name))
    categories = [category_to_dict(c) for c in result.scalars().all()]
    await cache.set(CATEGORIES_KEY, categories, ttl=settings.CACHE_TTL_CATEGORIES)
    return categories


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    name = data.name.strip()
    if await _find_by_name(db, name) is not None:
        raise DuplicateName("Category already exists")

    category = Category(description=data.description)
    assign_slug(category, "name", name)
    db.add(category)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Both indexes can fail at once and the backend reports only one;
        # a committed row with the same name makes it a name conflict.
        await db.rollback()
        if await _find_by_name(db, name) is not None:
            raise DuplicateName("Category already exists") from exc
        raise duplicate_error_for(exc) from exc

    await cache.invalidate_categories()
    return category_to_dict(category)

"""
Identifier resolution: one path parameter, two ways to address a record.

Callers may pass either the canonical 24-hex-digit id or the record's slug.
ID-shaped strings are tried as an id first and fall back to a slug lookup,
because a slug can legitimately look like an id.  Anything else goes straight
to the slug lookup.
"""
import re
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import OBJECT_ID_LENGTH

_OBJECT_ID_RE = re.compile(rf"[0-9a-fA-F]{{{OBJECT_ID_LENGTH}}}")

T = TypeVar("T")


def looks_like_object_id(value: str) -> bool:
    return _OBJECT_ID_RE.fullmatch(value) is not None


async def resolve(db: AsyncSession, model: type[T], id_or_slug: str | None, *options) -> T | None:
    """
    Return the *model* row addressed by *id_or_slug*, or None.

    *options* are loader options (``selectinload(...)``) applied to whichever
    lookup succeeds.
    """
    if not id_or_slug:
        return None

    if looks_like_object_id(id_or_slug):
        q = select(model).where(model.id == id_or_slug.lower()).options(*options)
        record = (await db.execute(q)).scalar_one_or_none()
        if record is not None:
            return record

    q = select(model).where(model.slug == id_or_slug).options(*options)
    return (await db.execute(q)).scalar_one_or_none()

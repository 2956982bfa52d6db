"""
Slug derivation and assignment.

``assign_slug`` is the explicit pre-persistence step that write paths call
before flushing.  It only touches the slug when the source field actually
changes, so saving a post with an unchanged title keeps its slug even if
every other field changed.  Uniqueness is not checked here: the unique index
on the slug column is the authority, and services translate its violation
into ``DuplicateSlug``.
"""
import re

from sqlalchemy import inspect

from blog_api.errors import ValidationFailed

_SLUG_STRIP_RE = re.compile(r"[^\w ]", re.ASCII)
_SLUG_SPACE_RE = re.compile(r" +")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase, hyphen-separated slug for *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower()).strip()
    return _SLUG_SPACE_RE.sub("-", text)


def assign_slug(instance, source_field: str, value: str) -> bool:
    """
    Set ``instance.<source_field>`` to *value* and re-derive ``instance.slug``
    when the value changed (or the instance has never been persisted).

    Returns True when the slug was (re)assigned.
    """
    is_new = inspect(instance).transient or inspect(instance).pending
    if not is_new and getattr(instance, source_field) == value:
        return False

    slug = slugify(value)
    if not slug:
        raise ValidationFailed(f"{source_field.capitalize()} must contain at least one letter or digit")

    setattr(instance, source_field, value)
    instance.slug = slug
    return True

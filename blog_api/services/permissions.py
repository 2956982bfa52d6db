"""
Ownership-or-role authorization for post mutations.

Only update and delete go through ``authorize``.  Commenting is open to any
authenticated user and view counting to any caller; those paths must not
call it.
"""
from blog_api.errors import Forbidden
from blog_api.models import Post, User


def can_modify(actor: User, post: Post) -> bool:
    return actor.id == post.author_id or actor.is_admin


def authorize(actor: User, post: Post) -> None:
    """Raise ``Forbidden`` unless *actor* owns *post* or is an admin."""
    if not can_modify(actor, post):
        raise Forbidden("Not authorized")

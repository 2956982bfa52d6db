"""
Comment service: append-only comments on a Post.

Each comment is its own row, so appending is a single INSERT: concurrent
appends to the same post cannot overwrite one another, and the
autoincrement id records the order they landed in.  Any authenticated user
may comment; ownership of the post is deliberately not checked.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import NotFound
from blog_api.models import Comment, Post, User
from blog_api.schemas import CommentCreate
from blog_api.services.post_service import comment_to_dict
from blog_api.services.resolver import resolve


async def add_comment(
    db: AsyncSession,
    author: User,
    id_or_slug: str,
    data: CommentCreate,
) -> dict | None:
    """
    Append a comment by *author* to the post addressed by *id_or_slug*.

    Returns the serialised comment, or None when the post does not exist.
    """
    post = await resolve(db, Post, id_or_slug)
    if post is None:
        return None

    comment = Comment(content=data.content, post_id=post.id, author_id=author.id)
    comment.author = author
    db.add(comment)
    try:
        await db.flush()
    except IntegrityError as exc:
        # The post was deleted between the lookup and the insert.
        raise NotFound("Post not found") from exc

    return comment_to_dict(comment)

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blog_api.database import get_db, get_session_factory
from blog_api.dependencies import PaginationParams, get_current_user
from blog_api.errors import NotFound
from blog_api.models import User
from blog_api.schemas import CommentCreate, PostCreate, PostPage, PostUpdate
from blog_api.services import comment_service, post_service

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=PostPage)
async def list_posts(
    pagination: PaginationParams = Depends(),
    category: str | None = Query(None, description="Category id or slug."),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_posts(db, pagination.page, pagination.limit, category)


# Declared before "/{id_or_slug}" so "search" is not taken for a slug.
@router.get("/search")
async def search_posts(q: str = Query(""), db: AsyncSession = Depends(get_db)):
    return await post_service.search_posts(db, q)


@router.get("/{id_or_slug}")
async def get_post(
    id_or_slug: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    post = await post_service.get_post(db, id_or_slug)
    if not post:
        raise NotFound("Post not found")
    # Counted after the response is sent; the reader never waits on it.
    background_tasks.add_task(post_service.increment_view_count, session_factory, post["id"])
    return post


@router.post("", status_code=201)
async def create_post(
    data: PostCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await post_service.create_post(db, user, data)


@router.put("/{id_or_slug}")
async def update_post(
    id_or_slug: str,
    data: PostUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    post = await post_service.update_post(db, user, id_or_slug, data)
    if not post:
        raise NotFound("Post not found")
    return post


@router.delete("/{id_or_slug}")
async def delete_post(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    deleted = await post_service.delete_post(db, user, id_or_slug)
    if not deleted:
        raise NotFound("Post not found")
    return {"message": "Post deleted"}


@router.post("/{id_or_slug}/comments", status_code=201)
async def add_comment(
    id_or_slug: str,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    comment = await comment_service.add_comment(db, user, id_or_slug, data)
    if not comment:
        raise NotFound("Post not found")
    return {"message": "Comment added", "comment": comment}

import logging
from functools import lru_cache

from fastapi import Depends, Header, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from blog_api.config import settings
from blog_api.database import get_db
from blog_api.errors import InvalidToken, Unauthenticated
from blog_api.models import User
from blog_api.security import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination query parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    limit:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    offset:
        Computed SQL OFFSET derived from *page* and *limit*.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Number of posts per page.",
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@lru_cache
def get_token_service() -> TokenService:
    """The process-wide token service, built once from the settings object."""
    return TokenService.from_settings(settings)


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("No token provided")
    token = authorization[len(BEARER_PREFIX):]
    if not token or " " in token:
        raise Unauthenticated("No token provided")
    return token


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """
    Authentication gate for protected routes.

    Accepts only ``Authorization: Bearer <token>``, verifies the token and
    loads the live user it names with the password hash deferred (and
    unloadable).  Any failure is a 401 before the route handler runs.  The
    user is also stored on ``request.state.user``.
    """
    token = _extract_bearer_token(authorization)

    try:
        user_id = tokens.verify(token)
    except InvalidToken as exc:
        logger.debug("Rejected bearer token: %s", exc)
        raise Unauthenticated("Token verification failed") from exc

    q = select(User).where(User.id == user_id).options(defer(User.password_hash, raiseload=True))
    user = (await db.execute(q)).scalar_one_or_none()
    if user is None:
        raise Unauthenticated("Invalid token")

    request.state.user = user
    return user

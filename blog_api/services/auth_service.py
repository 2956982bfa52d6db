"""
Account service: registration and password login.

Email uniqueness is enforced by the unique index on ``users.email``; the
lookup before insert only short-circuits the common case.  Both paths return
the public user view plus a freshly issued bearer token; the password hash
never leaves this module.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import DuplicateEmail, ValidationFailed
from blog_api.models import User
from blog_api.schemas import LoginRequest, RegisterRequest
from blog_api.security import TokenService, hash_password, verify_password

logger = logging.getLogger(__name__)


def user_to_dict(user: User) -> dict:
    """Public view of a user; never includes the credential."""
    return {"id": user.id, "name": user.name, "email": user.email}


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def register(db: AsyncSession, tokens: TokenService, data: RegisterRequest) -> dict:
    email = _normalize_email(data.email)

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateEmail("User already exists")

    user = User(name=data.name.strip(), email=email, password_hash=hash_password(data.password))
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateEmail("User already exists") from exc

    logger.info("Registered user %s", user.id)
    return {"user": user_to_dict(user), "token": tokens.issue(user.id)}


async def login(db: AsyncSession, tokens: TokenService, data: LoginRequest) -> dict:
    result = await db.execute(select(User).where(User.email == _normalize_email(data.email)))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise ValidationFailed("Invalid credentials")

    return {"user": user_to_dict(user), "token": tokens.issue(user.id)}

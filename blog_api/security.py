"""
Credential primitives: salted password hashing and signed bearer tokens.

Tokens are stateless HS256 JWTs carrying the user id in ``sub`` and an
absolute ``exp``.  There is no revocation list, so a leaked token stays valid
until it expires.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from blog_api.config import Settings
from blog_api.errors import InvalidToken

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


class TokenService:
    """Issues and verifies time-limited bearer tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            ttl=timedelta(days=settings.TOKEN_TTL_DAYS),
        )

    def __repr__(self) -> str:
        return f"TokenService(algorithm={self._algorithm!r}, ttl={self._ttl!r})"

    def issue(self, user_id: str, now: datetime | None = None) -> str:
        """Return a signed token for *user_id* expiring ``ttl`` after *now*."""
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """
        Return the user id embedded in *token*.

        Raises ``InvalidToken`` when the signature does not match, the token
        is malformed or expired, or it carries no subject.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc

        user_id = claims.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidToken("Token has no subject")
        return user_id

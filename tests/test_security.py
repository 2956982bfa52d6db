"""Token service and password hashing."""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from blog_api.errors import InvalidToken
from blog_api.security import TokenService, hash_password, verify_password

SECRET = "test-secret"


def test_issue_and_verify_round_trip():
    tokens = TokenService(SECRET)
    token = tokens.issue("0123456789abcdef01234567")
    assert tokens.verify(token) == "0123456789abcdef01234567"


def test_token_carries_seven_day_expiry():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    token = TokenService(SECRET).issue("abc", now=now)
    claims = jwt.get_unverified_claims(token)
    assert claims["sub"] == "abc"
    assert claims["iat"] == int(now.timestamp())
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


def test_expired_token_is_rejected():
    tokens = TokenService(SECRET, ttl=timedelta(seconds=1))
    token = tokens.issue("abc", now=datetime.now(timezone.utc) - timedelta(minutes=5))
    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_token_signed_with_another_secret_is_rejected():
    token = TokenService("other-secret").issue("abc")
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token_is_rejected(token):
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)


def test_token_without_subject_is_rejected():
    token = jwt.encode({"exp": int(datetime.now(timezone.utc).timestamp()) + 60}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken):
        TokenService(SECRET).verify(token)


def test_repr_hides_secret():
    assert SECRET not in repr(TokenService(SECRET))


def test_password_hash_round_trip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_password_hashes_are_salted():
    assert hash_password("same") != hash_password("same")

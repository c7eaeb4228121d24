from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from news_api.auth import service as auth_service
from news_api.config import settings
from news_api.exceptions import AuthenticationError, ExpiredTokenError, InvalidTokenError
from news_api.users.models import User, UserRole


def test_hash_and_verify_password():
    hashed = auth_service.hash_password("secret123")
    assert hashed != "secret123"
    assert auth_service.verify_password("secret123", hashed)
    assert not auth_service.verify_password("wrong-password", hashed)


def test_hashes_are_salted():
    assert auth_service.hash_password("secret123") != auth_service.hash_password("secret123")


def test_verify_password_with_malformed_hash():
    assert auth_service.verify_password("secret123", "not-a-bcrypt-hash") is False


def test_token_round_trip():
    user = User(id=7, email="alice@example.com", role=UserRole.EDITOR)
    token = auth_service.create_access_token(user)

    payload = auth_service.decode_access_token(token)
    assert payload.user_id == 7
    assert payload.email == "alice@example.com"
    assert payload.role == "editor"


def test_token_expires_after_configured_lifetime():
    user = User(id=7, email="alice@example.com", role=UserRole.USER)
    claims = jwt.get_unverified_claims(auth_service.create_access_token(user))
    assert claims["exp"] - claims["iat"] == settings.JWT_EXPIRE_MINUTES * 60
    assert claims["sub"] == "7"
    assert claims["type"] == "access"


def test_expired_token():
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = jwt.encode(
        {"sub": "1", "type": "access", "iat": past - timedelta(minutes=1), "exp": past},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(ExpiredTokenError) as exc_info:
        auth_service.decode_access_token(token)
    assert exc_info.value.message == "Token expired"


@pytest.mark.parametrize(
    "token",
    [
        "garbage",
        jwt.encode({"sub": "1", "type": "access"}, "another-secret", algorithm="HS256"),
        jwt.encode({"sub": "1", "type": "refresh"}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM),
        jwt.encode({"type": "access"}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM),
    ],
)
def test_invalid_tokens(token):
    with pytest.raises(InvalidTokenError):
        auth_service.decode_access_token(token)


async def test_authenticate_user(db, alice):
    user = await auth_service.authenticate_user(db, "alice@example.com", "secret123")
    assert user.id == alice.id


@pytest.mark.parametrize(
    "email,password",
    [("alice@example.com", "wrong-password"), ("nobody@example.com", "secret123")],
)
async def test_authenticate_user_same_message_for_bad_credentials(db, alice, email, password):
    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.authenticate_user(db, email, password)
    assert exc_info.value.message == "Invalid email or password"


async def test_authenticate_inactive_user(db, make_user):
    await make_user("carol", is_active=False)
    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.authenticate_user(db, "carol@example.com", "secret123")
    assert exc_info.value.message == "Account is deactivated"


async def test_resolve_user_for_deleted_account(db):
    ghost = User(id=999, email="ghost@example.com", role=UserRole.USER)
    token = auth_service.create_access_token(ghost)
    with pytest.raises(InvalidTokenError) as exc_info:
        await auth_service.resolve_user(db, token)
    assert exc_info.value.message == "Invalid token - user not found"

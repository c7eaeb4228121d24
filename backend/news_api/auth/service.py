import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import AuthenticationError, ExpiredTokenError, InvalidTokenError
from ..users import service as user_service
from ..users.models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    email: str
    role: str


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # unknown or malformed hash
        return False


def create_access_token(user: User) -> str:
    """
    Issue a signed access token for the given user.
    `sub` carries the user id; email and role are informational only,
    every request reloads the live user row.
    """
    now = datetime.now(timezone.utc)
    to_encode: Dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value if hasattr(user.role, "value") else user.role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredTokenError()
    except JWTError:
        raise InvalidTokenError()

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError()
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError()

    return TokenPayload(user_id=user_id, email=payload.get("email", ""), role=payload.get("role", ""))


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Check an email/password pair and return the matching account.
    The same message is used for an unknown email and a wrong password.
    """
    user = await user_service.get_user_credentials_by_email(db, email)
    if user is None or not verify_password(password, user.password):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    return user


async def resolve_user(db: AsyncSession, token: str) -> User:
    payload = decode_access_token(token)
    user = await db.get(User, payload.user_id, populate_existing=True)
    if user is None:
        raise InvalidTokenError("Invalid token - user not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    return user

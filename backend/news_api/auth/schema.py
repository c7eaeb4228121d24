from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from ..models import CustomModel
from ..users.models import UserRole
from ..users.schema import UserCreate


class RegisterRequest(UserCreate):
    pass


class LoginRequest(CustomModel):
    email: EmailStr = Field(..., json_schema_extra={"example": "alice@example.com"})
    password: str = Field(..., min_length=1, json_schema_extra={"example": "secret123"})


class AuthUser(CustomModel):
    """User summary returned by register and login."""
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole


class AuthUserResult(CustomModel):
    user: AuthUser


class LoginResult(CustomModel):
    token: str
    user: AuthUser


class ProfileUser(AuthUser):
    is_active: bool
    created_at: datetime


class ProfileResult(CustomModel):
    user: ProfileUser

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from ..models import CustomModel
from ..pagination import Pagination
from .models import UserRole

USERNAME_PATTERN = r"^[A-Za-z0-9]+$"


class UserBase(CustomModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN, json_schema_extra={"example": "alice"})
    email: EmailStr = Field(..., json_schema_extra={"example": "alice@example.com"})
    first_name: Optional[str] = Field(None, min_length=1, max_length=100, json_schema_extra={"example": "Alice"})
    last_name: Optional[str] = Field(None, min_length=1, max_length=100, json_schema_extra={"example": "Smith"})


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=128, json_schema_extra={"example": "secret123"})


class AdminUserCreate(UserCreate):
    role: UserRole = UserRole.USER


class UserUpdate(CustomModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class ProfileUpdate(CustomModel):
    """Self-service profile changes; role and status are not part of it."""
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)


class PasswordChange(CustomModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class PasswordReset(CustomModel):
    new_password: str = Field(..., min_length=6, max_length=128)


class UserPublic(CustomModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserList(CustomModel):
    users: List[UserPublic]
    pagination: Pagination


class UserResult(CustomModel):
    user: UserPublic

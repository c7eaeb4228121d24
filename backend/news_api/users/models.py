# backend/news_api/users/models.py
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Integer, String
from sqlalchemy.sql import func

from ..database import Base


class UserRole(str, PyEnum):
    USER = "user"
    EDITOR = "editor"
    ADMIN = "admin"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
        index=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username!r}, email={self.email!r}, role={self.role!r})"
    def __str__(self) -> str:
        return f"{self.username} ({self.email})"

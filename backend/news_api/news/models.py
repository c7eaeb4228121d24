# backend/news_api/news/models.py
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey,
    Enum as SQLEnum, Index,
)
from sqlalchemy.sql import func

from ..database import Base


class NewsStatus(str, PyEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class News(Base):
    __tablename__ = "news"
    __table_args__ = (
        Index("ix_news_status_published_at", "status", "published_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(Text)
    slug = Column(String(500), unique=True, nullable=False, index=True)
    featured_image = Column(String(500))
    status = Column(
        SQLEnum(NewsStatus, name="news_status", values_callable=lambda e: [m.value for m in e]),
        default=NewsStatus.DRAFT,
        nullable=False,
        index=True,
    )
    # deleting a category keeps its news; deleting an author removes theirs
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    published_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"News(id={self.id}, slug={self.slug!r}, status={self.status!r}, author_id={self.author_id})"
    def __str__(self) -> str:
        return self.title

from datetime import datetime
from typing import List, Optional

from pydantic import AnyUrl, Field, PositiveInt, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..categories.schemas import CategoryOut
from ..models import CustomModel
from ..pagination import Pagination
from .models import NewsStatus

_url_adapter = TypeAdapter(AnyUrl)


class NewsBase(CustomModel):
    summary: Optional[str] = Field(None, max_length=1000)
    slug: Optional[str] = Field(None, min_length=1, max_length=500)
    featured_image: Optional[str] = Field(None, max_length=500)
    status: Optional[NewsStatus] = None
    category_id: Optional[PositiveInt] = None

    @field_validator("featured_image")
    @classmethod
    def _check_image_url(cls, value: Optional[str]) -> Optional[str]:
        # validated as a URI, stored exactly as sent
        if value is not None:
            try:
                _url_adapter.validate_python(value)
            except PydanticValidationError:
                raise ValueError("featured_image must be a valid URI")
        return value


class NewsCreate(NewsBase):
    title: str = Field(..., min_length=1, max_length=500, json_schema_extra={"example": "Breaking Tech News!"})
    content: str = Field(..., min_length=1)


class NewsUpdate(NewsBase):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)


class NewsOut(CustomModel):
    id: int
    title: str
    content: str
    summary: Optional[str] = None
    slug: str
    featured_image: Optional[str] = None
    status: NewsStatus
    category_id: Optional[int] = None
    author_id: int
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    category_name: Optional[str] = None
    category_slug: Optional[str] = None
    author_username: Optional[str] = None
    author_first_name: Optional[str] = None
    author_last_name: Optional[str] = None


class NewsResult(CustomModel):
    news: NewsOut


class NewsList(CustomModel):
    news: List[NewsOut]
    pagination: Pagination


class LatestNews(CustomModel):
    news: List[NewsOut]


class CategoryNewsList(NewsList):
    category: CategoryOut


class NewsSearchResult(NewsList):
    search_term: str

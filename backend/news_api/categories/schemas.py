from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..models import CustomModel
from ..pagination import Pagination


class CategoryCreate(CustomModel):
    name: str = Field(..., min_length=1, max_length=255, json_schema_extra={"example": "Technology"})
    description: Optional[str] = Field(None, max_length=1000)
    slug: Optional[str] = Field(None, min_length=1, max_length=255, json_schema_extra={"example": "technology"})


class CategoryUpdate(CustomModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    is_active: Optional[bool] = None


class CategoryOut(CustomModel):
    id: int
    name: str
    description: Optional[str] = None
    slug: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    news_count: int = 0


class ActiveCategoryOut(CustomModel):
    id: int
    name: str
    description: Optional[str] = None
    slug: str
    created_at: datetime
    updated_at: datetime


class CategoryResult(CustomModel):
    category: CategoryOut


class CategoryList(CustomModel):
    categories: List[CategoryOut]
    pagination: Pagination


class ActiveCategoryList(CustomModel):
    categories: List[ActiveCategoryOut]

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from ..auth.dependencies import AdminUser, StaffUser
from ..database import SessionDep
from ..dependencies import path_id
from ..exceptions import NotFoundError
from ..models import respond
from ..pagination import ListParams, list_params
from . import service as category_service
from .schemas import (
    ActiveCategoryList,
    CategoryCreate,
    CategoryList,
    CategoryOut,
    CategoryResult,
    CategoryUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


def _category_result(category: dict) -> CategoryResult:
    return CategoryResult(category=CategoryOut.model_validate(category))


@router.get("")
async def list_categories(
    db: SessionDep,
    params: ListParams = Depends(list_params),
    is_active: Optional[bool] = None,
):
    page = await category_service.list_categories(db, params, {"is_active": is_active})
    return respond(CategoryList(categories=page.items, pagination=page.pagination))


@router.get("/active")
async def list_active_categories(db: SessionDep):
    categories = await category_service.list_active_categories(db)
    return respond(ActiveCategoryList(categories=categories))


@router.get("/slug/{slug}")
async def get_category_by_slug(slug: str, db: SessionDep):
    category = await category_service.get_category_by_slug(db, slug)
    if category is None:
        raise NotFoundError("Category not found")
    return respond(_category_result(category))


@router.get("/{id}")
async def get_category(db: SessionDep, category_id: int = Depends(path_id())):
    category = await category_service.get_category_with_news_count(db, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return respond(_category_result(category))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryCreate, db: SessionDep, staff: StaffUser):
    category = await category_service.create_category(db, body)
    logger.info(f"Category created: {category['name']} by {staff.email}")
    return respond(
        _category_result(category),
        message="Category created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{id}")
async def update_category(
    body: CategoryUpdate,
    db: SessionDep,
    staff: StaffUser,
    category_id: int = Depends(path_id()),
):
    category = await category_service.update_category(db, category_id, body.model_dump(exclude_unset=True))
    logger.info(f"Category updated: {category['name']} by {staff.email}")
    return respond(_category_result(category), message="Category updated successfully")


@router.delete("/{id}")
async def delete_category(db: SessionDep, admin: AdminUser, category_id: int = Depends(path_id())):
    if not await category_service.delete_category(db, category_id):
        raise NotFoundError("Category not found")
    logger.info(f"Category deleted: id {category_id} by {admin.email}")
    return respond(message="Category deleted successfully")


@router.patch("/{id}/toggle-status")
async def toggle_category_status(db: SessionDep, staff: StaffUser, category_id: int = Depends(path_id())):
    category = await category_service.toggle_category_status(db, category_id)
    state = "activated" if category["is_active"] else "deactivated"
    logger.info(f"Category status changed: {category['name']} ({state}) by {staff.email}")
    return respond(_category_result(category), message=f"Category {state} successfully")

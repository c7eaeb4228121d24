import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, NoFieldsToUpdateError, NotFoundError, ValidationError
from ..news.models import News
from ..pagination import ListParams, ListSpec, Page, paginate
from ..slugs import slugify
from .models import Category
from .schemas import CategoryCreate

logger = logging.getLogger(__name__)

CATEGORY_COLUMNS = (
    Category.id,
    Category.name,
    Category.description,
    Category.slug,
    Category.is_active,
    Category.created_at,
    Category.updated_at,
)

UPDATABLE_FIELDS = frozenset({"name", "description", "slug", "is_active"})

CATEGORY_LIST_SPEC = ListSpec(
    sort_fields={
        "id": Category.id,
        "name": Category.name,
        "slug": Category.slug,
        "created_at": Category.created_at,
    },
    default_sort="created_at",
    id_column=Category.id,
    filter_fields={"is_active": Category.is_active},
    search_columns=(Category.name, Category.description),
)


def _news_count():
    return (
        select(func.count(News.id))
        .where(News.category_id == Category.id)
        .correlate(Category)
        .scalar_subquery()
        .label("news_count")
    )


def _counted_select():
    return select(*CATEGORY_COLUMNS, _news_count())


async def _one(db: AsyncSession, stmt) -> Optional[Dict[str, Any]]:
    row = (await db.execute(stmt)).mappings().first()
    return dict(row) if row else None


async def check_exists(
    db: AsyncSession,
    name: Optional[str] = None,
    slug: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> Optional[str]:
    """Name of the taken natural key ("name" before "slug"), or None."""
    conditions = []
    if name:
        conditions.append(Category.name == name)
    if slug:
        conditions.append(Category.slug == slug)
    if not conditions:
        return None

    stmt = select(Category.name, Category.slug).where(or_(*conditions))
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    rows = (await db.execute(stmt)).all()

    if name and any(row.name == name for row in rows):
        return "name"
    if slug and any(row.slug == slug for row in rows):
        return "slug"
    return None


async def create_category(db: AsyncSession, data: CategoryCreate) -> Dict[str, Any]:
    slug = data.slug or slugify(data.name)
    if not slug:
        raise ValidationError("Category name must contain at least one letter or digit")

    taken = await check_exists(db, name=data.name, slug=slug)
    if taken:
        raise ConflictError(f"Category with this {taken} already exists", field=taken)

    category = Category(name=data.name, description=data.description, slug=slug, is_active=True)
    db.add(category)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Category insert rejected by a unique constraint: {e.orig}")
        raise ConflictError("Category with this name or slug already exists")
    return await get_category_with_news_count(db, category.id)


async def get_category_by_id(db: AsyncSession, category_id: int) -> Optional[Dict[str, Any]]:
    return await _one(db, select(*CATEGORY_COLUMNS).where(Category.id == category_id))


async def get_category_with_news_count(db: AsyncSession, category_id: int) -> Optional[Dict[str, Any]]:
    return await _one(db, _counted_select().where(Category.id == category_id))


async def get_category_by_slug(db: AsyncSession, slug: str) -> Optional[Dict[str, Any]]:
    return await _one(db, _counted_select().where(Category.slug == slug))


async def list_categories(db: AsyncSession, params: ListParams, filters: Optional[Mapping[str, Any]] = None) -> Page:
    return await paginate(db, _counted_select(), CATEGORY_LIST_SPEC, params, filters)


async def list_active_categories(db: AsyncSession) -> List[Dict[str, Any]]:
    stmt = (
        select(
            Category.id,
            Category.name,
            Category.description,
            Category.slug,
            Category.created_at,
            Category.updated_at,
        )
        .where(Category.is_active.is_(True))
        .order_by(Category.name.asc())
    )
    result = await db.execute(stmt)
    return [dict(row) for row in result.mappings().all()]


async def update_category(db: AsyncSession, category_id: int, changes: Mapping[str, Any]) -> Dict[str, Any]:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")

    # description is the only nullable column
    update_data = {
        field: value
        for field, value in changes.items()
        if field in UPDATABLE_FIELDS and (value is not None or field == "description")
    }
    if not update_data:
        raise NoFieldsToUpdateError()

    # renaming without an explicit slug regenerates it
    if update_data.get("name") and not update_data.get("slug"):
        update_data["slug"] = slugify(update_data["name"])
        if not update_data["slug"]:
            raise ValidationError("Category name must contain at least one letter or digit")

    if "name" in update_data or "slug" in update_data:
        taken = await check_exists(
            db,
            name=update_data.get("name"),
            slug=update_data.get("slug"),
            exclude_id=category_id,
        )
        if taken:
            raise ConflictError(f"Another category with this {taken} already exists", field=taken)

    for field, value in update_data.items():
        setattr(category, field, value)
    category.updated_at = func.now()
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Category update rejected by a unique constraint: {e.orig}")
        raise ConflictError("Another category with this name or slug already exists")
    return await get_category_with_news_count(db, category_id)


async def delete_category(db: AsyncSession, category_id: int) -> bool:
    category = await get_category_with_news_count(db, category_id)
    if category is None:
        return False
    if category["news_count"] > 0:
        raise ValidationError(
            f"Cannot delete category. It has {category['news_count']} news article(s) associated with it"
        )
    result = await db.execute(delete(Category).where(Category.id == category_id))
    await db.commit()
    return result.rowcount > 0


async def toggle_category_status(db: AsyncSession, category_id: int) -> Dict[str, Any]:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    category.is_active = not category.is_active
    category.updated_at = func.now()
    await db.commit()
    return await get_category_with_news_count(db, category_id)

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..categories import service as category_service
from ..categories.models import Category
from ..exceptions import ConflictError, NoFieldsToUpdateError, NotFoundError, ValidationError
from ..pagination import ListParams, ListSpec, Page, merge_filters, paginate
from ..slugs import slugify
from ..users.models import User
from .models import News, NewsStatus
from .schemas import NewsCreate

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 500
MIN_SEARCH_LENGTH = 2
LATEST_DEFAULT_LIMIT = 5

UPDATABLE_FIELDS = frozenset({"title", "content", "summary", "slug", "featured_image", "status", "category_id"})
NULLABLE_FIELDS = frozenset({"summary", "featured_image", "category_id"})

PUBLISHED_SCOPE = {"status": NewsStatus.PUBLISHED}

NEWS_LIST_SPEC = ListSpec(
    sort_fields={
        "id": News.id,
        "title": News.title,
        "status": News.status,
        "published_at": News.published_at,
        "created_at": News.created_at,
    },
    default_sort="created_at",
    id_column=News.id,
    filter_fields={
        "status": News.status,
        "category_id": News.category_id,
        "author_id": News.author_id,
    },
    search_columns=(News.title, News.content, News.summary),
)


def _news_select():
    """News columns plus the category and author fields every read carries."""
    return (
        select(
            News.id,
            News.title,
            News.content,
            News.summary,
            News.slug,
            News.featured_image,
            News.status,
            News.category_id,
            News.author_id,
            News.published_at,
            News.created_at,
            News.updated_at,
            Category.name.label("category_name"),
            Category.slug.label("category_slug"),
            User.username.label("author_username"),
            User.first_name.label("author_first_name"),
            User.last_name.label("author_last_name"),
        )
        .select_from(News)
        .outerjoin(Category, News.category_id == Category.id)
        .outerjoin(User, News.author_id == User.id)
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _one(db: AsyncSession, stmt) -> Optional[Dict[str, Any]]:
    row = (await db.execute(stmt)).mappings().first()
    return dict(row) if row else None


async def _ensure_category(db: AsyncSession, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    if await category_service.get_category_by_id(db, category_id) is None:
        raise ValidationError("Category not found")


async def slug_exists(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(News.id).where(News.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(News.id != exclude_id)
    return (await db.execute(stmt.limit(1))).first() is not None


async def create_news(db: AsyncSession, data: NewsCreate, author_id: int) -> Dict[str, Any]:
    slug = data.slug or slugify(data.title, SLUG_MAX_LENGTH)
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit")
    if await slug_exists(db, slug):
        raise ConflictError("News article with this slug already exists", field="slug")
    await _ensure_category(db, data.category_id)

    status = data.status or NewsStatus.DRAFT
    news = News(
        title=data.title,
        content=data.content,
        summary=data.summary,
        slug=slug,
        featured_image=data.featured_image,
        status=status,
        category_id=data.category_id,
        author_id=author_id,
        published_at=_utcnow() if status == NewsStatus.PUBLISHED else None,
    )
    db.add(news)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"News insert rejected by a constraint: {e.orig}")
        raise ConflictError("News article with this slug already exists", field="slug")
    return await get_news_by_id(db, news.id)


async def get_news_by_id(db: AsyncSession, news_id: int) -> Optional[Dict[str, Any]]:
    return await _one(db, _news_select().where(News.id == news_id))


async def get_news_by_slug(db: AsyncSession, slug: str) -> Optional[Dict[str, Any]]:
    return await _one(db, _news_select().where(News.slug == slug))


async def list_news(
    db: AsyncSession,
    params: ListParams,
    filters: Optional[Mapping[str, Any]] = None,
    *,
    default_sort: Optional[str] = None,
) -> Page:
    return await paginate(db, _news_select(), NEWS_LIST_SPEC, params, filters, default_sort=default_sort)


async def list_published(db: AsyncSession, params: ListParams, filters: Optional[Mapping[str, Any]] = None) -> Page:
    return await list_news(
        db, params, merge_filters(filters or {}, PUBLISHED_SCOPE), default_sort="published_at"
    )


async def list_by_category(
    db: AsyncSession,
    category_id: int,
    params: ListParams,
    filters: Optional[Mapping[str, Any]] = None,
) -> Page:
    scope = dict(PUBLISHED_SCOPE, category_id=category_id)
    return await list_news(db, params, merge_filters(filters or {}, scope), default_sort="published_at")


async def list_by_author(
    db: AsyncSession,
    author_id: int,
    params: ListParams,
    filters: Optional[Mapping[str, Any]] = None,
) -> Page:
    return await list_news(db, params, merge_filters(filters or {}, {"author_id": author_id}))


async def search_news(
    db: AsyncSession,
    term: Optional[str],
    params: ListParams,
    filters: Optional[Mapping[str, Any]] = None,
) -> Page:
    """
    Case-insensitive search over title, content and summary.
    Results are always limited to published articles.
    """
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise ValidationError(f"Search term must be at least {MIN_SEARCH_LENGTH} characters long")

    search_params = params.model_copy(update={"search": term})
    return await list_news(
        db, search_params, merge_filters(filters or {}, PUBLISHED_SCOPE), default_sort="published_at"
    )


async def get_latest(db: AsyncSession, limit: int = LATEST_DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    stmt = (
        _news_select()
        .where(News.status == NewsStatus.PUBLISHED)
        .order_by(News.published_at.desc(), News.id.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return [dict(row) for row in result.mappings().all()]


def _apply_status(news: News, new_status: NewsStatus) -> None:
    # published_at follows the status: stamped on entering published,
    # kept while it stays published, cleared on leaving it
    if new_status == NewsStatus.PUBLISHED:
        if news.status != NewsStatus.PUBLISHED or news.published_at is None:
            news.published_at = _utcnow()
    else:
        news.published_at = None
    news.status = new_status


async def update_news(db: AsyncSession, news_id: int, changes: Mapping[str, Any]) -> Dict[str, Any]:
    news = await db.get(News, news_id)
    if news is None:
        raise NotFoundError("News article not found")

    update_data = {
        field: value
        for field, value in changes.items()
        if field in UPDATABLE_FIELDS and (value is not None or field in NULLABLE_FIELDS)
    }
    if not update_data:
        raise NoFieldsToUpdateError()

    # retitling without an explicit slug regenerates it
    if update_data.get("title") and not update_data.get("slug"):
        update_data["slug"] = slugify(update_data["title"], SLUG_MAX_LENGTH)
        if not update_data["slug"]:
            raise ValidationError("Title must contain at least one letter or digit")

    if "slug" in update_data and await slug_exists(db, update_data["slug"], exclude_id=news_id):
        raise ConflictError("Another news article with this slug already exists", field="slug")
    if "category_id" in update_data:
        await _ensure_category(db, update_data["category_id"])

    new_status = update_data.pop("status", None)
    for field, value in update_data.items():
        setattr(news, field, value)
    if new_status is not None:
        _apply_status(news, new_status)
    # stamped even when every value matches the stored row
    news.updated_at = func.now()

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"News update rejected by a constraint: {e.orig}")
        raise ConflictError("Another news article with this slug already exists", field="slug")
    return await get_news_by_id(db, news_id)


async def delete_news(db: AsyncSession, news_id: int) -> bool:
    result = await db.execute(delete(News).where(News.id == news_id))
    await db.commit()
    return result.rowcount > 0

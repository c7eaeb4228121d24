import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import PositiveInt

from ..auth import permissions
from ..auth.dependencies import CurrentUser, OptionalUser
from ..categories import service as category_service
from ..categories.schemas import CategoryOut
from ..database import SessionDep
from ..dependencies import path_id
from ..exceptions import NotFoundError
from ..models import respond
from ..pagination import ListParams, list_params
from . import service as news_service
from .models import NewsStatus
from .schemas import (
    CategoryNewsList,
    LatestNews,
    NewsCreate,
    NewsList,
    NewsOut,
    NewsResult,
    NewsSearchResult,
    NewsUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/news", tags=["news"])


def _news_result(news: dict) -> NewsResult:
    return NewsResult(news=NewsOut.model_validate(news))


def _visible_or_404(news: Optional[dict], user) -> dict:
    # a draft the caller may not see is reported exactly like a missing one
    if news is None or not permissions.can_view_news(user, news["status"], news["author_id"]):
        raise NotFoundError("News article not found")
    return news


@router.get("")
async def list_news(
    db: SessionDep,
    user: OptionalUser,
    params: ListParams = Depends(list_params),
    status_filter: Optional[NewsStatus] = Query(None, alias="status"),
    category_id: Optional[PositiveInt] = None,
    author_id: Optional[PositiveInt] = None,
):
    filters = {"status": status_filter, "category_id": category_id, "author_id": author_id}
    if permissions.is_staff(user):
        page = await news_service.list_news(db, params, filters)
    else:
        page = await news_service.list_published(db, params, filters)
    return respond(NewsList(news=page.items, pagination=page.pagination))


@router.get("/published")
async def list_published_news(
    db: SessionDep,
    params: ListParams = Depends(list_params),
    category_id: Optional[PositiveInt] = None,
    author_id: Optional[PositiveInt] = None,
):
    page = await news_service.list_published(db, params, {"category_id": category_id, "author_id": author_id})
    return respond(NewsList(news=page.items, pagination=page.pagination))


@router.get("/latest")
async def latest_news(
    db: SessionDep,
    limit: int = Query(news_service.LATEST_DEFAULT_LIMIT, ge=1, le=100),
):
    items = await news_service.get_latest(db, limit)
    return respond(LatestNews(news=items))


@router.get("/search")
async def search_news(
    db: SessionDep,
    q: Optional[str] = Query(None, max_length=255),
    params: ListParams = Depends(list_params),
    category_id: Optional[PositiveInt] = None,
):
    page = await news_service.search_news(db, q, params, {"category_id": category_id})
    return respond(NewsSearchResult(search_term=q, news=page.items, pagination=page.pagination))


@router.get("/my")
async def my_news(
    db: SessionDep,
    current_user: CurrentUser,
    params: ListParams = Depends(list_params),
    status_filter: Optional[NewsStatus] = Query(None, alias="status"),
    category_id: Optional[PositiveInt] = None,
):
    page = await news_service.list_by_author(
        db, current_user.id, params, {"status": status_filter, "category_id": category_id}
    )
    return respond(NewsList(news=page.items, pagination=page.pagination))


@router.get("/category/{category_id}")
async def news_by_category(
    db: SessionDep,
    category_id: int = Depends(path_id("category_id")),
    params: ListParams = Depends(list_params),
):
    category = await category_service.get_category_with_news_count(db, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    page = await news_service.list_by_category(db, category_id, params)
    return respond(
        CategoryNewsList(
            category=CategoryOut.model_validate(category),
            news=page.items,
            pagination=page.pagination,
        )
    )


@router.get("/slug/{slug}")
async def get_news_by_slug(slug: str, db: SessionDep, user: OptionalUser):
    news = _visible_or_404(await news_service.get_news_by_slug(db, slug), user)
    return respond(_news_result(news))


@router.get("/{id}")
async def get_news(db: SessionDep, user: OptionalUser, news_id: int = Depends(path_id())):
    news = _visible_or_404(await news_service.get_news_by_id(db, news_id), user)
    return respond(_news_result(news))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_news(body: NewsCreate, db: SessionDep, current_user: CurrentUser):
    news = await news_service.create_news(db, body, author_id=current_user.id)
    logger.info(f"News article created: {news['title']} by {current_user.email}")
    return respond(_news_result(news), message="News article created successfully", status_code=status.HTTP_201_CREATED)


@router.put("/{id}")
async def update_news(
    body: NewsUpdate,
    db: SessionDep,
    current_user: CurrentUser,
    news_id: int = Depends(path_id()),
):
    existing = await news_service.get_news_by_id(db, news_id)
    if existing is None:
        raise NotFoundError("News article not found")
    permissions.ensure_can_manage_news(current_user, existing["author_id"], "edit")

    news = await news_service.update_news(db, news_id, body.model_dump(exclude_unset=True))
    logger.info(f"News article updated: {news['title']} by {current_user.email}")
    return respond(_news_result(news), message="News article updated successfully")


@router.delete("/{id}")
async def delete_news(db: SessionDep, current_user: CurrentUser, news_id: int = Depends(path_id())):
    existing = await news_service.get_news_by_id(db, news_id)
    if existing is None:
        raise NotFoundError("News article not found")
    permissions.ensure_can_manage_news(current_user, existing["author_id"], "delete")

    if not await news_service.delete_news(db, news_id):
        raise NotFoundError("News article not found")
    logger.info(f"News article deleted: {existing['title']} by {current_user.email}")
    return respond(message="News article deleted successfully")

"""Feed 订阅源 API."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedmark.api.deps import get_app_database, get_refresh_service, get_session
from feedmark.core.refresh import RefreshService
from feedmark.errors import FeedRefreshError, NetworkTimeout, NotFound, StorageUnavailable
from feedmark.models.article import Article
from feedmark.models.database import Database
from feedmark.models.feed import Feed
from feedmark.models.translation import Translation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feeds", tags=["feeds"])


class FeedCreate(BaseModel):
    """新建订阅源请求."""

    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    description: str | None = None
    category: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")


def feed_to_dict(feed: Feed) -> dict:
    """Feed 转换为响应格式."""
    return {
        "id": feed.id,
        "title": feed.title,
        "url": feed.url,
        "description": feed.description,
        "imageUrl": feed.image_url,
        "category": feed.category,
        "createdAt": feed.created_at,
        "updatedAt": feed.updated_at,
    }


@router.get("")
async def list_feeds(
    session: AsyncSession = Depends(get_session),
) -> list[dict]:
    """获取订阅列表."""
    result = await session.execute(select(Feed).order_by(Feed.title))
    return [feed_to_dict(feed) for feed in result.scalars().all()]


@router.get("/status")
async def get_status(
    database: Database = Depends(get_app_database),
) -> dict:
    """数据库状态，未就绪时尝试重新初始化."""
    try:
        await database.ensure_ready()
    except StorageUnavailable as e:
        logger.warning(f"数据库重新初始化失败: {e}")
    return database.status()


@router.post("", status_code=201)
async def create_feed(
    body: FeedCreate,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """添加订阅源."""
    feed = Feed(
        title=body.title.strip(),
        url=body.url.strip(),
        description=body.description,
        category=body.category,
        image_url=body.image_url,
    )
    session.add(feed)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Feed 已存在") from e

    logger.info(f"添加订阅源: {feed.title} ({feed.url})")
    return feed_to_dict(feed)


@router.delete("/{feed_id}")
async def delete_feed(
    feed_id: str,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """删除订阅源及其文章."""
    feed = await session.get(Feed, feed_id)
    if not feed:
        raise HTTPException(status_code=404, detail="Feed 不存在")

    article_ids = select(Article.id).where(Article.feed_id == feed_id)
    await session.execute(
        delete(Translation).where(Translation.article_id.in_(article_ids))
    )
    await session.execute(delete(Article).where(Article.feed_id == feed_id))
    await session.delete(feed)
    await session.commit()

    logger.info(f"删除订阅源: {feed.title}")
    return {"success": True}


@router.post("/refresh-all")
async def refresh_all_feeds(
    service: RefreshService = Depends(get_refresh_service),
) -> dict:
    """刷新全部订阅源（单个失败不影响整体）."""
    result = await service.refresh_all()

    response: dict = {"count": result.total_new}
    if result.errors:
        response["errors"] = [str(failure) for failure in result.errors]
    return response


@router.post("/{feed_id}/refresh")
async def refresh_feed(
    feed_id: str,
    service: RefreshService = Depends(get_refresh_service),
) -> dict:
    """刷新单个订阅源."""
    try:
        result = await service.refresh_feed(feed_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="Feed 不存在") from e
    except FeedRefreshError as e:
        status_code = 504 if isinstance(e.cause, NetworkTimeout) else 502
        raise HTTPException(status_code=status_code, detail=str(e)) from e

    return {"count": result.saved_count, "total": result.total_fetched}

"""API 依赖注入."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.config import Settings, get_settings
from feedmark.core.refresh import RefreshService
from feedmark.fetcher.feed import FeedFetcher
from feedmark.models.database import Database


def get_app_database(request: Request) -> Database:
    """应用持有的数据库句柄（不检查状态）."""
    return request.app.state.database


async def get_database(
    database: Database = Depends(get_app_database),
) -> Database:
    """可用的数据库句柄，必要时重新初始化."""
    await database.ensure_ready()
    return database


async def get_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话."""
    async with database.session() as session:
        yield session


def get_fetcher(request: Request) -> FeedFetcher:
    """订阅源抓取器."""
    return request.app.state.fetcher


def get_refresh_service(
    database: Database = Depends(get_database),
    fetcher: FeedFetcher = Depends(get_fetcher),
    settings: Settings = Depends(get_settings),
) -> RefreshService:
    """刷新服务."""
    return RefreshService(
        database,
        fetcher,
        concurrency=settings.refresh_concurrency,
        timeout=settings.refresh_timeout_seconds,
    )

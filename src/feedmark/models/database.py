"""数据库初始化和会话管理."""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from feedmark.errors import StorageUnavailable

logger = logging.getLogger(__name__)

# create_all 不支持降序索引，单独创建
_EXTRA_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_articles_pub_date ON articles(pub_date DESC)",
)


class Database:
    """数据库句柄.

    由应用显式持有并注入到各服务中。初始化失败时记录错误，
    下一次 ensure_ready() 会尝试重新连接一次，仍失败则抛出 StorageUnavailable。
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._error: str | None = None

    @property
    def is_ready(self) -> bool:
        """是否已成功初始化且没有未处理的错误."""
        return self._session_factory is not None and self._error is None

    def status(self) -> dict[str, Any]:
        """数据库状态（用于健康检查）."""
        return {"initialized": self.is_ready, "error": self._error}

    async def connect(self) -> None:
        """创建引擎并初始化表结构."""
        # 确保所有表模型已注册到 metadata
        from feedmark.models import article, feed, settings, translation  # noqa: F401

        logger.info(f"正在初始化数据库: {self.database_url}")
        engine = create_async_engine(self.database_url, echo=False)

        try:
            async with engine.begin() as conn:
                if engine.dialect.name == "sqlite":
                    await conn.execute(text("PRAGMA journal_mode=WAL"))
                await conn.run_sync(SQLModel.metadata.create_all)
                for statement in _EXTRA_INDEXES:
                    await conn.execute(text(statement))
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            self._error = str(e)
            logger.error(f"数据库初始化失败: {e}")
            raise StorageUnavailable(f"数据库不可用: {e}") from e

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._error = None
        logger.info("数据库初始化完成")

    async def ensure_ready(self) -> None:
        """调用边界上的健康检查，必要时重新初始化一次."""
        if self.is_ready:
            return

        if self._error:
            logger.info(f"检测到之前的数据库错误，尝试重新初始化: {self._error}")
        await self.close()
        await self.connect()

    def mark_failed(self, error: Exception) -> None:
        """记录运行期的存储错误，下一次调用时重新初始化."""
        self._error = str(error)

    def session(self) -> AsyncSession:
        """创建新的数据库会话."""
        if self._session_factory is None:
            msg = "数据库未初始化，请先调用 connect()"
            raise StorageUnavailable(msg)
        return self._session_factory()

    async def close(self) -> None:
        """释放连接池."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("数据库连接已关闭")
        self._engine = None
        self._session_factory = None

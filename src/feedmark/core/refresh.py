"""订阅源刷新服务."""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from feedmark.errors import (
    FeedMarkError,
    FeedRefreshError,
    FetchError,
    NetworkTimeout,
    NotFound,
    StorageError,
)
from feedmark.fetcher.feed import DraftArticle, FeedFetcher
from feedmark.models.article import Article
from feedmark.models.database import Database
from feedmark.models.feed import Feed
from feedmark.utils.clock import unix_now

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """单个订阅源的刷新结果."""

    saved_count: int
    total_fetched: int


@dataclass
class FeedFailure:
    """刷新失败记录."""

    feed_id: str
    feed_title: str
    error: str

    def __str__(self) -> str:
        return f"{self.feed_title}: {self.error}"


@dataclass
class RefreshAllResult:
    """全部订阅源的刷新结果."""

    feeds_total: int = 0
    succeeded: int = 0
    total_new: int = 0
    errors: list[FeedFailure] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """至少尝试了一个订阅源且全部失败."""
        return self.feeds_total > 0 and self.succeeded == 0


class RefreshService:
    """
    刷新服务.

    抓取阶段可以并发（每批最多 concurrency 个），入库阶段按订阅源
    逐个执行，每个订阅源一个短事务。同一订阅源内以 link 作为唯一去重键。
    """

    def __init__(
        self,
        database: Database,
        fetcher: FeedFetcher,
        concurrency: int = 5,
        timeout: float = 30.0,
    ) -> None:
        self.database = database
        self.fetcher = fetcher
        self.concurrency = max(1, concurrency)
        self.timeout = timeout

    async def refresh_feed(self, feed_id: str) -> RefreshResult:
        """
        刷新单个订阅源.

        Args:
            feed_id: 订阅源 ID

        Returns:
            新增文章数和源中的文章总数

        Raises:
            NotFound: 订阅源不存在
            FeedRefreshError: 抓取、解析或入库失败（携带订阅源标题）
        """
        await self.database.ensure_ready()
        feed = await self._get_feed(feed_id)

        try:
            drafts = await self._fetch(feed.url)
            saved = await self._store(feed.id, drafts)
        except NotFound:
            raise
        except (FetchError, StorageError) as e:
            logger.warning(f"刷新订阅源失败: {feed.title} - {e}")
            raise FeedRefreshError(feed.title, e) from e
        except Exception as e:
            logger.exception(f"刷新订阅源出现未预期的错误: {feed.title}")
            raise FeedRefreshError(feed.title, e) from e

        logger.info(f"刷新完成: {feed.title}, 新增 {saved}/{len(drafts)}")
        return RefreshResult(saved_count=saved, total_fetched=len(drafts))

    async def refresh_all(self) -> RefreshAllResult:
        """
        刷新全部订阅源.

        单个订阅源失败只记录错误，不影响其他订阅源，也不会向外抛出。
        """
        await self.database.ensure_ready()
        feeds = await self._list_feeds()
        result = RefreshAllResult(feeds_total=len(feeds))
        logger.info(f"开始刷新全部订阅源: {len(feeds)} 个, 并发 {self.concurrency}")

        for start in range(0, len(feeds), self.concurrency):
            batch = feeds[start : start + self.concurrency]
            # 整批抓取完成后再入库
            outcomes = await asyncio.gather(
                *(self._fetch(feed.url) for feed in batch),
                return_exceptions=True,
            )

            for feed, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    self._record_failure(result, feed, outcome)
                    continue

                try:
                    saved = await self._store(feed.id, outcome)
                except Exception as e:
                    self._record_failure(result, feed, e)
                    continue

                result.succeeded += 1
                result.total_new += saved

        logger.info(
            f"全部刷新完成: 新增 {result.total_new}, "
            f"成功 {result.succeeded}/{result.feeds_total}, 失败 {len(result.errors)}"
        )
        return result

    async def _get_feed(self, feed_id: str) -> Feed:
        try:
            async with self.database.session() as session:
                feed = await session.get(Feed, feed_id)
        except SQLAlchemyError as e:
            raise self._storage_error(e) from e

        if feed is None:
            raise NotFound(f"Feed not found: {feed_id}")
        return feed

    async def _list_feeds(self) -> list[Feed]:
        try:
            async with self.database.session() as session:
                result = await session.execute(select(Feed).order_by(Feed.title))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._storage_error(e) from e

    async def _fetch(self, url: str) -> list[DraftArticle]:
        """抓取订阅源，整体耗时受 timeout 限制."""
        try:
            return await asyncio.wait_for(
                self.fetcher.fetch_feed(url),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NetworkTimeout(url, self.timeout) from e

    async def _store(self, feed_id: str, drafts: list[DraftArticle]) -> int:
        """写入未见过的文章并更新订阅源刷新时间，返回新增数量."""
        now = unix_now()
        try:
            async with self.database.session() as session:
                stmt = select(Article.link).where(Article.feed_id == feed_id)
                result = await session.execute(stmt)
                seen = set(result.scalars().all())

                saved = 0
                for draft in drafts:
                    if draft.link in seen:
                        continue
                    session.add(
                        Article(
                            id=draft.id,
                            feed_id=feed_id,
                            title=draft.title,
                            link=draft.link,
                            content=draft.content,
                            summary=draft.summary,
                            author=draft.author,
                            pub_date=draft.pub_date,
                            is_read=False,
                            is_starred=False,
                            fetched_at=now,
                        )
                    )
                    # 同一批次内重复的 link 只保留第一条
                    seen.add(draft.link)
                    saved += 1

                feed = await session.get(Feed, feed_id)
                if feed is None:
                    raise NotFound(f"Feed not found: {feed_id}")
                feed.updated_at = now
                session.add(feed)

                await session.commit()
        except SQLAlchemyError as e:
            raise self._storage_error(e) from e

        return saved

    def _storage_error(self, error: SQLAlchemyError) -> StorageError:
        """记录存储错误，下一次调用时重新初始化数据库."""
        logger.error(f"数据库操作失败: {error}")
        self.database.mark_failed(error)
        return StorageError(f"Database error: {error}")

    def _record_failure(
        self,
        result: RefreshAllResult,
        feed: Feed,
        error: Exception,
    ) -> None:
        if isinstance(error, FeedMarkError):
            logger.warning(f"刷新订阅源失败: {feed.title} - {error}")
        else:
            logger.exception(f"刷新订阅源出现未预期的错误: {feed.title}", exc_info=error)
        result.errors.append(
            FeedFailure(feed_id=feed.id, feed_title=feed.title, error=str(error))
        )

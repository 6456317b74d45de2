"""测试配置和 fixtures."""

import asyncio
import uuid
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.api.deps import get_app_database, get_fetcher
from feedmark.fetcher.feed import DraftArticle
from feedmark.main import app
from feedmark.models.article import Article
from feedmark.models.database import Database
from feedmark.models.feed import Feed


class FakeFetcher:
    """按 URL 返回预设结果的抓取器."""

    def __init__(self) -> None:
        self.responses: dict[str, list[DraftArticle] | Exception] = {}
        self.delay = 0.0
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_feed(self, url: str) -> list[DraftArticle]:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            response = self.responses[url]
            if isinstance(response, Exception):
                raise response
            # 每次抓取都生成新的 id，与真实抓取器一致
            return [d.model_copy(update={"id": str(uuid.uuid4())}) for d in response]
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_draft() -> Callable[..., DraftArticle]:
    """创建 DraftArticle 的工厂."""

    def factory(link: str, title: str | None = None, pub_date: int = 1700000000) -> DraftArticle:
        return DraftArticle(
            id=str(uuid.uuid4()),
            title=title or f"Title {link}",
            link=link,
            content=f"Content of {link}",
            summary=f"Summary of {link}",
            author="Author",
            pub_date=pub_date,
        )

    return factory


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """预设结果的抓取器."""
    return FakeFetcher()


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """创建测试用的临时文件数据库."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def async_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """创建测试用的数据库会话."""
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    database: Database, fake_fetcher: FakeFetcher
) -> AsyncGenerator[AsyncClient, None]:
    """创建测试用的 HTTP 客户端."""
    app.state.database = database
    app.dependency_overrides[get_app_database] = lambda: database
    app.dependency_overrides[get_fetcher] = lambda: fake_fetcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def sample_feed(async_session: AsyncSession) -> Feed:
    """创建测试用的 Feed."""
    feed = Feed(
        id="feed-001",
        title="Test Feed",
        url="https://example.com/rss",
        description="A test feed",
    )
    async_session.add(feed)
    await async_session.commit()
    return feed


@pytest_asyncio.fixture
async def sample_articles(
    async_session: AsyncSession, sample_feed: Feed
) -> list[Article]:
    """创建测试用的文章列表."""
    articles = [
        Article(
            id="article-001",
            feed_id=sample_feed.id,
            title="Oldest",
            link="https://example.com/1",
            content="<p>Hello <b>world</b></p>",
            summary="Plain summary",
            pub_date=1700000000,
        ),
        Article(
            id="article-002",
            feed_id=sample_feed.id,
            title="Middle",
            link="https://example.com/2",
            content="Already **markdown**",
            pub_date=1700000100,
            is_read=True,
        ),
        Article(
            id="article-003",
            feed_id=sample_feed.id,
            title="Newest",
            link="https://example.com/3",
            content="Starred",
            pub_date=1700000200,
            is_starred=True,
        ),
    ]
    for article in articles:
        async_session.add(article)
    await async_session.commit()
    return articles

"""订阅源抓取与解析."""

import asyncio
import calendar
import logging
import re
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import feedparser
import httpx
from pydantic import BaseModel

from feedmark import __version__
from feedmark.errors import (
    FetchError,
    HttpError,
    NetworkError,
    NetworkTimeout,
    ParseError,
)
from feedmark.utils.clock import unix_now
from feedmark.utils.html_to_markdown import ensure_markdown

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"feedmark/{__version__} (+RSS reader)"
ACCEPT_HEADER = (
    "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
    "text/xml;q=0.9, */*;q=0.8"
)

SUMMARY_MAX_WORDS = 100
SUMMARY_MAX_CHARS = 200
_MARKDOWN_ESCAPE = re.compile(r"\\([!-/:-@\[-`{-~])")
_MARKDOWN_SYNTAX = re.compile(r"[#*_\[\]()]")


class DraftArticle(BaseModel):
    """解析后待入库的文章."""

    id: str
    title: str
    link: str
    content: str
    summary: str
    author: str | None = None
    pub_date: int


class FeedFetcher:
    """
    订阅源抓取器.

    先用 httpx 下载并解析（可区分超时、HTTP 错误和解析错误）；
    失败时再交给 feedparser 自己下载解析一次，两次都失败才报错，
    报错内容以第一次的结果为准。
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client

    @property
    def headers(self) -> dict[str, str]:
        """请求头."""
        return {"User-Agent": self.user_agent, "Accept": ACCEPT_HEADER}

    async def fetch_feed(self, url: str) -> list[DraftArticle]:
        """
        抓取并解析订阅源.

        Args:
            url: 订阅源 URL

        Returns:
            按源文档顺序排列的文章列表

        Raises:
            FetchError: 两种方式都失败时抛出第一次的错误
        """
        logger.info(f"抓取订阅源: {url}")

        try:
            parsed = await self._fetch_strict(url)
        except FetchError as primary:
            logger.warning(f"直接抓取失败，尝试 feedparser 回退: {url} - {primary}")
            try:
                parsed = await self._fetch_permissive(url)
            except FetchError as fallback:
                logger.warning(f"回退抓取同样失败: {url} - {fallback}")
                raise primary from fallback

        articles = convert_entries(parsed)
        logger.info(f"解析到 {len(articles)} 篇文章: {url}")
        return articles

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(follow_redirects=True) as client:
            yield client

    async def _fetch_strict(self, url: str) -> feedparser.FeedParserDict:
        """httpx 下载 + feedparser 解析."""
        async with self._http_client() as client:
            try:
                response = await client.get(
                    url,
                    headers=self.headers,
                    timeout=self.timeout,
                )
            except httpx.TimeoutException as e:
                raise NetworkTimeout(url, self.timeout) from e
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise NetworkError(f"Network error: {e}") from e

        if not response.is_success:
            raise HttpError(response.status_code)

        return parse_document(response.content)

    async def _fetch_permissive(self, url: str) -> feedparser.FeedParserDict:
        """feedparser 自带的下载解析（兼容一些特殊源）."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(download_and_parse, url, self.user_agent),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NetworkTimeout(url, self.timeout) from e


def parse_document(content: bytes | str) -> feedparser.FeedParserDict:
    """解析 RSS/Atom 文档."""
    # iframe / video 由 Markdown 转换处理，不使用 feedparser 的清洗
    parsed = feedparser.parse(content, sanitize_html=False)
    _check_parsed(parsed)
    return parsed


def download_and_parse(url: str, user_agent: str) -> feedparser.FeedParserDict:
    """由 feedparser 下载并解析（阻塞调用）."""
    parsed = feedparser.parse(
        url,
        agent=user_agent,
        request_headers={"Accept": ACCEPT_HEADER},
        sanitize_html=False,
    )
    # feedparser 跟随重定向后 status 为 301/302 等，只有 4xx/5xx 算失败
    status = parsed.get("status")
    if status is not None and status >= 400:
        raise HttpError(status)
    _check_parsed(parsed)
    return parsed


def _check_parsed(parsed: feedparser.FeedParserDict) -> None:
    if parsed.entries:
        return
    if parsed.bozo:
        raise ParseError(f"Invalid feed: {parsed.get('bozo_exception')}")
    if not parsed.get("version"):
        raise ParseError("Invalid feed: not an RSS/Atom document")


def convert_entries(parsed: feedparser.FeedParserDict) -> list[DraftArticle]:
    """将 feedparser 条目转换为 DraftArticle."""
    now = unix_now()
    feed_title = parsed.feed.get("title") or None

    articles: list[DraftArticle] = []
    for entry in parsed.entries:
        html_content = _pick_content(entry)
        raw_summary = entry.get("summary") or ""
        html_summary = raw_summary if raw_summary != html_content else ""

        content = ensure_markdown(html_content)
        summary = (
            ensure_markdown(html_summary) if html_summary else create_summary(content)
        )

        articles.append(
            DraftArticle(
                id=str(uuid.uuid4()),
                title=(entry.get("title") or "").strip() or "Untitled",
                link=_pick_link(entry),
                content=content,
                summary=summary,
                author=entry.get("author") or feed_title,
                pub_date=_pick_pub_date(entry, now),
            )
        )

    return articles


def create_summary(markdown: str) -> str:
    """从 Markdown 正文生成纯文本摘要."""
    text = _MARKDOWN_ESCAPE.sub(r"\1", markdown)
    text = _MARKDOWN_SYNTAX.sub("", text)
    words = text.split()[:SUMMARY_MAX_WORDS]
    summary = " ".join(words)

    if len(summary) > SUMMARY_MAX_CHARS:
        return summary[:SUMMARY_MAX_CHARS] + "..."
    return summary


def _pick_content(entry: dict[str, Any]) -> str:
    """按保真度选择正文：HTML content > 其他 content > summary."""
    contents = [c for c in entry.get("content") or [] if c.get("value")]
    for item in contents:
        if "html" in (item.get("type") or ""):
            return item["value"]
    if contents:
        return contents[0]["value"]
    return entry.get("summary") or ""


def _pick_link(entry: dict[str, Any]) -> str:
    link = (entry.get("link") or "").strip()
    if link:
        return link
    guid = (entry.get("id") or "").strip()
    if guid:
        return guid
    return str(uuid.uuid4())


def _pick_pub_date(entry: dict[str, Any], fallback: int) -> int:
    for field in ("published_parsed", "updated_parsed"):
        value = entry.get(field)
        if value:
            try:
                return calendar.timegm(value)
            except (TypeError, ValueError, OverflowError):
                continue
    return fallback

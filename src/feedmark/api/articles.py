"""文章 API."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedmark.api.deps import get_session
from feedmark.models.article import Article
from feedmark.utils.html_to_markdown import ensure_markdown

router = APIRouter(prefix="/api/articles", tags=["articles"])


class ReadUpdate(BaseModel):
    """已读状态."""

    read: bool


class StarredUpdate(BaseModel):
    """收藏状态."""

    starred: bool


def article_to_dict(article: Article) -> dict:
    """Article 转换为响应格式（兼容早期以 HTML 存储的内容）."""
    return {
        "id": article.id,
        "feedId": article.feed_id,
        "title": article.title,
        "link": article.link,
        "content": ensure_markdown(article.content),
        "summary": ensure_markdown(article.summary),
        "author": article.author,
        "pubDate": article.pub_date,
        "isRead": article.is_read,
        "isStarred": article.is_starred,
        "fetchedAt": article.fetched_at,
    }


@router.get("")
async def list_articles(
    feed_id: str | None = Query(None, alias="feedId", description="按 Feed 筛选"),
    filter: Literal["all", "unread", "starred"] = Query(
        "all", description="筛选条件"
    ),
    limit: int = Query(100, ge=1, description="数量"),
    offset: int = Query(0, ge=0, description="偏移"),
    session: AsyncSession = Depends(get_session),
) -> list[dict]:
    """获取文章列表（按发布时间倒序）."""
    stmt = select(Article)
    if feed_id:
        stmt = stmt.where(Article.feed_id == feed_id)
    if filter == "unread":
        stmt = stmt.where(Article.is_read == False)  # noqa: E712
    elif filter == "starred":
        stmt = stmt.where(Article.is_starred == True)  # noqa: E712
    stmt = stmt.order_by(Article.pub_date.desc()).offset(offset).limit(limit)

    result = await session.execute(stmt)
    return [article_to_dict(article) for article in result.scalars().all()]


async def _get_article(session: AsyncSession, article_id: str) -> Article:
    article = await session.get(Article, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="文章不存在")
    return article


@router.patch("/{article_id}/read")
async def mark_read(
    article_id: str,
    body: ReadUpdate,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """标记已读/未读."""
    article = await _get_article(session, article_id)
    article.is_read = body.read
    session.add(article)
    await session.commit()
    return {"success": True}


@router.patch("/{article_id}/starred")
async def mark_starred(
    article_id: str,
    body: StarredUpdate,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """收藏/取消收藏."""
    article = await _get_article(session, article_id)
    article.is_starred = body.starred
    session.add(article)
    await session.commit()
    return {"success": True}

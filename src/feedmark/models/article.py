"""Article 文章模型."""

import uuid

from sqlmodel import Field, SQLModel

from feedmark.utils.clock import unix_now


class Article(SQLModel, table=True):
    """RSS 文章.

    同一 feed 内 link 唯一，是唯一的去重键；入库后只有 is_read/is_starred 会变化。
    """

    __tablename__ = "articles"  # type: ignore[assignment]

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    feed_id: str = Field(foreign_key="feeds.id", index=True, description="关联 Feed")
    title: str = Field(description="标题")
    link: str = Field(description="原文链接（去重键）")
    content: str = Field(default="", description="Markdown 正文")
    summary: str = Field(default="", description="Markdown 摘要")
    author: str | None = Field(default=None, description="作者")
    pub_date: int = Field(default_factory=unix_now, description="发布时间")
    is_read: bool = Field(default=False, index=True, description="是否已读")
    is_starred: bool = Field(default=False, index=True, description="是否收藏")
    fetched_at: int = Field(default_factory=unix_now, description="抓取时间")

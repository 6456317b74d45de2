"""Feed 订阅源模型."""

import uuid

from sqlmodel import Field, SQLModel

from feedmark.utils.clock import unix_now


class Feed(SQLModel, table=True):
    """RSS 订阅源."""

    __tablename__ = "feeds"  # type: ignore[assignment]

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        description="订阅源 ID",
    )
    title: str = Field(description="Feed 标题")
    url: str = Field(unique=True, description="Feed URL")
    description: str | None = Field(default=None, description="描述")
    image_url: str | None = Field(default=None, description="图标 URL")
    category: str | None = Field(default=None, description="分类")
    created_at: int = Field(default_factory=unix_now)
    updated_at: int = Field(default_factory=unix_now, description="最近一次刷新时间")

"""Translation 翻译缓存模型."""

from sqlmodel import Field, SQLModel

from feedmark.utils.clock import unix_now


class Translation(SQLModel, table=True):
    """文章译文缓存（重新翻译时覆盖）."""

    __tablename__ = "translations"  # type: ignore[assignment]

    article_id: str = Field(
        foreign_key="articles.id", primary_key=True, description="关联文章"
    )
    content: str = Field(description="译文")
    created_at: int = Field(default_factory=unix_now)

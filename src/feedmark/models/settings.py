"""Setting 键值配置模型."""

from sqlmodel import Field, SQLModel

from feedmark.utils.clock import unix_now


class Setting(SQLModel, table=True):
    """键值配置（翻译服务地址、key、模型等）.

    与环境变量中的同名配置并存，读取时以这里的值为准。
    """

    __tablename__ = "settings"  # type: ignore[assignment]

    key: str = Field(primary_key=True)
    value: str
    updated_at: int = Field(default_factory=unix_now)

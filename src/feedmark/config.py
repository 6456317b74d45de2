"""应用配置管理."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from feedmark import __version__


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 存储配置
    data_dir: Path = Path.home() / ".feedmark"
    database_url: str = ""

    # 抓取配置
    fetch_timeout_seconds: float = 15.0
    refresh_timeout_seconds: float = 30.0
    refresh_concurrency: int = 5
    user_agent: str = f"feedmark/{__version__} (+RSS reader)"

    # 翻译配置（可被 settings 表中的同名键覆盖）
    translation_base_url: str = "https://libretranslate.com"
    translation_api_key: str = ""
    translation_model: str = "gpt-3.5-turbo"
    translation_prompt: str = ""
    translation_target_lang: str = "zh"

    def resolved_database_url(self) -> str:
        """返回数据库连接串，未配置时使用数据目录下的 data.db."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'data.db'}"


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()

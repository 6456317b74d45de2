"""翻译服务 - 读取配置、调用 Provider、缓存译文."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.config import Settings, get_settings
from feedmark.core.settings import SettingsStore
from feedmark.errors import NotFound
from feedmark.models.article import Article
from feedmark.models.translation import Translation
from feedmark.translate import (
    TranslationProvider,
    TranslationSettings,
    create_translation_provider,
)
from feedmark.utils.clock import unix_now

logger = logging.getLogger(__name__)

# settings 表中的键，覆盖环境变量中的同名配置
SETTING_KEYS = (
    "translation_base_url",
    "translation_api_key",
    "translation_model",
    "translation_prompt",
)


class TranslationService:
    """翻译服务."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.store = SettingsStore(session)

    async def get_effective_setting(self, key: str) -> str:
        """获取有效配置（settings 表优先，其次环境变量）."""
        value = await self.store.get(key)
        if value:
            return value
        return str(getattr(self.settings, key))

    async def load_settings(self) -> TranslationSettings:
        """加载当前的翻译配置."""
        values = {key: await self.get_effective_setting(key) for key in SETTING_KEYS}
        return TranslationSettings(
            base_url=values["translation_base_url"],
            api_key=values["translation_api_key"],
            model=values["translation_model"],
            prompt=values["translation_prompt"],
        )

    async def create_provider(self) -> TranslationProvider:
        """按当前配置创建 Provider."""
        return create_translation_provider(await self.load_settings())

    async def translate(self, text: str, target_lang: str | None = None) -> str:
        """翻译文本."""
        target = target_lang or self.settings.translation_target_lang
        provider = await self.create_provider()
        logger.info(
            f"翻译文本: provider={type(provider).__name__}, "
            f"target={target}, length={len(text)}"
        )
        return await provider.translate(text, target)

    async def save(self, article_id: str, content: str) -> None:
        """保存译文，已存在时覆盖."""
        article = await self.session.get(Article, article_id)
        if not article:
            raise NotFound(f"Article not found: {article_id}")

        translation = await self.session.get(Translation, article_id)
        if translation:
            translation.content = content
            translation.created_at = unix_now()
        else:
            translation = Translation(article_id=article_id, content=content)
        self.session.add(translation)
        await self.session.commit()

    async def get(self, article_id: str) -> str | None:
        """获取缓存的译文."""
        translation = await self.session.get(Translation, article_id)
        return translation.content if translation else None

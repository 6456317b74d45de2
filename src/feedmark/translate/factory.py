"""翻译 Provider 工厂."""

from feedmark.translate.base import TranslationProvider, TranslationSettings
from feedmark.translate.libre import LibreTranslator
from feedmark.translate.openai import OpenAITranslator


def is_openai_compatible(settings: TranslationSettings) -> bool:
    """根据服务地址和 key 判断是否为 OpenAI 兼容接口."""
    base_url = settings.base_url.rstrip("/").lower()
    if "openai" in base_url or base_url.endswith("/v1"):
        return True
    # 配置了 key 且不是 LibreTranslate，按 OpenAI 兼容处理
    return bool(settings.api_key) and "libretranslate" not in base_url


def create_translation_provider(settings: TranslationSettings) -> TranslationProvider:
    """根据配置创建翻译 Provider."""
    if is_openai_compatible(settings):
        return OpenAITranslator(settings)
    return LibreTranslator(settings)

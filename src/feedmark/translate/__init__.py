"""翻译服务."""

from feedmark.translate.base import TranslationProvider, TranslationSettings
from feedmark.translate.factory import create_translation_provider, is_openai_compatible
from feedmark.translate.libre import LibreTranslator
from feedmark.translate.openai import OpenAITranslator

__all__ = [
    "LibreTranslator",
    "OpenAITranslator",
    "TranslationProvider",
    "TranslationSettings",
    "create_translation_provider",
    "is_openai_compatible",
]

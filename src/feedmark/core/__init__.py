"""核心业务逻辑."""

from feedmark.core.refresh import (
    FeedFailure,
    RefreshAllResult,
    RefreshResult,
    RefreshService,
)
from feedmark.core.settings import SettingsStore
from feedmark.core.translation import TranslationService

__all__ = [
    "FeedFailure",
    "RefreshAllResult",
    "RefreshResult",
    "RefreshService",
    "SettingsStore",
    "TranslationService",
]

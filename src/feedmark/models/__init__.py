"""数据模型."""

from feedmark.models.article import Article
from feedmark.models.database import Database
from feedmark.models.feed import Feed
from feedmark.models.settings import Setting
from feedmark.models.translation import Translation

__all__ = [
    "Article",
    "Database",
    "Feed",
    "Setting",
    "Translation",
]

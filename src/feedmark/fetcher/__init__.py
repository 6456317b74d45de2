"""订阅源抓取模块."""

from feedmark.fetcher.feed import DraftArticle, FeedFetcher, create_summary

__all__ = [
    "DraftArticle",
    "FeedFetcher",
    "create_summary",
]

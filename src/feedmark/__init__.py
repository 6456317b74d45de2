"""feedmark - 个人 RSS 阅读器后端."""

__version__ = "0.1.0"

"""异常定义."""


class FeedMarkError(Exception):
    """所有业务异常的基类."""


class FetchError(FeedMarkError):
    """订阅源抓取失败."""


class NetworkTimeout(FetchError):
    """请求超时."""

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s")


class NetworkError(FetchError):
    """网络连接错误（DNS、连接被拒绝等）."""


class HttpError(FetchError):
    """源站返回非 2xx 状态码."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class ParseError(FetchError):
    """文档不是有效的 RSS/Atom."""


class NotFound(FeedMarkError):
    """资源不存在."""


class StorageError(FeedMarkError):
    """数据库读写失败."""


class StorageUnavailable(StorageError):
    """数据库无法初始化或连接."""


class FeedRefreshError(FeedMarkError):
    """单个订阅源刷新失败，携带订阅源标题用于展示."""

    def __init__(self, feed_title: str, cause: Exception) -> None:
        self.feed_title = feed_title
        self.cause = cause
        super().__init__(f"{feed_title}: {cause}")


class TranslationError(FeedMarkError):
    """翻译服务调用失败."""

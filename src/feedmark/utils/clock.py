"""时间工具."""

import time


def unix_now() -> int:
    """当前 unix 时间戳（秒）."""
    return int(time.time())

"""feedmark 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feedmark import __version__
from feedmark.api import articles, feeds, settings, translation
from feedmark.config import get_settings
from feedmark.errors import StorageUnavailable
from feedmark.fetcher.feed import FeedFetcher
from feedmark.models.database import Database

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    # 数据目录由入口创建
    app_settings.data_dir.mkdir(parents=True, exist_ok=True)

    database = Database(app_settings.resolved_database_url())
    try:
        await database.connect()
    except StorageUnavailable as e:
        # 不阻止启动，请求时会再次尝试初始化
        logger.error(f"数据库初始化失败，稍后重试: {e}")

    app.state.database = database
    app.state.fetcher = FeedFetcher(
        timeout=app_settings.fetch_timeout_seconds,
        user_agent=app_settings.user_agent,
    )

    logger.info("feedmark 启动完成！")
    yield

    # 关闭时清理
    logger.info("正在关闭...")
    await database.close()
    logger.info("feedmark 已关闭")


app = FastAPI(
    title="feedmark",
    description="个人 RSS 阅读器 - 订阅源抓取与 Markdown 规范化",
    version=__version__,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(feeds.router)
app.include_router(articles.router)
app.include_router(settings.router)
app.include_router(translation.router)
app.include_router(translation.translations_router)


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(
    request: Request, exc: StorageUnavailable
) -> JSONResponse:
    """数据库不可用时返回 503."""
    logger.error(f"数据库不可用: {request.method} {request.url.path} - {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "feedmark",
        "version": __version__,
        "description": "个人 RSS 阅读器",
    }


@app.get("/health")
async def health(request: Request) -> dict:
    """健康检查."""
    database: Database = request.app.state.database
    return {"status": "ok", "database": database.status()}


def main() -> None:
    """命令行入口."""
    import uvicorn

    uvicorn.run(
        "feedmark.main:app",
        host="0.0.0.0",
        port=8000,
    )


if __name__ == "__main__":
    main()

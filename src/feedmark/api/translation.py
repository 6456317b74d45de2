"""翻译 API."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.api.deps import get_session
from feedmark.core.translation import TranslationService
from feedmark.errors import NotFound, TranslationError
from feedmark.utils.html_to_markdown import ensure_markdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/translate", tags=["translation"])
translations_router = APIRouter(prefix="/api/translations", tags=["translation"])


class TranslateRequest(BaseModel):
    """翻译请求."""

    text: str
    target_lang: str | None = Field(default=None, alias="targetLang")


class SaveTranslationRequest(BaseModel):
    """保存译文请求."""

    article_id: str = Field(alias="articleId")
    content: str


@router.post("")
async def translate(
    body: TranslateRequest,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """翻译文本."""
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="text 不能为空")

    try:
        translated = await TranslationService(session).translate(
            body.text, body.target_lang
        )
    except TranslationError as e:
        logger.warning(f"翻译失败: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    return {"translatedText": translated}


@translations_router.post("/save")
async def save_translation(
    body: SaveTranslationRequest,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """保存译文（覆盖旧译文）."""
    try:
        await TranslationService(session).save(body.article_id, body.content)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="文章不存在") from e
    return {"success": True}


@translations_router.get("/{article_id}")
async def get_translation(
    article_id: str,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取缓存的译文."""
    content = await TranslationService(session).get(article_id)
    return {"content": ensure_markdown(content) if content else None}

"""设置 API."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.api.deps import get_session
from feedmark.core.settings import SettingsStore

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingValue(BaseModel):
    """配置值."""

    value: str


@router.get("/{key}")
async def get_setting(
    key: str,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """读取配置项，不存在时 value 为 null."""
    return {"value": await SettingsStore(session).get(key)}


@router.put("/{key}")
async def put_setting(
    key: str,
    body: SettingValue,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """写入配置项."""
    await SettingsStore(session).set(key, body.value)
    return {"success": True}

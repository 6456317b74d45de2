"""键值配置存储."""

from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.models.settings import Setting
from feedmark.utils.clock import unix_now


class SettingsStore:
    """settings 表读写."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, key: str) -> str | None:
        """读取配置值，不存在时返回 None."""
        setting = await self.session.get(Setting, key)
        return setting.value if setting else None

    async def set(self, key: str, value: str) -> None:
        """写入配置值（存在则覆盖）."""
        setting = await self.session.get(Setting, key)
        if setting:
            setting.value = value
            setting.updated_at = unix_now()
        else:
            setting = Setting(key=key, value=value)
        self.session.add(setting)
        await self.session.commit()

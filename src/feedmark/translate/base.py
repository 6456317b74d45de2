"""翻译服务抽象基类."""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class TranslationSettings(BaseModel):
    """翻译配置."""

    base_url: str
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    prompt: str = ""


class TranslationProvider(ABC):
    """翻译服务提供者抽象基类."""

    def __init__(self, settings: TranslationSettings) -> None:
        self.settings = settings

    @property
    def base_url(self) -> str:
        """去掉末尾斜杠的服务地址."""
        return self.settings.base_url.rstrip("/")

    @abstractmethod
    async def translate(self, text: str, target_lang: str) -> str:
        """翻译文本，返回译文."""
        ...

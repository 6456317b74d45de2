"""OpenAI 兼容接口翻译 Provider."""

from typing import Any

from openai import APIError, AsyncOpenAI

from feedmark.errors import TranslationError
from feedmark.translate.base import TranslationProvider, TranslationSettings

DEFAULT_PROMPT = (
    "You are a professional translator. Translate the following Markdown text "
    "while preserving all Markdown formatting (links, images, code blocks, etc.). "
    "Only translate the readable text content, keep URLs and Markdown syntax unchanged."
)
TEMPERATURE = 0.3


class OpenAITranslator(TranslationProvider):
    """通过 chat completions 接口翻译 Markdown."""

    def __init__(
        self,
        settings: TranslationSettings,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(settings)
        # 部分兼容服务不校验 key，但 SDK 要求非空
        self.client = client or AsyncOpenAI(
            api_key=settings.api_key or "not-needed",
            base_url=self.base_url,
        )

    def system_prompt(self, target_lang: str) -> str:
        """构建系统提示词."""
        prompt = self.settings.prompt or DEFAULT_PROMPT
        return f"{prompt}\nTarget language: {target_lang}"

    async def translate(self, text: str, target_lang: str) -> str:
        """翻译文本."""
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt(target_lang)},
            {"role": "user", "content": text},
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.settings.model,
                messages=messages,
                temperature=TEMPERATURE,
            )
        except APIError as e:
            status = getattr(e, "status_code", None) or "network"
            raise TranslationError(f"OpenAI API error ({status}): {e.message}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

"""LibreTranslate 翻译 Provider."""

from typing import Any

import httpx

from feedmark.errors import TranslationError
from feedmark.translate.base import TranslationProvider, TranslationSettings


class LibreTranslator(TranslationProvider):
    """LibreTranslate 及其兼容服务."""

    def __init__(
        self,
        settings: TranslationSettings,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(settings)
        self._client = client
        self.timeout = timeout

    async def translate(self, text: str, target_lang: str) -> str:
        """翻译文本."""
        payload: dict[str, Any] = {
            "q": text,
            "source": "auto",
            "target": target_lang,
            "format": "text",
        }
        if self.settings.api_key:
            payload["api_key"] = self.settings.api_key

        url = f"{self.base_url}/translate"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise TranslationError(f"LibreTranslate request failed: {e}") from e

        if not response.is_success:
            raise TranslationError(
                f"LibreTranslate error ({response.status_code}): {response.text}"
            )

        data = response.json()
        return data.get("translatedText") or ""

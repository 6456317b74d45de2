"""测试翻译服务和端点."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from feedmark.config import Settings
from feedmark.core import translation as translation_module
from feedmark.core.settings import SettingsStore
from feedmark.core.translation import TranslationService
from feedmark.errors import TranslationError
from feedmark.models.article import Article
from feedmark.translate import (
    LibreTranslator,
    OpenAITranslator,
    TranslationSettings,
    create_translation_provider,
    is_openai_compatible,
)
from feedmark.translate.openai import DEFAULT_PROMPT


class StubProvider:
    """返回固定格式译文的 Provider."""

    def __init__(self, settings: TranslationSettings) -> None:
        self.settings = settings

    async def translate(self, text: str, target_lang: str) -> str:
        return f"[{target_lang}] {text}"


class FailingProvider(StubProvider):
    async def translate(self, text: str, target_lang: str) -> str:
        raise TranslationError("LibreTranslate error (400): bad request")


class TestProviderSelection:
    """测试 Provider 选择."""

    @pytest.mark.parametrize(
        ("base_url", "api_key", "expected"),
        [
            ("https://api.openai.com/v1", "", True),
            ("http://localhost:11434/v1/", "", True),
            ("https://libretranslate.com", "", False),
            ("https://libretranslate.com", "secret", False),
            ("https://translate.example", "secret", True),
            ("https://translate.example", "", False),
        ],
    )
    def test_is_openai_compatible(self, base_url: str, api_key: str, expected: bool) -> None:
        """根据地址和 key 判断接口类型."""
        settings = TranslationSettings(base_url=base_url, api_key=api_key)
        assert is_openai_compatible(settings) is expected

    def test_factory(self) -> None:
        """工厂返回对应的 Provider."""
        libre = create_translation_provider(
            TranslationSettings(base_url="https://libretranslate.com")
        )
        openai = create_translation_provider(
            TranslationSettings(base_url="https://api.openai.com/v1", api_key="sk")
        )
        assert isinstance(libre, LibreTranslator)
        assert isinstance(openai, OpenAITranslator)


class TestLibreTranslator:
    """测试 LibreTranslate Provider."""

    async def test_translate(self) -> None:
        """请求体格式正确并返回译文."""
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read().decode()
            return httpx.Response(200, json={"translatedText": "你好"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        translator = LibreTranslator(
            TranslationSettings(base_url="https://libre.example/", api_key="k"),
            client=client,
        )

        assert await translator.translate("Hello", "zh") == "你好"
        assert seen["url"] == "https://libre.example/translate"
        assert '"q":"Hello"' in seen["body"].replace(" ", "")
        assert '"source":"auto"' in seen["body"].replace(" ", "")
        assert '"api_key":"k"' in seen["body"].replace(" ", "")

    async def test_error_status(self) -> None:
        """非 2xx 响应抛出 TranslationError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="bad request")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        translator = LibreTranslator(
            TranslationSettings(base_url="https://libre.example"), client=client
        )

        with pytest.raises(TranslationError) as exc_info:
            await translator.translate("Hello", "zh")
        assert str(exc_info.value) == "LibreTranslate error (400): bad request"


class TestOpenAITranslator:
    """测试 OpenAI 兼容 Provider."""

    def _client(self, content: str | None) -> MagicMock:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
            )
        )
        return client

    async def test_default_prompt(self) -> None:
        """默认提示词要求保留 Markdown 格式."""
        client = self._client("你好")
        translator = OpenAITranslator(
            TranslationSettings(base_url="https://api.openai.com/v1", model="m"),
            client=client,
        )

        assert await translator.translate("Hello", "zh") == "你好"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"][0]["content"].startswith(DEFAULT_PROMPT)
        assert "Target language: zh" in kwargs["messages"][0]["content"]
        assert kwargs["messages"][1] == {"role": "user", "content": "Hello"}

    async def test_custom_prompt_and_empty_reply(self) -> None:
        """自定义提示词；空响应返回空字符串."""
        client = self._client(None)
        translator = OpenAITranslator(
            TranslationSettings(base_url="https://api.openai.com/v1", prompt="Be terse."),
            client=client,
        )

        assert await translator.translate("Hello", "fr") == ""
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0]["content"].startswith("Be terse.")


class TestTranslationService:
    """测试翻译服务."""

    async def test_stored_settings_override_environment(
        self, async_session: AsyncSession
    ) -> None:
        """settings 表中的配置优先."""
        env = Settings(
            translation_base_url="https://env.example",
            translation_model="env-model",
        )
        await SettingsStore(async_session).set("translation_base_url", "https://db.example")

        loaded = await TranslationService(async_session, env).load_settings()

        assert loaded.base_url == "https://db.example"
        assert loaded.model == "env-model"
        assert loaded.api_key == ""


class TestTranslationEndpoints:
    """测试翻译端点."""

    async def test_translate(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """返回译文."""
        monkeypatch.setattr(translation_module, "create_translation_provider", StubProvider)

        response = await client.post(
            "/api/translate", json={"text": "Hello", "targetLang": "fr"}
        )
        assert response.status_code == 200
        assert response.json() == {"translatedText": "[fr] Hello"}

    async def test_translate_error(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """翻译服务失败返回 502."""
        monkeypatch.setattr(
            translation_module, "create_translation_provider", FailingProvider
        )

        response = await client.post("/api/translate", json={"text": "Hello"})
        assert response.status_code == 502
        assert response.json()["detail"] == "LibreTranslate error (400): bad request"

    async def test_translate_empty_text(self, client: AsyncClient) -> None:
        """空文本返回 400."""
        response = await client.post("/api/translate", json={"text": "  "})
        assert response.status_code == 400

    async def test_save_and_get(
        self, client: AsyncClient, sample_articles: list[Article]
    ) -> None:
        """保存译文后可以读取，再次保存覆盖."""
        response = await client.post(
            "/api/translations/save",
            json={"articleId": "article-001", "content": "<p>你好</p>"},
        )
        assert response.json() == {"success": True}
        await client.post(
            "/api/translations/save",
            json={"articleId": "article-001", "content": "<p>你好 <b>世界</b></p>"},
        )

        response = await client.get("/api/translations/article-001")
        assert response.json() == {"content": "你好 **世界**"}

    async def test_get_missing(self, client: AsyncClient) -> None:
        """没有译文时返回 null."""
        response = await client.get("/api/translations/missing")
        assert response.json() == {"content": None}

    async def test_save_for_missing_article(self, client: AsyncClient) -> None:
        """文章不存在返回 404."""
        response = await client.post(
            "/api/translations/save",
            json={"articleId": "missing", "content": "x"},
        )
        assert response.status_code == 404

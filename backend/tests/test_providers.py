from types import SimpleNamespace

import anthropic
import httpx
import openai
import pytest
from google.api_core import exceptions as google_exceptions

from core import config
from hint_engine.errors import (
    ProviderError,
    ProviderRateLimited,
    ProviderUnauthorized,
    ProviderUnconfigured,
)
from hint_engine.providers.anthropic_provider import AnthropicProvider
from hint_engine.providers.base import ImagePayload, parse_image
from hint_engine.providers.gemini_provider import GeminiProvider
from hint_engine.providers.openai_provider import OpenAIProvider
from hint_engine.providers.registry import build_provider


def _http_response(status: int, url: str) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url))


OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


def test_parse_image_accepts_data_url_and_bare_base64():
    payload = parse_image("data:image/jpeg;base64,QUJD")
    assert payload == ImagePayload(media_type="image/jpeg", data="QUJD")
    assert payload.raw_bytes() == b"ABC"

    bare = parse_image("QUJD")
    assert bare.media_type == "image/png"
    assert bare.data_url == "data:image/png;base64,QUJD"

    assert parse_image(None) is None


@pytest.mark.asyncio
async def test_openai_generate_sends_system_and_user_messages(monkeypatch):
    provider = OpenAIProvider(api_key="test-key", model="gpt-4o-mini")
    seen = {}

    async def fake_create(**kwargs):
        seen.update(kwargs)
        message = SimpleNamespace(content="  Consider a sliding window.  ")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    monkeypatch.setattr(provider.client.chat.completions, "create", fake_create)

    text = await provider.generate("system rules", "user question", 0.5, 200, image="data:image/png;base64,AAAA")

    assert text == "Consider a sliding window."
    assert seen["model"] == "gpt-4o-mini"
    assert seen["max_tokens"] == 200
    assert seen["messages"][0] == {"role": "system", "content": "system rules"}
    user_content = seen["messages"][1]["content"]
    assert user_content[0] == {"type": "text", "text": "user question"}
    assert user_content[1]["image_url"]["url"] == "data:image/png;base64,AAAA"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,expected",
    [
        (openai.AuthenticationError("bad key", response=_http_response(401, OPENAI_URL), body=None), ProviderUnauthorized),
        (openai.RateLimitError("slow down", response=_http_response(429, OPENAI_URL), body=None), ProviderRateLimited),
        (openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL)), ProviderError),
    ],
)
async def test_openai_errors_are_mapped(monkeypatch, error, expected):
    provider = OpenAIProvider(api_key="test-key")

    async def fake_create(**kwargs):
        raise error

    monkeypatch.setattr(provider.client.chat.completions, "create", fake_create)

    with pytest.raises(expected):
        await provider.generate("s", "u", 0.5, 100)


@pytest.mark.asyncio
async def test_provider_without_key_is_unconfigured():
    provider = OpenAIProvider(api_key="")

    assert provider.client is None
    with pytest.raises(ProviderUnconfigured):
        await provider.generate("s", "u", 0.5, 100)


@pytest.mark.asyncio
async def test_anthropic_generate_joins_text_blocks(monkeypatch):
    provider = AnthropicProvider(api_key="test-key")
    seen = {}

    async def fake_create(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(content=[
            SimpleNamespace(type="text", text="What happens "),
            SimpleNamespace(type="text", text="when the input is empty? "),
        ])

    monkeypatch.setattr(provider.client.messages, "create", fake_create)

    text = await provider.generate("rules", "question", 0.4, 250, image="QUJD")

    assert text == "What happens when the input is empty?"
    assert seen["system"] == "rules"
    content = seen["messages"][0]["content"]
    assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "QUJD"}
    assert content[1] == {"type": "text", "text": "question"}


@pytest.mark.asyncio
async def test_anthropic_rate_limit_is_mapped(monkeypatch):
    provider = AnthropicProvider(api_key="test-key")

    async def fake_create(**kwargs):
        raise anthropic.RateLimitError("busy", response=_http_response(429, ANTHROPIC_URL), body=None)

    monkeypatch.setattr(provider.client.messages, "create", fake_create)

    with pytest.raises(ProviderRateLimited):
        await provider.generate("s", "u", 0.5, 100)


class _FakeGeminiModel:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.parts = None

    async def generate_content_async(self, parts, generation_config=None):
        self.parts = parts
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_gemini_generate_returns_text(monkeypatch):
    provider = GeminiProvider(api_key="test-key")
    model = _FakeGeminiModel(result=SimpleNamespace(text=" Think in terms of two pointers. "))
    monkeypatch.setattr(provider, "_model", lambda system_prompt: model)

    text = await provider.generate("rules", "question", 0.5, 200, image="QUJD")

    assert text == "Think in terms of two pointers."
    assert model.parts[0] == "question"
    assert model.parts[1] == {"mime_type": "image/png", "data": b"ABC"}


@pytest.mark.asyncio
async def test_gemini_quota_is_rate_limited(monkeypatch):
    provider = GeminiProvider(api_key="test-key")
    model = _FakeGeminiModel(error=google_exceptions.ResourceExhausted("quota exceeded"))
    monkeypatch.setattr(provider, "_model", lambda system_prompt: model)

    with pytest.raises(ProviderRateLimited):
        await provider.generate("s", "u", 0.5, 100)


def test_registry_resolves_aliases(monkeypatch):
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "anthropic-key")

    provider = build_provider("claude")

    assert isinstance(provider, AnthropicProvider)
    assert provider.model == config.ANTHROPIC_MODEL


def test_registry_uses_configured_default(monkeypatch):
    monkeypatch.setattr(config, "LLM_PROVIDER", "openai")
    monkeypatch.setattr(config, "OPENAI_API_KEY", "openai-key")

    assert isinstance(build_provider(), OpenAIProvider)


def test_registry_returns_none_when_unusable(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", "")

    assert build_provider("gemini") is None
    assert build_provider("mistral") is None

"""
Tests for backend.llm.client — the OpenAI-compatible wrapper.

openai.AsyncOpenAI is replaced with a fake, or backed by an httpx.MockTransport;
no network calls are made.
"""

import base64
from types import SimpleNamespace

import httpx
import openai
import pytest

from backend.llm import client as llm_client
from backend.llm.client import call_llm, image_part


class _FakeOpenAI:
    """Stands in for openai.AsyncOpenAI; replies are popped from a script."""

    script: list = []
    requests: list = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def _create(self, **kwargs):
        type(self).requests.append(kwargs)
        reply = type(self).script.pop(0)
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def fake_openai(monkeypatch):
    _FakeOpenAI.script = []
    _FakeOpenAI.requests = []
    monkeypatch.setattr(llm_client.openai, "AsyncOpenAI", _FakeOpenAI)
    return _FakeOpenAI


def test_image_part_is_data_url():
    part = image_part(b"\xff\xd8jpeg", "image/jpeg")
    assert part["type"] == "image_url"
    prefix, encoded = part["image_url"]["url"].split(",", 1)
    assert prefix == "data:image/jpeg;base64"
    assert base64.b64decode(encoded) == b"\xff\xd8jpeg"


class TestCallLlm:
    @pytest.mark.asyncio
    async def test_returns_stripped_text(self, fake_openai):
        fake_openai.script = ["  # Jane Doe\n"]
        result = await call_llm([{"role": "user", "content": "hi"}], model="m")
        assert result == "# Jane Doe"
        assert fake_openai.requests[0]["model"] == "m"
        assert "response_format" not in fake_openai.requests[0]

    @pytest.mark.asyncio
    async def test_passes_response_format(self, fake_openai):
        fake_openai.script = ["{}"]
        fmt = {"type": "json_schema", "json_schema": {"name": "x", "schema": {}}}
        await call_llm([], response_format=fmt)
        assert fake_openai.requests[0]["response_format"] is fmt

    @pytest.mark.asyncio
    async def test_empty_content_is_none(self, fake_openai):
        fake_openai.script = [None]
        assert await call_llm([]) is None

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, fake_openai, monkeypatch):
        monkeypatch.setattr("backend.config.LLM_MAX_RETRIES", 1)
        fake_openai.script = [RuntimeError("boom"), "never reached"]
        with pytest.raises(RuntimeError, match="boom"):
            await call_llm([])
        assert len(fake_openai.requests) == 1

    @pytest.mark.asyncio
    async def test_retries_when_enabled(self, fake_openai):
        fake_openai.script = [RuntimeError("transient"), "ok"]
        assert await call_llm([], max_retries=3) == "ok"
        assert len(fake_openai.requests) == 2

    @pytest.mark.asyncio
    async def test_zero_retries_means_one_attempt(self, fake_openai, monkeypatch):
        monkeypatch.setattr("backend.config.LLM_MAX_RETRIES", 3)
        fake_openai.script = [RuntimeError("boom"), "never reached"]
        with pytest.raises(RuntimeError, match="boom"):
            await call_llm([], max_retries=0)
        assert len(fake_openai.requests) == 1


class TestProviderRetries:
    """A real AsyncOpenAI over a mock transport, counting provider hits."""

    @pytest.fixture
    def provider(self, monkeypatch):
        hits = []

        def handler(request: httpx.Request) -> httpx.Response:
            hits.append(request.url.path)
            return httpx.Response(500, json={"error": {"message": "upstream down"}})

        real_client = openai.AsyncOpenAI

        def client_factory(**kwargs):
            transport = httpx.MockTransport(handler)
            return real_client(http_client=httpx.AsyncClient(transport=transport), **kwargs)

        monkeypatch.setattr("backend.config.OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr("backend.config.OPENAI_BASE_URL", "https://llm.test/v1")
        monkeypatch.setattr(llm_client.openai, "AsyncOpenAI", client_factory)
        return hits

    @pytest.mark.asyncio
    async def test_server_error_hits_provider_once(self, provider, monkeypatch):
        monkeypatch.setattr("backend.config.LLM_MAX_RETRIES", 1)
        with pytest.raises(openai.InternalServerError):
            await call_llm([{"role": "user", "content": "hi"}], model="m")
        assert provider == ["/v1/chat/completions"]

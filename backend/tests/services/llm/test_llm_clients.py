"""
Tests for the provider clients against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from app.services.llm.config import GenerationSettings
from app.services.llm.explanation_service import create_text_client
from app.services.llm.groq_client import GroqClient
from app.services.llm.ollama_client import OllamaClient


def _http_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGroqClient:
    """Test the OpenAI-compatible chat client."""

    @pytest.fixture
    def settings(self):
        """Create Groq settings with a test key."""
        return GenerationSettings(provider="groq", api_key="test-key")

    @pytest.mark.asyncio
    async def test_chat_completion_request(self, settings):
        """Test URL, bearer header and payload of a chat request"""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "Generated text"}}]})

        client = GroqClient(settings, http_client=_http_client(handler))
        text = await client.generate_text("Explain codeine.")
        await client.aclose()

        assert text == "Generated text"
        assert seen["url"] == "https://api.groq.com/openai/v1/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["model"] == "llama-3.1-8b-instant"
        assert seen["body"]["messages"][-1] == {"role": "user", "content": "Explain codeine."}

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self, settings):
        """Test HTTP 503 -> None"""
        client = GroqClient(settings, http_client=_http_client(lambda request: httpx.Response(503)))
        assert await client.generate_text("prompt") is None

    @pytest.mark.asyncio
    async def test_malformed_payload_returns_none(self, settings):
        """Test missing choices -> None"""
        client = GroqClient(settings, http_client=_http_client(lambda request: httpx.Response(200, json={})))
        assert await client.generate_text("prompt") is None

    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self, settings):
        """Test connection error -> None"""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GroqClient(settings, http_client=_http_client(handler))
        assert await client.generate_text("prompt") is None

    @pytest.mark.asyncio
    async def test_grok_uses_xai_endpoint(self):
        """Test grok provider -> x.ai base URL"""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["model"] = json.loads(request.content)["model"]
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        settings = GenerationSettings(provider="grok", api_key="xai-key")
        client = GroqClient(settings, http_client=_http_client(handler))

        assert await client.generate_text("prompt") == "ok"
        assert seen["url"] == "https://api.x.ai/v1/chat/completions"
        assert seen["model"] == "grok-3"


class TestOllamaClient:
    """Test the local Ollama client."""

    @pytest.fixture
    def settings(self):
        """Create Ollama settings pointing at a test host."""
        return GenerationSettings(provider="ollama", base_url="http://ollama.local:11434/", model="llama3.2")

    @pytest.mark.asyncio
    async def test_generate_request(self, settings):
        """Test /api/generate URL and non-streaming payload"""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "Local text"})

        client = OllamaClient(settings, http_client=_http_client(handler))

        assert await client.generate_text("prompt") == "Local text"
        assert seen["url"] == "http://ollama.local:11434/api/generate"
        assert seen["body"]["model"] == "llama3.2"
        assert seen["body"]["stream"] is False

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self, settings):
        """Test HTTP 500 -> None"""
        client = OllamaClient(settings, http_client=_http_client(lambda request: httpx.Response(500)))
        assert await client.generate_text("prompt") is None


class TestClientFactory:
    """Test provider selection in create_text_client."""

    @pytest.mark.parametrize("provider, api_key, expected", [
        ("groq", "k", GroqClient),
        ("grok", "k", GroqClient),
        ("ollama", None, OllamaClient),
    ])
    def test_provider_selection(self, provider, api_key, expected):
        """Test each provider -> matching client class"""
        http_client = _http_client(lambda request: httpx.Response(200))
        settings = GenerationSettings(provider=provider, api_key=api_key)
        assert isinstance(create_text_client(settings, http_client=http_client), expected)

"""
Configuration for clinical explanation generation.

Settings are an explicit object handed to the orchestrator at construction,
so several configurations (e.g. test doubles) can coexist in one process.
"""

import os
from typing import Dict, Literal, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from app.core.exceptions import ConfigurationError

LLMProvider = Literal["groq", "grok", "ollama"]

DEFAULT_BASE_URLS: Dict[str, str] = {
    "groq": "https://api.groq.com/openai/v1",
    "grok": "https://api.x.ai/v1",
    "ollama": "http://127.0.0.1:11434",
}

DEFAULT_MODELS: Dict[str, str] = {
    "groq": "llama-3.1-8b-instant",
    "grok": "grok-3",
    "ollama": "llama3",
}

# Providers that cannot be called without an API key
_KEYED_PROVIDERS = {"groq": "GROQ_API_KEY", "grok": "GROK_API_KEY"}

_TRUTHY = {"1", "true", "yes", "on"}


class GenerationSettings(BaseModel):
    """Provider selection plus retry policy for explanation generation."""

    provider: LLMProvider = Field(default="groq", description="Text-generation backend")
    api_key: Optional[str] = Field(default=None, description="Provider API key (not needed for Ollama)")
    model: Optional[str] = Field(default=None, description="Model name; provider default when unset")
    base_url: Optional[str] = Field(default=None, description="API root; provider default when unset")

    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total generation attempts before falling back"
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay before the second attempt; doubles after each further failure"
    )
    timeout_seconds: float = Field(default=30.0, gt=0.0, description="Per-request HTTP timeout")

    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=1)

    self_check: bool = Field(
        default=False,
        description="Run contradiction detection on generated text and fall back when it fails"
    )

    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def resolved_base_url(self) -> str:
        return (self.base_url or DEFAULT_BASE_URLS[self.provider]).rstrip("/")

    def require_credentials(self) -> None:
        """Fail fast when a keyed provider has no API key."""
        env_var = _KEYED_PROVIDERS.get(self.provider)
        if env_var and not self.api_key:
            raise ConfigurationError(
                f"{env_var} environment variable is required for provider '{self.provider}'",
                setting=env_var,
            )

    @classmethod
    def from_env(cls) -> "GenerationSettings":
        """Build settings from the process environment (and a .env file if present)."""
        load_dotenv(find_dotenv())

        provider = os.environ.get("LLM_PROVIDER", "groq").strip().lower()
        if provider not in DEFAULT_BASE_URLS:
            raise ConfigurationError(f"Unsupported LLM provider: {provider}", setting="LLM_PROVIDER")

        prefix = provider.upper()
        settings = cls(
            provider=provider,
            api_key=os.environ.get(f"{prefix}_API_KEY") or None,
            model=os.environ.get(f"{prefix}_MODEL") or None,
            base_url=os.environ.get(f"{prefix}_BASE_URL") or None,
            max_retries=int(os.environ.get("LLM_MAX_RETRIES", "3")),
            base_delay_seconds=float(os.environ.get("LLM_BASE_DELAY_SECONDS", "1.0")),
            timeout_seconds=float(os.environ.get("LLM_TIMEOUT_SECONDS", "30.0")),
            self_check=os.environ.get("LLM_SELF_CHECK", "false").strip().lower() in _TRUTHY,
        )
        settings.require_credentials()
        return settings

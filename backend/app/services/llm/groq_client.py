import logging
from typing import Optional

import httpx

from app.services.llm.config import GenerationSettings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a clinical pharmacogenomics expert providing detailed medical explanations."


class GroqClient:
    """
    Client for OpenAI-compatible chat-completion APIs.

    Serves both Groq's hosted Llama models and xAI's Grok, which share the
    ``/chat/completions`` contract and differ only in base URL and model.
    """

    def __init__(self, settings: GenerationSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.provider = settings.provider
        self.api_key = settings.api_key or ""
        self.model = settings.resolved_model()
        self.endpoint = f"{settings.resolved_base_url()}/chat/completions"
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    async def generate_text(self, prompt: str) -> Optional[str]:
        """
        Sends one chat-completion request.

        Returns None on transport or HTTP errors; retrying is the caller's job.
        """
        logger.info("Sending request to chat-completions API", extra={"provider": self.provider, "model": self.model})

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": False,
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.post(self.endpoint, json=payload, headers=headers)
            response.raise_for_status()

            data = response.json()
            generated_text = data["choices"][0]["message"]["content"]

            logger.info("Chat-completions request successful", extra={"response_length": len(generated_text or "")})
            return generated_text

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Error communicating with {self.provider}: {str(e)}")
            return None
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Invalid response format from {self.provider}: {str(e)}")
            return None

    async def aclose(self) -> None:
        await self._client.aclose()

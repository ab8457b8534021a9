import logging
from typing import Optional

import httpx

from app.services.llm.config import GenerationSettings

# Configure structured logging
logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Client for a local Ollama instance (``/api/generate``).
    """

    provider = "ollama"

    def __init__(self, settings: GenerationSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.resolved_base_url()
        self.model = settings.resolved_model()
        self.generate_endpoint = f"{self.base_url}/api/generate"
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    async def generate_text(self, prompt: str) -> Optional[str]:
        """
        Generates a clinical explanation with low temperature for consistent output.
        """
        logger.info("Sending request to Ollama", extra={"model": self.model})

        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "keep_alive": "15m",
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
                "top_p": 0.85,
                "repeat_penalty": 1.1,
            }
        }

        try:
            response = await self._client.post(self.generate_endpoint, json=payload)
            response.raise_for_status()

            data = response.json()
            generated_text = data.get("response", "")

            logger.info("Ollama request successful", extra={"response_length": len(generated_text)})
            return generated_text

        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Error communicating with Ollama: {str(e)}")
            return None
        except ValueError as e:
            logger.error(f"Invalid response from Ollama: {str(e)}")
            return None

    async def aclose(self) -> None:
        await self._client.aclose()

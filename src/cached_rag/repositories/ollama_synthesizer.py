"""Ollama answer synthesizer for local LLM inference.

Uses the non-streaming ``/api/generate`` endpoint.
"""

import httpx

from cached_rag.config import settings
from cached_rag.exceptions import GenerationError


class OllamaSynthesizer:
    """Ollama implementation of the AnswerSynthesizer protocol.

    Ollama must be running locally (default: http://localhost:11434).
    """

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model_name = model_name or settings.llm_model
        self._base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self._temperature = settings.llm_temperature if temperature is None else temperature
        self._timeout = timeout or settings.http_timeout
        self._client = client

    @classmethod
    def create(cls, model_name: str | None = None, base_url: str | None = None) -> "OllamaSynthesizer":
        """Factory method to create OllamaSynthesizer with defaults."""
        return cls(model_name=model_name, base_url=base_url)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    @property
    def model_name(self) -> str:
        return self._model_name

    async def generate(self, prompt: str) -> str:
        """Generate text using Ollama.

        Raises:
            GenerationError: If the request fails or times out
        """
        payload = {
            "model": self._model_name,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self._temperature},
        }

        try:
            response = await self.client.post(f"{self._base_url}/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise GenerationError(
                f"Ollama request timed out after {self._timeout}s. "
                f"Try a shorter prompt or increase HTTP_TIMEOUT."
            ) from e
        except httpx.HTTPError as e:
            raise GenerationError(
                f"Ollama request failed: {e}. Check if Ollama is running at {self._base_url}."
            ) from e
        except ValueError as e:
            raise GenerationError(f"Ollama returned invalid JSON: {e}") from e

        text = data.get("response")
        if not isinstance(text, str):
            raise GenerationError(f"Unexpected Ollama response format: {data}")
        return text.strip()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

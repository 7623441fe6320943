"""OpenAI-compatible chat completion synthesizer.

Sends the fully built prompt as a single user message to
``POST {base_url}/chat/completions`` and returns the first choice's content.
"""

import httpx

from cached_rag.config import settings
from cached_rag.exceptions import GenerationError


class OpenAIChatSynthesizer:
    """Chat-completions implementation of the AnswerSynthesizer protocol.

    Default model: gpt-4o-mini. Any server exposing the same endpoint works
    when OPENAI_BASE_URL points at it.
    """

    # Model families served by the OpenAI API
    MODEL_PREFIXES = ("gpt-3.5", "gpt-4", "gpt-5", "o1", "o3", "o4", "chatgpt-")

    def __init__(
        self,
        model_name: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the chat synthesizer.

        Args:
            model_name: Chat model. Defaults to settings.llm_model.
            api_key: API key. Defaults to settings.openai_api_key.
            base_url: API base URL. Defaults to settings.openai_base_url.
            temperature: Sampling temperature. Defaults to settings.llm_temperature.
            timeout: Request timeout in seconds. Defaults to settings.http_timeout.
            client: Pre-built HTTP client (mainly for tests).
        """
        self._model_name = model_name or settings.llm_model
        self._api_key = api_key or settings.openai_api_key
        self._base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._temperature = settings.llm_temperature if temperature is None else temperature
        self._timeout = timeout or settings.http_timeout
        self._client = client

    @classmethod
    def create(cls, model_name: str | None = None) -> "OpenAIChatSynthesizer":
        """Factory method to create OpenAIChatSynthesizer with defaults."""
        return cls(model_name=model_name)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=headers)
        return self._client

    @property
    def model_name(self) -> str:
        return self._model_name

    async def generate(self, prompt: str) -> str:
        """Generate an answer for a prompt.

        Raises:
            GenerationError: If the request fails or returns no content
        """
        payload = {
            "model": self._model_name,
            "temperature": self._temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            response = await self.client.post(f"{self._base_url}/chat/completions", json=payload)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except httpx.HTTPError as e:
            raise GenerationError(f"Chat completion request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected chat completion response: {e}") from e

        if not isinstance(content, str):
            raise GenerationError("Chat completion returned no text content")
        return content.strip()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

"""Build collaborators from settings."""

from cached_rag.config import Settings
from cached_rag.protocols import AnswerSynthesizer, EmbeddingProvider

from .ollama_embedding_provider import OllamaEmbeddingProvider
from .ollama_synthesizer import OllamaSynthesizer
from .openai_embedding_provider import OpenAIEmbeddingProvider
from .openai_synthesizer import OpenAIChatSynthesizer

# Used when EMBEDDING_MODEL still holds the OpenAI default but another
# provider is selected.
DEFAULT_OLLAMA_EMBEDDING_MODEL = "nomic-embed-text"

# Same for LLM_MODEL when LLM_PROVIDER is ollama
DEFAULT_OLLAMA_LLM_MODEL = "llama3.2"


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Create the embedding provider selected by EMBEDDING_PROVIDER.

    ⚠️ Switching provider or model changes the vector space. Old cache
    entries are skipped by lookups (model mismatch) until they expire, or
    clear them explicitly.
    """
    model = settings.embedding_model
    openai_default = model in OpenAIEmbeddingProvider.MODEL_DIMENSIONS

    if settings.embedding_provider == "ollama":
        return OllamaEmbeddingProvider(
            model_name=DEFAULT_OLLAMA_EMBEDDING_MODEL if openai_default else model,
            base_url=settings.ollama_base_url,
            timeout=settings.http_timeout,
        )

    if settings.embedding_provider == "local":
        from .local_embedding_provider import DEFAULT_LOCAL_MODEL, LocalEmbeddingProvider

        return LocalEmbeddingProvider(model_name=DEFAULT_LOCAL_MODEL if openai_default else model)

    return OpenAIEmbeddingProvider(
        model_name=model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.http_timeout,
    )


def create_synthesizer(settings: Settings) -> AnswerSynthesizer:
    """Create the answer synthesizer selected by LLM_PROVIDER."""
    if settings.llm_provider == "ollama":
        openai_default = settings.llm_model.startswith(OpenAIChatSynthesizer.MODEL_PREFIXES)
        return OllamaSynthesizer(
            model_name=DEFAULT_OLLAMA_LLM_MODEL if openai_default else settings.llm_model,
            base_url=settings.ollama_base_url,
            temperature=settings.llm_temperature,
            timeout=settings.http_timeout,
        )

    return OpenAIChatSynthesizer(
        model_name=settings.llm_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        temperature=settings.llm_temperature,
        timeout=settings.http_timeout,
    )

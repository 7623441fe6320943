import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv
from redis.asyncio import Redis

from cached_rag.exceptions import ConfigurationError

load_dotenv()

EMBEDDING_PROVIDERS = ("openai", "ollama", "local")
LLM_PROVIDERS = ("openai", "ollama")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Cache
    similarity_threshold: float = float(os.getenv("SIMILARITY_THRESHOLD", "0.85"))
    cache_ttl: int = int(os.getenv("CACHE_TTL", "3600"))  # 1 hour default
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "cache")

    # Retrieval
    retrieval_top_k: int = int(os.getenv("RETRIEVAL_TOP_K", "4"))
    qdrant_url: str = os.getenv("QDRANT_URL", "http://localhost:6333")
    qdrant_api_key: str | None = os.getenv("QDRANT_API_KEY")

    # Embedding
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "openai")
    embedding_model: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

    # Generation
    llm_provider: str = os.getenv("LLM_PROVIDER", "openai")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))

    # OpenAI (or any OpenAI-compatible endpoint)
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

    # Ollama
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    # Timeout applied to every outbound HTTP call, in seconds
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "30"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if not 0 < self.similarity_threshold <= 1:
            raise ConfigurationError(
                f"SIMILARITY_THRESHOLD must be in (0, 1] for cosine similarity, "
                f"got {self.similarity_threshold}"
            )

        if self.cache_ttl <= 0:
            raise ConfigurationError(f"CACHE_TTL must be positive, got {self.cache_ttl}")

        if self.retrieval_top_k <= 0:
            raise ConfigurationError(
                f"RETRIEVAL_TOP_K must be positive, got {self.retrieval_top_k}"
            )

        if self.embedding_provider not in EMBEDDING_PROVIDERS:
            raise ConfigurationError(
                f"EMBEDDING_PROVIDER must be one of {list(EMBEDDING_PROVIDERS)}, "
                f"got {self.embedding_provider!r}"
            )

        if self.llm_provider not in LLM_PROVIDERS:
            raise ConfigurationError(
                f"LLM_PROVIDER must be one of {list(LLM_PROVIDERS)}, got {self.llm_provider!r}"
            )

    @property
    def uses_openai(self) -> bool:
        """Check if any configured collaborator talks to the OpenAI API."""
        return self.embedding_provider == "openai" or self.llm_provider == "openai"

    def require_credentials(self) -> None:
        """Fail fast when a configured provider is missing its credentials.

        Called once at startup, before any query is accepted.

        Raises:
            ConfigurationError: If a required credential is missing
        """
        if self.uses_openai and not self.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is required when EMBEDDING_PROVIDER or LLM_PROVIDER is 'openai'"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> Redis:
    """Create an asyncio Redis client instance.

    Entries are stored as JSON strings, so responses are decoded to str.
    """
    return Redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
        socket_timeout=settings.http_timeout,
        socket_connect_timeout=settings.http_timeout,
    )

"""Shared fixtures and fakes for the test suite."""

import math
import random

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cached_rag.entities import RetrievedChunk
from cached_rag.exceptions import EmbeddingError, GenerationError, RetrievalError
from cached_rag.repositories import RedisCacheRepository
from cached_rag.services import CacheService, QueryService

DIM = 64
START_TIME = 1_700_000_000.0


def unit(index: int = 0, dim: int = DIM) -> list[float]:
    """Unit vector along one axis."""
    vector = [0.0] * dim
    vector[index] = 1.0
    return vector


def at_similarity(similarity: float, dim: int = DIM) -> list[float]:
    """Unit vector whose cosine similarity to ``unit(0)`` is ``similarity``."""
    vector = [0.0] * dim
    vector[0] = similarity
    vector[1] = math.sqrt(1.0 - similarity**2)
    return vector


class FakeEmbeddingProvider:
    """Deterministic embeddings: registered vectors, else seeded random ones."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        dimension: int = DIM,
        model_name: str = "fake-embed",
    ) -> None:
        self.vectors = dict(vectors or {})
        self._dimension = dimension
        self._model_name = model_name
        self.calls: list[str] = []
        self.fail = False

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def encode(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding backend unreachable")
        if text in self.vectors:
            return list(self.vectors[text])
        rng = random.Random(text)
        return [rng.uniform(-1.0, 1.0) for _ in range(self._dimension)]

    async def encode_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.encode(text) for text in texts]

    async def is_available(self) -> bool:
        return not self.fail


class FakeRetriever:
    def __init__(self, chunks: dict[str, list[RetrievedChunk]] | None = None) -> None:
        self.chunks = dict(chunks or {})
        self.calls: list[tuple[str, list[float], int]] = []
        self.fail = False
        self.available = True

    async def search(self, collection_id: str, vector: list[float], k: int) -> list[RetrievedChunk]:
        self.calls.append((collection_id, vector, k))
        if self.fail:
            raise RetrievalError("vector store unreachable")
        return self.chunks.get(collection_id, [])[:k]

    async def is_available(self) -> bool:
        return self.available


class FakeSynthesizer:
    def __init__(self, answer: str = "Refunds are issued within 30 days of purchase.") -> None:
        self.answer = answer
        self.prompts: list[str] = []
        self.fail = False

    @property
    def model_name(self) -> str:
        return "fake-llm"

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationError("generation backend unreachable")
        return self.answer


class FakeClock:
    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenRedis:
    """Redis client whose every command fails with a connection error."""

    def __init__(self) -> None:
        self.closed = False

    async def set(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def mget(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def ping(self):
        raise RedisConnectionError("Connection refused")

    async def scan_iter(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")
        yield  # pragma: no cover

    async def aclose(self):
        self.closed = True


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_factory(redis_server):
    """Client factory; clients are created lazily inside the running loop."""

    def factory():
        return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)

    return factory


@pytest.fixture
def repository(redis_factory):
    return RedisCacheRepository(client_factory=redis_factory, key_prefix="cache")


@pytest.fixture
def broken_repository():
    return RedisCacheRepository(client_factory=BrokenRedis, key_prefix="cache")


@pytest.fixture
def embeddings():
    return FakeEmbeddingProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_service(repository, embeddings, clock):
    return CacheService(
        repository=repository,
        embedding_provider=embeddings,
        similarity_threshold=0.85,
        ttl=3600,
        clock=clock,
    )


@pytest.fixture
def retriever():
    return FakeRetriever(
        {
            "handbook": [
                RetrievedChunk(score=0.91, text="Refunds are issued within 30 days", source="policy.pdf"),
            ]
        }
    )


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def query_service(cache_service, embeddings, retriever, synthesizer):
    return QueryService(
        cache=cache_service,
        embedding_provider=embeddings,
        retriever=retriever,
        synthesizer=synthesizer,
        top_k=4,
    )

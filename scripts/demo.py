#!/usr/bin/env python3
"""
Demo script for the cached RAG pipeline.

Asks a few questions about an already ingested collection and shows which
ones are answered from the semantic cache and which go to the vector store.

Usage:
    python scripts/demo.py <collection_id> [question ...]
"""

import asyncio
import sys
import time

from cached_rag.api.dependencies import build_query_service, close_query_service
from cached_rag.config import get_settings
from cached_rag.exceptions import CachedRagError

DEFAULT_QUESTIONS = [
    "What is the refund policy?",
    "What is the refund policy?",
    "How do refunds work?",
    "Who do I contact for support?",
]


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def ask_all(collection_id: str, questions: list[str]) -> None:
    settings = get_settings()
    settings.require_credentials()
    service = build_query_service(settings)

    print_section(f"Collection: {collection_id}")
    print(f"  Threshold: {service.cache.threshold}  Top-k: {service.top_k}")

    try:
        for question in questions:
            start = time.perf_counter()
            answer = await service.answer(question, collection_id)
            duration = (time.perf_counter() - start) * 1000

            print(f"\n  Q: {question}")
            if answer.from_cache:
                print(f"  ✓ CACHE HIT (similarity {answer.similarity:.4f}, {duration:.1f}ms)")
            else:
                print(f"  ✗ {answer.cache_status.value}, answered from vector store ({duration:.1f}ms)")
                print(f"  Sources: {', '.join(answer.cited_sources or []) or '-'}")
            print(f"  A: {answer.text[:200]}")

        print_section("Metrics")
        for name, value in service.get_metrics().items():
            print(f"  {name:<22} {value}")
    finally:
        await close_query_service(service)


def main() -> None:
    """Run the demo."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    collection_id = sys.argv[1]
    questions = sys.argv[2:] or DEFAULT_QUESTIONS

    print("\n🚀 Cached RAG Demo")
    try:
        asyncio.run(ask_all(collection_id, questions))
    except CachedRagError as e:
        print(f"\n❌ Error: {e}")
        print("\nMake sure Redis and Qdrant are running and OPENAI_API_KEY is set,")
        print("or switch EMBEDDING_PROVIDER / LLM_PROVIDER to ollama.")
        sys.exit(1)


if __name__ == "__main__":
    main()

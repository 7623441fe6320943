"""Context and prompt construction for answer synthesis."""

from cached_rag.entities import RetrievedChunk

NO_RELEVANT_INFORMATION = (
    "I could not find any relevant information in the uploaded documents "
    "to answer your question."
)

ANSWER_PROMPT_TEMPLATE = """You are a helpful AI assistant. Answer the user's question using the context below.

Context from documents:
{context}

Question: {question}

Instructions:
- Answer based ONLY on the provided context
- If the context does not contain enough information, say so
- Be concise and accurate
- Cite the numbered context passages when possible

Answer:
"""


def build_context(chunks: list[RetrievedChunk]) -> str:
    """Number chunks from 1 in retriever order and join them with blank lines."""
    return "\n\n".join(f"[{i}] {chunk.text}" for i, chunk in enumerate(chunks, start=1))


def collect_sources(chunks: list[RetrievedChunk]) -> list[str]:
    """Unique source labels in order of first appearance."""
    return list(dict.fromkeys(chunk.source for chunk in chunks))


def build_prompt(context: str, question: str) -> str:
    return ANSWER_PROMPT_TEMPLATE.format(context=context, question=question)

"""Answer synthesizer protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AnswerSynthesizer(Protocol):
    """Protocol for text generation backends.

    The raw generated text is the answer; no structured output is parsed.
    """

    @property
    def model_name(self) -> str:
        ...

    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt that already contains the context.

        Raises:
            GenerationError: If generation fails
        """
        ...

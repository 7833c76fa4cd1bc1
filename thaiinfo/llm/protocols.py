"""Protocol interface for LLM clients."""

from typing import Protocol, runtime_checkable

from thaiinfo.llm.models import InlineImage


@runtime_checkable
class LlmClient(Protocol):
    """Protocol for text-generation clients.

    The ingestion pipeline only depends on this shape, so tests and
    alternative providers can stand in for the Gemini client.
    """

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        image: InlineImage | None = None,
    ) -> str:
        """Generate text from a prompt.

        Args:
            prompt: User prompt text.
            system_instruction: Optional system-level instruction.
            image: Optional image sent alongside the prompt.

        Returns:
            Generated text from the model.

        Raises:
            LlmApiError: If the API call fails.
        """
        ...

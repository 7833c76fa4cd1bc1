"""Factory for creating the text-generation client."""

import structlog

from thaiinfo.llm.errors import LlmAuthError
from thaiinfo.llm.gemini_client import GeminiApiKeyClient
from thaiinfo.llm.protocols import LlmClient


logger = structlog.get_logger()


def create_llm_client(
    *,
    api_key: str | None = None,
    model: str = "gemini-2.5-flash",
) -> LlmClient:
    """Create an LLM client from configured credentials.

    Args:
        api_key: Gemini API key.
        model: Gemini model identifier.

    Returns:
        An LlmClient implementation ready for use.

    Raises:
        LlmAuthError: If no API key is configured.
    """
    if not api_key:
        msg = "No Gemini credentials configured (need GEMINI_API_KEY)"
        raise LlmAuthError(msg)

    logger.info("llm_client_created", component="llm", model=model)
    return GeminiApiKeyClient(api_key=api_key, model=model)

"""Text-generation service access (Gemini) and response parsing helpers."""

from thaiinfo.llm.errors import LlmApiError, LlmAuthError, LlmResponseError
from thaiinfo.llm.factory import create_llm_client
from thaiinfo.llm.gemini_client import GeminiApiKeyClient
from thaiinfo.llm.models import InlineImage
from thaiinfo.llm.protocols import LlmClient


__all__ = [
    "GeminiApiKeyClient",
    "InlineImage",
    "LlmApiError",
    "LlmAuthError",
    "LlmClient",
    "LlmResponseError",
    "create_llm_client",
]

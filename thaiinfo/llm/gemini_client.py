"""Gemini API client using API key authentication."""

from http import HTTPStatus

import httpx
import structlog

from thaiinfo.llm.errors import LlmApiError, LlmResponseError
from thaiinfo.llm.models import InlineImage


logger = structlog.get_logger()

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
_REQUEST_TIMEOUT = 60.0


class GeminiApiKeyClient:
    """Client for the Gemini ``generateContent`` endpoint.

    One request per call, no retries: the admin UI offers a manual retry
    when a call fails.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.3,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Gemini API key.
            model: Gemini model identifier.
            temperature: Sampling temperature.
        """
        self._api_key = api_key
        self.model = model
        self._temperature = temperature
        self._log = logger.bind(component="llm", subcomponent="gemini_api_key")

    def _build_request_body(
        self,
        prompt: str,
        system_instruction: str | None,
        image: InlineImage | None,
    ) -> dict[str, object]:
        parts: list[dict[str, object]] = [{"text": prompt}]
        if image is not None:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": image.mime_type,
                        "data": image.to_base64(),
                    }
                }
            )

        body: dict[str, object] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"temperature": self._temperature},
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return body

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        image: InlineImage | None = None,
    ) -> str:
        """Send a generate content request to the Gemini API.

        Args:
            prompt: User prompt text.
            system_instruction: Optional system instruction.
            image: Optional inline image.

        Returns:
            Generated text from the model response.

        Raises:
            LlmApiError: On network failure, non-200 status, or an empty
                response.
        """
        url = f"{_BASE_URL}/{self.model}:generateContent"
        request_body = self._build_request_body(prompt, system_instruction, image)

        try:
            response = httpx.post(
                url,
                headers={
                    "x-goog-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=_REQUEST_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            msg = f"Gemini API request failed: {exc}"
            raise LlmApiError(msg) from exc

        if response.status_code != HTTPStatus.OK:
            self._log.warning("gemini_error_status", status=response.status_code)
            msg = f"Gemini API returned {response.status_code}"
            raise LlmApiError(msg, status_code=response.status_code)

        return self._extract_text(response)

    @staticmethod
    def _extract_text(response: httpx.Response) -> str:
        """Extract generated text from the API response.

        Raises:
            LlmResponseError: If the response is missing expected fields.
        """
        try:
            data = response.json()
        except ValueError as exc:
            msg = "Gemini API returned a non-JSON body"
            raise LlmResponseError(msg) from exc

        if not isinstance(data, dict):
            msg = f"Gemini API returned a JSON {type(data).__name__}, not an object"
            raise LlmResponseError(msg)

        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            msg = "No candidates in Gemini API response"
            raise LlmResponseError(msg)

        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not parts:
            msg = "No parts in first candidate"
            raise LlmResponseError(msg)

        text = "".join(
            str(part.get("text") or "") for part in parts if isinstance(part, dict)
        )
        if not text:
            msg = "Empty text in response"
            raise LlmResponseError(msg)

        return text

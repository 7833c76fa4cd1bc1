"""Data models for LLM requests."""

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class InlineImage:
    """Image sent to the model inline with the prompt.

    Attributes:
        mime_type: Image MIME type, e.g. ``image/jpeg``.
        data: Raw image bytes.
    """

    mime_type: str
    data: bytes

    def to_base64(self) -> str:
        """Encode the image bytes for a JSON request body."""
        return base64.b64encode(self.data).decode("ascii")

"""Configuration model for article page fetches."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Desktop Chrome string; several Thai news sites serve an empty shell to
# unknown agents.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

DEFAULT_MAX_RESPONSE_SIZE_BYTES = 5 * 1024 * 1024

_CREDENTIAL_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


class FetchConfig(BaseModel):
    """Configuration for article page fetches.

    Fetches are single-shot. A failed fetch is reported to the operator,
    who retries from the admin screen.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        BROWSER_USER_AGENT
    )
    accept_language: str = "th-TH,th;q=0.9,ko;q=0.8,en;q=0.7"
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = 15.0
    max_response_size_bytes: Annotated[int, Field(ge=1024, le=100 * 1024 * 1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    extra_headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("extra_headers")
    @classmethod
    def reject_credential_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """News pages are fetched anonymously."""
        for key in v:
            if key.lower() in _CREDENTIAL_HEADERS:
                msg = f"Header '{key}' is not allowed on anonymous page fetches"
                raise ValueError(msg)
        return v

    def build_headers(self) -> dict[str, str]:
        """Browser-like request headers for a page fetch."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.accept_language,
        }
        headers.update(self.extra_headers)
        return headers

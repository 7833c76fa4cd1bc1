"""Result types for article page fetches."""

from enum import Enum
from typing import Annotated

import httpx
from pydantic import BaseModel, ConfigDict, Field


class FetchErrorClass(str, Enum):
    """Why a page fetch failed.

    The value is used as a metrics key; ``operator_message`` is what the
    admin screen shows.
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    UNKNOWN = "UNKNOWN"


_OPERATOR_MESSAGES = {
    FetchErrorClass.NETWORK_TIMEOUT: "요청 시간이 초과되었습니다. 다른 URL을 시도해보세요.",
    FetchErrorClass.CONNECTION_ERROR: "사이트에 연결할 수 없습니다.",
    FetchErrorClass.RESPONSE_SIZE_EXCEEDED: "웹페이지가 너무 큽니다.",
    FetchErrorClass.UNKNOWN: "알 수 없는 네트워크 오류가 발생했습니다.",
}


class FetchError(BaseModel):
    """Typed failure of a page fetch."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass
    message: Annotated[str, Field(min_length=1, description="Technical message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if a response arrived"
    )

    @property
    def operator_message(self) -> str:
        """Korean description of the failure for the admin screen."""
        if self.status_code is not None and self.error_class in (
            FetchErrorClass.HTTP_4XX,
            FetchErrorClass.HTTP_5XX,
        ):
            return f"HTTP {self.status_code}"
        return _OPERATOR_MESSAGES.get(
            self.error_class, _OPERATOR_MESSAGES[FetchErrorClass.UNKNOWN]
        )


class FetchResult(BaseModel):
    """Outcome of one page fetch.

    ``status_code`` is 0 when no HTTP response was received.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=0, le=599)
    final_url: Annotated[str, Field(min_length=1, description="URL after redirects")]
    content_type: str = ""
    body_bytes: bytes = b""
    encoding: str | None = Field(default=None, description="Declared charset")
    error: FetchError | None = None

    @property
    def is_success(self) -> bool:
        """True for a 2xx response with no recorded error."""
        return self.error is None and httpx.codes.is_success(self.status_code)

    @property
    def body_size(self) -> int:
        return len(self.body_bytes)

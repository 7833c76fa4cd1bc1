"""Errors raised by the text-generation client."""

from http import HTTPStatus


class LlmAuthError(Exception):
    """No usable credentials for the text-generation service."""


class LlmApiError(Exception):
    """Text-generation API call failure.

    Attributes:
        status_code: HTTP status code from the API response (0 when the
            request never got a response).
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Whether a manual retry from the admin screen may succeed.

        Network failures, rate limits and server errors are transient;
        other 4xx responses (bad key, blocked prompt) are not.
        """
        return (
            self.status_code == 0
            or self.status_code == HTTPStatus.TOO_MANY_REQUESTS
            or self.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR
        )


class LlmResponseError(LlmApiError):
    """The service answered 200 but without usable text.

    Raised for safety-blocked or truncated candidates.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=HTTPStatus.OK)

    @property
    def retryable(self) -> bool:
        return False

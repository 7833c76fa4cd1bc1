"""Exceptions raised by the ingestion pipeline.

Each error carries a Korean ``user_message`` for the admin screen next to
the technical message used in logs.
"""

from thaiinfo.fetch.models import FetchError


class IngestionError(Exception):
    """Base exception for ingestion failures."""

    user_message: str = "뉴스 처리 중 오류가 발생했습니다."


class InvalidSourceError(IngestionError):
    """Raised when the submitted source cannot be used at all."""

    def __init__(self, message: str, user_message: str) -> None:
        """Initialize the error.

        Args:
            message: Technical message.
            user_message: Message shown to the operator.
        """
        super().__init__(message)
        self.user_message = user_message


class DomainNotAllowedError(IngestionError):
    """Raised when a URL's host is not on the allowlist."""

    user_message = "허용되지 않은 도메인입니다. 지원되는 뉴스 사이트만 사용할 수 있습니다."

    def __init__(self, host: str) -> None:
        """Initialize the error.

        Args:
            host: The rejected hostname.
        """
        self.host = host
        super().__init__(f"Domain not allowed: {host}")


class FetchFailedError(IngestionError):
    """Raised when the source page could not be fetched.

    The fetch layer's message is passed through unchanged.
    """

    def __init__(self, url: str, error: FetchError) -> None:
        """Initialize the error.

        Args:
            url: URL that failed.
            error: Typed fetch error.
        """
        self.url = url
        self.error = error
        self.user_message = f"웹페이지를 가져올 수 없습니다. {error.operator_message}"
        super().__init__(error.message)

    @property
    def status_code(self) -> int | None:
        """HTTP status code, if a response was received."""
        return self.error.status_code


class TextServiceError(IngestionError):
    """Raised when the text-generation service call fails.

    No partial record is produced in this case.
    """

    def __init__(
        self, message: str, status_code: int = 0, retryable: bool = True
    ) -> None:
        """Initialize the error.

        Args:
            message: Technical message from the client.
            status_code: HTTP status from the service (0 if none).
            retryable: Whether retrying later may succeed.
        """
        self.status_code = status_code
        self.retryable = retryable
        if retryable:
            self.user_message = (
                "AI 분석 서비스 호출에 실패했습니다. 잠시 후 다시 시도해주세요."
            )
        else:
            self.user_message = (
                "AI 분석 서비스 호출에 실패했습니다. API 키와 설정을 확인해주세요."
            )
        super().__init__(message)

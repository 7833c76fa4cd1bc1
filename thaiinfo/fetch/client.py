"""HTTP client for article page fetches."""

import time
from io import BytesIO
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog

from thaiinfo.fetch.config import FetchConfig
from thaiinfo.fetch.metrics import FetchMetrics
from thaiinfo.fetch.models import FetchError, FetchErrorClass, FetchResult


logger = structlog.get_logger()

_CHUNK_SIZE = 8192


class _BodyTooLargeError(Exception):
    pass


def loggable_url(url: str) -> str:
    """URL without userinfo, query string, or fragment.

    Pasted article links often carry tracking or session parameters;
    only scheme, host and path are logged.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


def classify_status(status_code: int) -> FetchError | None:
    """Map a non-2xx status code to a FetchError."""
    if httpx.codes.is_success(status_code):
        return None
    if httpx.codes.is_client_error(status_code):
        return FetchError(
            error_class=FetchErrorClass.HTTP_4XX,
            message=f"Client error ({status_code})",
            status_code=status_code,
        )
    if httpx.codes.is_server_error(status_code):
        return FetchError(
            error_class=FetchErrorClass.HTTP_5XX,
            message=f"Server error ({status_code})",
            status_code=status_code,
        )
    return FetchError(
        error_class=FetchErrorClass.UNKNOWN,
        message=f"Unexpected status ({status_code})",
        status_code=status_code,
    )


class PageFetcher:
    """Single-shot HTTP GET for news article pages.

    Never raises for network or HTTP problems; the outcome is always a
    ``FetchResult`` whose ``error`` is set on failure.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: Fetch configuration.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._config = config or FetchConfig()
        self._transport = transport
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch")

    def fetch(self, url: str) -> FetchResult:
        """Fetch a URL once.

        Args:
            url: The URL to fetch.

        Returns:
            FetchResult with status, body, and error information.
        """
        start_ns = time.perf_counter_ns()
        log = self._log.bind(url=loggable_url(url))
        log.debug("fetch_started", user_agent=self._config.user_agent)

        result = self._execute(url)

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_duration(duration_ms)
        if result.error is not None:
            self._metrics.record_failure(result.error.error_class)

        log.info(
            "fetch_complete",
            status_code=result.status_code,
            bytes=result.body_size,
            content_type=result.content_type,
            duration_ms=round(duration_ms, 2),
            error_class=result.error.error_class.value if result.error else None,
        )
        return result

    def _execute(self, url: str) -> FetchResult:
        try:
            with (
                httpx.Client(
                    timeout=self._config.timeout_seconds,
                    follow_redirects=True,
                    transport=self._transport,
                ) as client,
                client.stream("GET", url, headers=self._config.build_headers()) as response,
            ):
                try:
                    body = self._read_body(response)
                except _BodyTooLargeError as e:
                    return self._failure(
                        url,
                        FetchErrorClass.RESPONSE_SIZE_EXCEEDED,
                        str(e),
                        status_code=response.status_code,
                    )

                self._metrics.record_response(response.url.host, len(body))
                return FetchResult(
                    status_code=response.status_code,
                    final_url=str(response.url),
                    content_type=response.headers.get("content-type", ""),
                    body_bytes=body,
                    encoding=response.charset_encoding,
                    error=classify_status(response.status_code),
                )

        except httpx.TimeoutException as e:
            return self._failure(
                url, FetchErrorClass.NETWORK_TIMEOUT, f"Request timed out: {e}"
            )
        except httpx.ConnectError as e:
            return self._failure(
                url, FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {e}"
            )
        except httpx.HTTPError as e:
            return self._failure(
                url, FetchErrorClass.UNKNOWN, f"Unexpected HTTP error: {e}"
            )

    def _read_body(self, response: httpx.Response) -> bytes:
        """Read the streamed body up to the configured size limit."""
        max_size = self._config.max_response_size_bytes
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_size:
            msg = f"Response size {declared} exceeds limit {max_size}"
            raise _BodyTooLargeError(msg)

        buffer = BytesIO()
        for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
            if buffer.tell() + len(chunk) > max_size:
                msg = f"Response exceeded limit of {max_size} bytes"
                raise _BodyTooLargeError(msg)
            buffer.write(chunk)
        return buffer.getvalue()

    @staticmethod
    def _failure(
        url: str,
        error_class: FetchErrorClass,
        message: str,
        status_code: int | None = None,
    ) -> FetchResult:
        return FetchResult(
            status_code=status_code or 0,
            final_url=url,
            error=FetchError(
                error_class=error_class,
                message=message,
                status_code=status_code,
            ),
        )

"""HTTP fetch layer for article pages.

Single-shot GET requests with a browser-like User-Agent, a response size
limit, and typed failures carrying an operator message.
"""

from thaiinfo.fetch.client import PageFetcher, classify_status, loggable_url
from thaiinfo.fetch.config import (
    BROWSER_USER_AGENT,
    DEFAULT_MAX_RESPONSE_SIZE_BYTES,
    FetchConfig,
)
from thaiinfo.fetch.metrics import FetchMetrics
from thaiinfo.fetch.models import FetchError, FetchErrorClass, FetchResult


__all__ = [
    "BROWSER_USER_AGENT",
    "DEFAULT_MAX_RESPONSE_SIZE_BYTES",
    "FetchConfig",
    "FetchError",
    "FetchErrorClass",
    "FetchMetrics",
    "FetchResult",
    "PageFetcher",
    "classify_status",
    "loggable_url",
]

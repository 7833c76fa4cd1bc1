"""Text-generation call shared by the ingestion operations."""

from __future__ import annotations

import structlog

from thaiinfo.ingest.errors import TextServiceError
from thaiinfo.ingest.metrics import IngestMetrics
from thaiinfo.llm.errors import LlmApiError
from thaiinfo.llm.models import InlineImage
from thaiinfo.llm.protocols import LlmClient


def generate_or_raise(
    client: LlmClient,
    *,
    prompt: str,
    system_instruction: str,
    log: structlog.stdlib.BoundLogger,
    metrics: IngestMetrics,
    image: InlineImage | None = None,
) -> str:
    """Call the client once and translate its failures.

    Raises:
        TextServiceError: If the client raises ``LlmApiError``.
    """
    try:
        return client.generate_content(
            prompt=prompt,
            system_instruction=system_instruction,
            image=image,
        )
    except LlmApiError as exc:
        metrics.record_service_failure()
        log.warning(
            "ingest_service_failed",
            error=str(exc),
            status_code=exc.status_code,
            retryable=exc.retryable,
        )
        raise TextServiceError(
            str(exc), status_code=exc.status_code, retryable=exc.retryable
        ) from exc

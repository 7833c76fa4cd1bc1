"""Ingestion normalizer: raw source to a reviewable news record."""

from __future__ import annotations

import math
from urllib.parse import urlparse

import structlog

from thaiinfo.fetch.client import PageFetcher
from thaiinfo.ingest.errors import (
    DomainNotAllowedError,
    FetchFailedError,
    InvalidSourceError,
)
from thaiinfo.ingest.extract import DEFAULT_MAX_BODY_CHARS, extract_page
from thaiinfo.ingest.language import LANGUAGE_CODES, detect_language
from thaiinfo.ingest.metrics import IngestMetrics
from thaiinfo.ingest.models import (
    NewsCategory,
    NormalizedRecord,
    ScrapedPage,
    SourceKind,
)
from thaiinfo.ingest.prompts import (
    SYSTEM_INSTRUCTION,
    build_image_prompt,
    build_normalize_prompt,
)
from thaiinfo.ingest.service import generate_or_raise
from thaiinfo.llm.json_utils import parse_llm_json_object
from thaiinfo.llm.models import InlineImage
from thaiinfo.llm.protocols import LlmClient


logger = structlog.get_logger()

DEFAULT_TAGS: tuple[str, ...] = ("뉴스",)
FALLBACK_TITLE = "제목 없음"
MAX_TAGS = 5
CHARS_PER_MINUTE = 200

_NULL_STRINGS = frozenset({"", "null", "none", "unknown", "n/a"})


def estimate_read_time(content: str) -> int:
    """Reading time in whole minutes, at least one."""
    return max(1, math.ceil(len(content) / CHARS_PER_MINUTE))


def source_from_url(url: str) -> str | None:
    """Publication name derived from the URL host, without ``www.``."""
    host = urlparse(url).hostname
    if not host:
        return None
    return host.removeprefix("www.")


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


class IngestionNormalizer:
    """Turns a URL, pasted text, or pasted image into a NormalizedRecord.

    All language understanding is delegated to the text-generation
    client. A malformed response falls back to a record built from the
    scraped fields; a failed call raises ``TextServiceError``.
    """

    def __init__(
        self,
        client: LlmClient,
        fetcher: PageFetcher | None = None,
        allowed_domains: list[str] | None = None,
        max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
        metrics: IngestMetrics | None = None,
    ) -> None:
        """Initialize the normalizer.

        Args:
            client: Text-generation client.
            fetcher: Page fetcher for URL sources.
            allowed_domains: Hosts accepted by ``ingest_url``; empty or
                None accepts any host.
            max_body_chars: Body text truncation limit.
            metrics: Optional metrics instance.
        """
        self._client = client
        self._fetcher = fetcher or PageFetcher()
        self._allowed_domains = [d.lower() for d in allowed_domains or []]
        self._max_body_chars = max_body_chars
        self._metrics = metrics or IngestMetrics.get_instance()
        self._log = logger.bind(component="ingest", subcomponent="normalizer")

    def ingest_url(self, url: str) -> NormalizedRecord:
        """Fetch an article page and normalize it.

        Args:
            url: Article URL.

        Returns:
            NormalizedRecord ready for review.

        Raises:
            InvalidSourceError: If the URL is malformed.
            DomainNotAllowedError: If the host is not on the allowlist.
            FetchFailedError: If the fetch fails or returns non-2xx.
            TextServiceError: If the text-generation call fails.
        """
        host = self._validate_url(url)
        log = self._log.bind(source_kind=SourceKind.URL.value, host=host)

        result = self._fetcher.fetch(url)
        if not result.is_success:
            self._metrics.record_fetch_failure()
            error = result.error
            if error is None:
                msg = "fetch reported failure without an error"
                raise RuntimeError(msg)
            log.warning(
                "ingest_fetch_failed",
                status_code=error.status_code,
                error_class=error.error_class.value,
            )
            raise FetchFailedError(url, error)

        page = extract_page(
            result.body_bytes,
            max_body_chars=self._max_body_chars,
            from_encoding=result.encoding,
        )
        log.info(
            "page_extracted",
            title_len=len(page.title),
            text_len=len(page.text),
            has_description=bool(page.description),
            has_image=bool(page.image_url),
        )
        return self._normalize(page, SourceKind.URL, original_url=url)

    def ingest_text(self, text: str, title: str = "") -> NormalizedRecord:
        """Normalize operator-pasted article text.

        Args:
            text: Pasted article text.
            title: Optional title typed by the operator.

        Returns:
            NormalizedRecord ready for review.

        Raises:
            InvalidSourceError: If the text is blank.
            TextServiceError: If the text-generation call fails.
        """
        if not text or not text.strip():
            msg = "empty text source"
            raise InvalidSourceError(msg, "뉴스 본문을 입력해주세요.")

        page = ScrapedPage(
            title=title.strip(),
            text=text.strip()[: self._max_body_chars],
        )
        return self._normalize(page, SourceKind.TEXT)

    def ingest_image(
        self,
        data: bytes,
        mime_type: str,
        hint: str = "",
    ) -> NormalizedRecord:
        """Normalize an article captured as an image.

        The image is sent to the text-generation service inline; no text
        is extracted locally.

        Args:
            data: Raw image bytes.
            mime_type: Image MIME type.
            hint: Optional operator note passed along with the image.

        Returns:
            NormalizedRecord ready for review.

        Raises:
            InvalidSourceError: If the payload is empty or not an image.
            TextServiceError: If the text-generation call fails.
        """
        if not data:
            msg = "empty image payload"
            raise InvalidSourceError(msg, "이미지 파일이 비어 있습니다.")
        if not mime_type.startswith("image/"):
            msg = f"unsupported mime type: {mime_type}"
            raise InvalidSourceError(msg, "이미지 파일만 업로드할 수 있습니다.")

        page = ScrapedPage(description=hint.strip())
        image = InlineImage(mime_type=mime_type, data=data)
        return self._normalize(page, SourceKind.IMAGE, image=image)

    def _validate_url(self, url: str) -> str:
        msg = f"invalid url: {url!r}"
        try:
            parsed = urlparse(url.strip() if url else "")
            host = (parsed.hostname or "").lower()
        except ValueError as exc:
            raise InvalidSourceError(msg, "유효하지 않은 URL 형식입니다.") from exc
        if parsed.scheme not in {"http", "https"} or not host:
            raise InvalidSourceError(msg, "유효하지 않은 URL 형식입니다.")

        if self._allowed_domains and not any(
            host == domain or host.endswith("." + domain)
            for domain in self._allowed_domains
        ):
            self._log.warning("ingest_domain_rejected", host=host)
            raise DomainNotAllowedError(host)
        return host

    def _normalize(
        self,
        page: ScrapedPage,
        kind: SourceKind,
        original_url: str | None = None,
        image: InlineImage | None = None,
    ) -> NormalizedRecord:
        language = detect_language(f"{page.title} {page.description} {page.text}")
        log = self._log.bind(source_kind=kind.value, language=language)

        if image is not None:
            prompt = build_image_prompt(page.description)
        else:
            prompt = build_normalize_prompt(
                title=page.title,
                description=page.description,
                body=page.text,
                language=language,
            )

        raw = generate_or_raise(
            self._client,
            prompt=prompt,
            system_instruction=SYSTEM_INSTRUCTION,
            image=image,
            log=log,
            metrics=self._metrics,
        )

        parsed = parse_llm_json_object(raw)
        if parsed is None:
            log.warning("ingest_fallback_used", response_preview=raw[:200])
            record = self._fallback_record(page, kind, language, original_url)
        else:
            record = self._record_from_response(
                parsed, page, kind, language, original_url, log
            )

        self._metrics.record_ingest(kind.value, record.language, record.used_fallback)
        log.info(
            "ingest_complete",
            category=record.category.value,
            tags=len(record.tags),
            used_fallback=record.used_fallback,
        )
        return record

    def _record_from_response(
        self,
        parsed: dict[str, object],
        page: ScrapedPage,
        kind: SourceKind,
        language: str,
        original_url: str | None,
        log: structlog.stdlib.BoundLogger,
    ) -> NormalizedRecord:
        if kind is SourceKind.IMAGE:
            reported = _as_text(parsed.get("language")).lower()
            language = reported if reported in LANGUAGE_CODES else language

        content = _as_text(parsed.get("content")) or page.text
        author = _as_text(parsed.get("author"))
        category = NewsCategory.coerce(parsed.get("category"))
        if category is NewsCategory.OTHER and parsed.get("category") not in (
            None,
            NewsCategory.OTHER.value,
        ):
            log.info("ingest_category_defaulted", category=str(parsed.get("category")))

        return NormalizedRecord(
            title=_as_text(parsed.get("title")) or page.title or FALLBACK_TITLE,
            summary=_as_text(parsed.get("summary")) or page.description,
            content=content,
            category=category,
            tags=self._coerce_tags(parsed.get("tags"), log),
            author=None if author.lower() in _NULL_STRINGS else author,
            language=language,
            is_translated=language != "ko",
            source=source_from_url(original_url) if original_url else None,
            original_url=original_url,
            image_url=page.image_url or None,
            read_time=estimate_read_time(content),
            source_kind=kind,
        )

    @staticmethod
    def _coerce_tags(value: object, log: structlog.stdlib.BoundLogger) -> list[str]:
        """Coerce the response's tags into a short list of unique names.

        A non-list value is coerced rather than rejected, and the
        mismatch is logged.
        """
        if isinstance(value, list):
            raw = [_as_text(v) for v in value if isinstance(v, str | int | float)]
        elif isinstance(value, str):
            log.warning("ingest_tags_shape_mismatch", tags_type="str")
            raw = [t.strip() for t in value.split(",")]
        else:
            if value is not None:
                log.warning("ingest_tags_shape_mismatch", tags_type=type(value).__name__)
            raw = []

        tags: list[str] = []
        for tag in raw:
            if tag and tag not in tags:
                tags.append(tag)
        return tags[:MAX_TAGS] or list(DEFAULT_TAGS)

    @staticmethod
    def _fallback_record(
        page: ScrapedPage,
        kind: SourceKind,
        language: str,
        original_url: str | None,
    ) -> NormalizedRecord:
        """Deterministic record built from the scraped fields alone."""
        return NormalizedRecord(
            title=page.title or FALLBACK_TITLE,
            summary=page.description,
            content=page.text,
            category=NewsCategory.OTHER,
            tags=list(DEFAULT_TAGS),
            author=None,
            language=language,
            is_translated=False,
            source=source_from_url(original_url) if original_url else None,
            original_url=original_url,
            image_url=page.image_url or None,
            read_time=estimate_read_time(page.text),
            source_kind=kind,
            used_fallback=True,
        )

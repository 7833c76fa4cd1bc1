"""News ingestion: fetch, extract, and normalize articles into records.

Sources are a URL, operator-pasted text, or an image. Pasted business
text can also be drafted into a directory entry. Translation,
summarization, and classification are delegated to a text-generation
client; a malformed response degrades to a fallback record.
"""

from thaiinfo.ingest.entry_parser import EntryDraft, EntryParser
from thaiinfo.ingest.errors import (
    DomainNotAllowedError,
    FetchFailedError,
    IngestionError,
    InvalidSourceError,
    TextServiceError,
)
from thaiinfo.ingest.extract import decode_html, extract_page, normalize_whitespace
from thaiinfo.ingest.language import detect_language
from thaiinfo.ingest.metrics import IngestMetrics
from thaiinfo.ingest.models import (
    NewsCategory,
    NewsDocument,
    NormalizedRecord,
    ScrapedPage,
    SourceKind,
)
from thaiinfo.ingest.normalizer import (
    IngestionNormalizer,
    estimate_read_time,
    source_from_url,
)
from thaiinfo.ingest.publisher import NewsPublisher, NewsSink
from thaiinfo.ingest.service import generate_or_raise


__all__ = [
    "DomainNotAllowedError",
    "EntryDraft",
    "EntryParser",
    "FetchFailedError",
    "IngestMetrics",
    "IngestionError",
    "IngestionNormalizer",
    "InvalidSourceError",
    "NewsCategory",
    "NewsDocument",
    "NewsPublisher",
    "NewsSink",
    "NormalizedRecord",
    "ScrapedPage",
    "SourceKind",
    "TextServiceError",
    "decode_html",
    "detect_language",
    "estimate_read_time",
    "extract_page",
    "generate_or_raise",
    "normalize_whitespace",
    "source_from_url",
]

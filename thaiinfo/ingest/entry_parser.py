"""Drafting directory entries from free-form business text."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from thaiinfo.directory.models import DirectoryEntryInput
from thaiinfo.ingest.errors import InvalidSourceError
from thaiinfo.ingest.metrics import IngestMetrics
from thaiinfo.ingest.normalizer import FALLBACK_TITLE, MAX_TAGS
from thaiinfo.ingest.prompts import ENTRY_SYSTEM_INSTRUCTION, build_entry_prompt
from thaiinfo.ingest.service import generate_or_raise
from thaiinfo.llm.json_utils import parse_llm_json_object
from thaiinfo.llm.protocols import LlmClient


logger = structlog.get_logger()

MAX_TITLE_CHARS = 100
MAX_SOURCE_CHARS = 4000

_NULL_STRINGS = frozenset({"", "null", "none", "unknown", "n/a", "없음"})


@dataclass(frozen=True)
class EntryDraft:
    """A directory entry proposed for operator review.

    Attributes:
        entry: Entry fields, ready for ``PortalStore.add_entry``.
        used_fallback: True when the response could not be parsed and
            the draft was built from the source text alone.
    """

    entry: DirectoryEntryInput
    used_fallback: bool = False


def _optional(value: object) -> str | None:
    if value is None or isinstance(value, dict | list):
        return None
    text = str(value).strip()
    return None if text.lower() in _NULL_STRINGS else text


def _tags(value: object) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    tags: list[str] = []
    for item in value:
        tag = _optional(item)
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()[:MAX_TITLE_CHARS]
    return FALLBACK_TITLE


class EntryParser:
    """Turns pasted business text into a DirectoryEntryInput draft.

    New entries start regular with the default exposure weight; premium
    placement is granted separately.
    """

    def __init__(
        self,
        client: LlmClient,
        metrics: IngestMetrics | None = None,
    ) -> None:
        self._client = client
        self._metrics = metrics or IngestMetrics.get_instance()
        self._log = logger.bind(component="ingest", subcomponent="entry_parser")

    def parse(self, text: str, category: str = "") -> EntryDraft:
        """Extract entry fields from ``text``.

        Args:
            text: Business description, flyer copy, or chat message.
            category: Directory category chosen by the operator.

        Returns:
            EntryDraft for review.

        Raises:
            InvalidSourceError: If the text is blank.
            TextServiceError: If the text-generation call fails.
        """
        if not text or not text.strip():
            msg = "empty entry source"
            raise InvalidSourceError(msg, "분석할 텍스트가 없습니다.")

        source = text.strip()[:MAX_SOURCE_CHARS]
        log = self._log.bind(text_len=len(source))
        raw = generate_or_raise(
            self._client,
            prompt=build_entry_prompt(source),
            system_instruction=ENTRY_SYSTEM_INSTRUCTION,
            log=log,
            metrics=self._metrics,
        )

        parsed = parse_llm_json_object(raw)
        if parsed is None:
            log.warning("entry_parse_fallback_used", response_preview=raw[:200])
            draft = EntryDraft(
                entry=DirectoryEntryInput(
                    title=_first_line(source),
                    description=source,
                    category=category.strip(),
                ),
                used_fallback=True,
            )
        else:
            draft = EntryDraft(
                entry=DirectoryEntryInput(
                    title=(_optional(parsed.get("title")) or _first_line(source))[
                        :MAX_TITLE_CHARS
                    ],
                    description=_optional(parsed.get("description")) or source,
                    category=category.strip(),
                    location=_optional(parsed.get("location")),
                    phone=_optional(parsed.get("phone")),
                    website=_optional(parsed.get("website")),
                    tags=_tags(parsed.get("tags")),
                )
            )

        self._metrics.record_entry_parse(draft.used_fallback)
        log.info(
            "entry_parsed",
            used_fallback=draft.used_fallback,
            has_phone=draft.entry.phone is not None,
            tags=len(draft.entry.tags),
        )
        return draft

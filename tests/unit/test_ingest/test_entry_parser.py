"""Unit tests for drafting directory entries from free text."""

import json

import pytest

from thaiinfo.directory.constants import DEFAULT_EXPOSURE_WEIGHT
from thaiinfo.ingest.entry_parser import EntryParser
from thaiinfo.ingest.errors import InvalidSourceError, TextServiceError
from thaiinfo.ingest.metrics import IngestMetrics
from thaiinfo.ingest.prompts import ENTRY_SYSTEM_INSTRUCTION
from thaiinfo.llm.errors import LlmApiError
from thaiinfo.llm.models import InlineImage


_SOURCE = """방콕 한식당 '서울식당'
수쿰윗 소이 12, 매일 11시-22시
전화 081-234-5678 / 라인 seoulbkk
"""


class FakeLlmClient:
    """LLM client double returning a canned response."""

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict[str, object]] = []

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        image: InlineImage | None = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "system_instruction": system_instruction})
        if self.error is not None:
            raise self.error
        return self.response


def _respond(**fields: object) -> FakeLlmClient:
    return FakeLlmClient(json.dumps(fields, ensure_ascii=False))


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start each test with fresh ingest metrics."""
    IngestMetrics.reset()


class TestEntryParser:
    """Tests for EntryParser.parse."""

    def test_fields_from_response(self) -> None:
        """Extracted fields land on a regular, zero-state entry."""
        client = _respond(
            title="서울식당",
            description="수쿰윗 소이 12의 한식당",
            location="Sukhumvit Soi 12",
            phone="081-234-5678",
            website="https://seoulbkk.example.com",
            tags=["한식", "수쿰윗"],
        )

        draft = EntryParser(client).parse(_SOURCE, category="식당")

        entry = draft.entry
        assert not draft.used_fallback
        assert entry.title == "서울식당"
        assert entry.category == "식당"
        assert entry.location == "Sukhumvit Soi 12"
        assert entry.phone == "081-234-5678"
        assert entry.website == "https://seoulbkk.example.com"
        assert entry.tags == ["한식", "수쿰윗"]
        assert not entry.is_premium
        assert entry.exposure_weight == DEFAULT_EXPOSURE_WEIGHT
        assert IngestMetrics.get_instance().entries_parsed == 1

    def test_prompt_carries_source(self) -> None:
        """The source text and the entry instruction are sent."""
        client = _respond(title="서울식당")

        EntryParser(client).parse(_SOURCE)

        call = client.calls[0]
        assert "수쿰윗 소이 12" in str(call["prompt"])
        assert call["system_instruction"] == ENTRY_SYSTEM_INSTRUCTION

    @pytest.mark.parametrize("value", [None, "null", "없음", "", {"n": 1}])
    def test_null_like_values_become_none(self, value: object) -> None:
        """Placeholders for missing information are dropped."""
        client = _respond(title="서울식당", phone=value, website=value)

        entry = EntryParser(client).parse(_SOURCE).entry

        assert entry.phone is None
        assert entry.website is None

    def test_missing_title_uses_first_line(self) -> None:
        """Without a title the first line of the source is used."""
        client = _respond(description="한식당", title=None)

        entry = EntryParser(client).parse(_SOURCE).entry

        assert entry.title == "방콕 한식당 '서울식당'"
        assert entry.description == "한식당"

    def test_tags_string_split_and_capped(self) -> None:
        """A comma-separated string is accepted and capped at five tags."""
        client = _respond(title="서울식당", tags="a, b, a, c, d, e, f")

        entry = EntryParser(client).parse(_SOURCE).entry

        assert entry.tags == ["a", "b", "c", "d", "e"]

    def test_unparseable_response_falls_back(self) -> None:
        """A non-JSON answer yields a draft built from the text alone."""
        client = FakeLlmClient("죄송합니다. 정보를 찾을 수 없습니다.")

        draft = EntryParser(client).parse(_SOURCE, category="식당")

        assert draft.used_fallback
        assert draft.entry.title == "방콕 한식당 '서울식당'"
        assert draft.entry.description == _SOURCE.strip()
        assert draft.entry.category == "식당"
        assert draft.entry.tags == []
        assert IngestMetrics.get_instance().fallbacks_total == 1

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_blank_text_rejected(self, text: str) -> None:
        """Blank input never reaches the service."""
        client = _respond(title="x")

        with pytest.raises(InvalidSourceError) as exc_info:
            EntryParser(client).parse(text)

        assert exc_info.value.user_message == "분석할 텍스트가 없습니다."
        assert client.calls == []

    def test_service_failure(self) -> None:
        """A failed call raises TextServiceError and drafts nothing."""
        client = FakeLlmClient(error=LlmApiError("Gemini API returned 500", 500))

        with pytest.raises(TextServiceError) as exc_info:
            EntryParser(client).parse(_SOURCE)

        assert exc_info.value.retryable
        assert IngestMetrics.get_instance().service_failures == 1
        assert IngestMetrics.get_instance().entries_parsed == 0

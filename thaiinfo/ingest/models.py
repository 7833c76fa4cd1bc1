"""Data models for news ingestion."""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class NewsCategory(str, Enum):
    """Fixed set of news categories shown on the portal.

    ``OTHER`` (기타) is the sentinel for unknown or missing values.
    """

    LOCAL = "현지 뉴스"
    COMMUNITY_BUSINESS = "교민 업체"
    POLICY = "정책"
    TRANSPORT = "교통"
    VISA = "비자"
    ECONOMY = "경제"
    CULTURE = "문화"
    SPORTS = "스포츠"
    OTHER = "기타"

    @classmethod
    def coerce(cls, value: object) -> "NewsCategory":
        """Map a raw value onto the fixed set, defaulting to ``OTHER``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip()
            for category in cls:
                if category.value == name:
                    return category
        return cls.OTHER


class SourceKind(str, Enum):
    """Where an ingested document came from."""

    URL = "url"
    TEXT = "text"
    IMAGE = "image"


class ScrapedPage(BaseModel):
    """Plain text and metadata extracted from an HTML page.

    Missing metadata is an empty string, never None.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = ""
    description: str = ""
    image_url: str = ""
    text: str = ""


class NormalizedRecord(BaseModel):
    """A news record ready for human review and storage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = ""
    summary: str = ""
    content: str = ""
    category: NewsCategory = NewsCategory.OTHER
    tags: list[str] = Field(default_factory=list)
    author: str | None = None
    language: str = "en"
    is_translated: bool = False
    source: str | None = None
    original_url: str | None = None
    image_url: str | None = None
    read_time: Annotated[int, Field(ge=1)] = 1
    source_kind: SourceKind = SourceKind.TEXT
    used_fallback: bool = False


class NewsDocument(BaseModel):
    """A stored news article."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[int, Field(ge=0)]
    title: str
    summary: str = ""
    content: str = ""
    language: str = "ko"
    is_translated: bool = False
    category: NewsCategory = NewsCategory.OTHER
    tags: list[str] = Field(default_factory=list)
    author: str | None = None
    source: str | None = None
    original_url: str | None = None
    image_url: str | None = None
    read_time: Annotated[int, Field(ge=1)] = 1
    view_count: Annotated[int, Field(ge=0)] = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

"""Persist reviewed news records."""

from typing import Protocol

import structlog

from thaiinfo.ingest.models import NewsDocument, NormalizedRecord


logger = structlog.get_logger()


class NewsSink(Protocol):
    """Persistence target for normalized news."""

    def save_news(self, record: NormalizedRecord) -> NewsDocument:
        """Store a record, upserting its category and tags."""
        ...


class NewsPublisher:
    """Publishes an operator-approved record to the news store."""

    def __init__(self, sink: NewsSink) -> None:
        self._sink = sink
        self._log = logger.bind(component="ingest", subcomponent="publisher")

    def publish(self, record: NormalizedRecord) -> NewsDocument:
        """Persist ``record`` and return the stored document.

        Category and tag names are matched exactly, so ``"Bangkok"`` and
        ``"bangkok"`` are distinct tags.
        """
        document = self._sink.save_news(record)
        self._log.info(
            "news_published",
            news_id=document.id,
            category=document.category.value,
            tags=len(document.tags),
            source=document.source,
        )
        return document

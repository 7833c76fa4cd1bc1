"""Debounced view-count buffering.

Card and article views are analytics only. Increments accumulate in
memory and are written in one batch per id after a quiet period, so a
burst of page views costs one UPDATE per entry instead of one per view.
"""

import threading
from collections.abc import Callable

import structlog


logger = structlog.get_logger()

ViewCountSink = Callable[[int, int], None]


class ViewCountBuffer:
    """Accumulates view increments and flushes them through a sink.

    The sink is called once per id with the accumulated amount, for
    example ``PortalStore.increment_view_count``. A failed write is
    logged and its count dropped. Counts still pending when the process
    exits without ``close()`` are lost.

    A ``flush_delay_seconds`` of zero or less disables the timer; the
    buffer then only flushes on ``flush()`` or ``close()``.
    """

    def __init__(
        self,
        sink: ViewCountSink,
        flush_delay_seconds: float = 1.0,
    ) -> None:
        """Initialize the buffer.

        Args:
            sink: Callable taking ``(id, amount)``.
            flush_delay_seconds: Quiet period before an automatic flush.
        """
        self._sink = sink
        self._delay = flush_delay_seconds
        self._pending: dict[int, int] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._closed = False
        self._log = logger.bind(component="store", subcomponent="view_buffer")

    @property
    def pending(self) -> dict[int, int]:
        """Snapshot of the counts not yet flushed."""
        with self._lock:
            return dict(self._pending)

    def increment(self, entry_id: int, amount: int = 1) -> None:
        """Buffer a view increment and re-arm the flush timer.

        Raises:
            RuntimeError: If the buffer has been closed.
        """
        with self._lock:
            if self._closed:
                msg = "view count buffer is closed"
                raise RuntimeError(msg)
            self._pending[entry_id] = self._pending.get(entry_id, 0) + amount
            self._arm_timer()

    def _arm_timer(self) -> None:
        """Restart the debounce timer. Must be called while holding the lock."""
        if self._delay <= 0:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self._delay, self.flush)
        self._timer.daemon = True
        self._timer.start()

    def flush(self) -> int:
        """Write all pending counts now.

        Returns:
            Number of ids successfully written.
        """
        with self._lock:
            batch, self._pending = self._pending, {}
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        written = 0
        for entry_id, amount in batch.items():
            try:
                self._sink(entry_id, amount)
            except Exception as exc:  # noqa: BLE001
                self._log.warning(
                    "view_count_flush_failed",
                    entry_id=entry_id,
                    dropped=amount,
                    error=str(exc),
                )
                continue
            written += 1

        if batch:
            self._log.debug("view_counts_flushed", ids=len(batch), written=written)
        return written

    def close(self) -> int:
        """Cancel the timer and flush what is pending.

        Returns:
            Number of ids written by the final flush.
        """
        with self._lock:
            self._closed = True
        return self.flush()

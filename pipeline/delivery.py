"""
Delivery Controller — sends approved postings to the sink at a controlled rate.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from models.posting import Posting
from tools.notifier import Sink


logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    """Posting ids grouped by what happened to them in one deliver() call."""

    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)


class DeliveryController:
    """
    Sends at most max_batch_size postings per call, keeping at least
    post_delay_seconds between consecutive sends to the sink.

    The gap is measured from the last send of any call, and calls from
    different threads are serialized, so the sink never sees two sends closer
    together than the delay.

    Overflow beyond the cap is not kept anywhere: those postings are already
    marked seen, so they are dropped. Each send is tried once; a failure is
    logged and the batch moves on.
    """

    def __init__(
        self,
        sink: Sink,
        max_batch_size: int = 5,
        post_delay_seconds: float = 2.0,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self.sink = sink
        self.max_batch_size = max_batch_size
        self.post_delay_seconds = post_delay_seconds
        self.stop_event = stop_event or threading.Event()
        self._clock = clock
        self._lock = threading.Lock()
        self._last_sent: Optional[float] = None

    def deliver(self, postings: Sequence[Posting]) -> DeliveryReport:
        with self._lock:
            return self._deliver(postings)

    def _pause(self) -> bool:
        """Wait out the rest of the gap since the last send. False if stop was requested."""
        remaining = 0.0
        if self._last_sent is not None:
            remaining = self.post_delay_seconds - (self._clock() - self._last_sent)
        if remaining > 0:
            # Returns True once stop is requested
            return not self.stop_event.wait(remaining)
        return not self.stop_event.is_set()

    def _deliver(self, postings: Sequence[Posting]) -> DeliveryReport:
        report = DeliveryReport()
        batch = list(postings[: self.max_batch_size])
        overflow = postings[self.max_batch_size:]

        if overflow:
            report.deferred = [p.id for p in overflow]
            logger.warning(
                "Delivery: Batch cap %d reached, dropping %d postings: %s",
                self.max_batch_size, len(overflow), ", ".join(report.deferred),
            )

        for index, posting in enumerate(batch):
            if not self._pause():
                report.cancelled = [p.id for p in batch[index:]]
                logger.warning(
                    "Delivery: Stop requested, %d postings not sent: %s",
                    len(report.cancelled), ", ".join(report.cancelled),
                )
                break

            sent = self._send(posting)
            self._last_sent = self._clock()
            if sent:
                report.sent.append(posting.id)
            else:
                report.failed.append(posting.id)

        return report

    def _send(self, posting: Posting) -> bool:
        try:
            result = self.sink.send(posting)
        except Exception as e:  # one bad send must not abort the batch
            logger.error(
                "Delivery: Failed to send %s (%s, %s): %s",
                posting.id, posting.source.value, posting.title, e,
            )
            return False

        if result is False:
            logger.error("Delivery: Sink rejected %s (%s)", posting.id, posting.source.value)
            return False

        logger.info("Delivery: Posted %s at %s", posting.title, posting.company)
        return True

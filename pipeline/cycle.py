"""
Aggregation Run — one full cycle of the relay.

Flow:
    adapters (in parallel) → filter → dedup check → mark seen → deliver

Postings are marked seen before they are handed to delivery. A posting
whose send fails is therefore lost rather than sent twice.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from models.config import FilterRules
from models.posting import Posting, utc_now
from pipeline.delivery import DeliveryController, DeliveryReport
from pipeline.filters import filter_postings
from sources.base import SourceAdapter, dedupe_by_id
from tools.dedup_store import DedupStore


logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    label: str
    fetched: dict[str, int] = field(default_factory=dict)
    failed_sources: dict[str, str] = field(default_factory=dict)
    matched: int = 0
    new: list[str] = field(default_factory=list)
    delivery: Optional[DeliveryReport] = None
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def total_fetched(self) -> int:
        return sum(self.fetched.values())


def fetch_all(adapters: Sequence[SourceAdapter], report: CycleReport) -> list[Posting]:
    """
    Run every adapter concurrently and concatenate what succeeded.

    A failing adapter is recorded in report.failed_sources and left out;
    it never fails the cycle.
    """
    if not adapters:
        return []

    postings: list[Posting] = []

    with ThreadPoolExecutor(max_workers=len(adapters), thread_name_prefix="fetch") as pool:
        futures = [(adapter, pool.submit(adapter.fetch)) for adapter in adapters]

        for adapter, future in futures:
            try:
                found = future.result()
            except Exception as e:  # isolate every adapter, whatever it raises
                report.failed_sources[adapter.name] = str(e)
                logger.error("%s: Source failed during %s: %s", adapter.name, report.label, e)
                continue

            report.fetched[adapter.name] = len(found)
            logger.info("%s: Found %d postings", adapter.name, len(found))
            postings.extend(found)

    return postings


def run_cycle(
    adapters: Sequence[SourceAdapter],
    rules: FilterRules,
    store: DedupStore,
    controller: DeliveryController,
    label: str = "cycle",
) -> CycleReport:
    """
    Execute one aggregation cycle.

    Raises:
        StoreUnavailable: If the dedup store fails. Marks already committed
            stay; unmarked postings are picked up again next cycle.
    """
    report = CycleReport(label=label)
    logger.info("Cycle %s: Checking %d sources...", label, len(adapters))

    candidates = fetch_all(adapters, report)

    matching = filter_postings(candidates, rules)
    report.matched = len(matching)
    logger.info("Cycle %s: %d of %d postings match filters", label, len(matching), len(candidates))

    unseen = [p for p in dedupe_by_id(matching) if not store.has_seen(p.id)]

    claimed = []
    for posting in unseen:
        # Claim before sending; a concurrent cycle that got here first wins
        if store.mark_seen(posting.id, posting):
            claimed.append(posting)
        else:
            logger.debug("Cycle %s: %s already claimed, skipping", label, posting.id)
    report.new = [p.id for p in claimed]

    if claimed:
        logger.info("Cycle %s: Found %d new postings to send", label, len(claimed))
        report.delivery = controller.deliver(claimed)
    else:
        logger.info("Cycle %s: No new postings", label)

    report.finished_at = utc_now()
    if report.failed_sources:
        logger.warning(
            "Cycle %s: Degraded, %d source(s) failed: %s",
            label, len(report.failed_sources), ", ".join(sorted(report.failed_sources)),
        )
    return report

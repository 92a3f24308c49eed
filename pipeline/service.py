"""
Relay Service — wires the adapters, the dedup store, and delivery into the
two scheduler handlers.
"""

import logging
import threading

from config.settings import Settings
from models.config import AppConfig
from pipeline.cycle import CycleReport, run_cycle
from pipeline.delivery import DeliveryController
from sources import build_adapters
from tools.dedup_store import DedupStore
from tools.http_client import HttpClient
from tools.notifier import Sink


logger = logging.getLogger(__name__)


class RelayService:
    """
    Holds everything one process needs to run cycles.

    The store is passed in already open and is the only shared mutable
    state; the scheduler runs at most one cycle at a time across handlers.
    """

    def __init__(
        self,
        config: AppConfig,
        settings: Settings,
        store: DedupStore,
        sink: Sink,
        http: HttpClient = None,
    ):
        self.config = config
        self.store = store
        self.http = http or HttpClient(timeout=settings.request_timeout, max_retries=settings.max_retries)
        self.stop_event = threading.Event()
        self.controller = DeliveryController(
            sink,
            max_batch_size=config.delivery.max_batch_size,
            post_delay_seconds=config.delivery.post_delay_seconds,
            stop_event=self.stop_event,
        )
        self.job_adapters, self.alert_adapters = build_adapters(config, settings, self.http)

    @property
    def handlers(self) -> dict:
        return {"job_check": self.check_jobs, "alert_check": self.check_alerts}

    def check_jobs(self) -> CycleReport:
        """Run a cycle over the job boards."""
        return run_cycle(self.job_adapters, self.config.filters, self.store, self.controller, label="job_check")

    def check_alerts(self) -> CycleReport:
        """Run a cycle over the alert mailbox."""
        return run_cycle(self.alert_adapters, self.config.filters, self.store, self.controller, label="alert_check")

    def shutdown(self) -> None:
        """Interrupt any in-flight delivery and release resources."""
        self.stop_event.set()
        self.http.close()
        self.store.close()

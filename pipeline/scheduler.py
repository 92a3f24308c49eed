"""
Cycle Scheduler — runs named handlers on cron timers and on demand.

Each timer is a small state machine (idle → scheduled ⇄ running). Only one
cycle runs at a time across all timers: a firing or manual trigger that
arrives while any handler is running is skipped and reported, never queued.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from models.config import ScheduleConfig


logger = logging.getLogger(__name__)

CRON_DESCRIPTIONS = {
    "0 * * * *": "Every hour",
    "*/30 * * * *": "Every 30 minutes",
    "*/15 * * * *": "Every 15 minutes",
    "0 */2 * * *": "Every 2 hours",
    "0 9 * * *": "Daily at 9 AM",
    "0 9 * * 1-5": "Weekdays at 9 AM",
}


def describe_cron(expression: str) -> str:
    """Human-readable name for common cron expressions."""
    return CRON_DESCRIPTIONS.get(expression, expression)


class TimerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


class RunOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # overlapped a run already in progress


@dataclass
class _Timer:
    name: str
    handler: Callable[[], object]
    cron: Optional[str]
    state: TimerState = TimerState.IDLE
    scheduled: bool = False
    skips: int = 0
    last_outcome: Optional[RunOutcome] = None


class CycleScheduler:
    """
    Owns the timers for the relay's handlers.

    Args:
        schedule: Cron expressions keyed by handler name (None disables).
        handlers: Zero-argument callables keyed by the same names.
    """

    def __init__(self, schedule: ScheduleConfig, handlers: Mapping[str, Callable[[], object]]):
        crons = schedule.model_dump()
        self._timers = {
            name: _Timer(name=name, handler=handler, cron=crons.get(name))
            for name, handler in handlers.items()
        }
        self._scheduler: Optional[BackgroundScheduler] = None
        # Cycles share the store and the sink, so they never run concurrently
        self._guard = threading.Lock()
        self._active: Optional[str] = None

    def start(self) -> None:
        """Register every enabled, valid cron expression and start ticking."""
        self._scheduler = BackgroundScheduler()

        for timer in self._timers.values():
            if not timer.cron:
                logger.info("Scheduler: %s disabled", timer.name)
                continue
            try:
                trigger = CronTrigger.from_crontab(timer.cron)
            except ValueError as e:
                logger.error("Scheduler: Invalid cron expression for %s: %s (%s)", timer.name, timer.cron, e)
                continue

            # Overlap is detected by the cycle guard, so allow a second instance through to it
            self._scheduler.add_job(
                self._run,
                trigger,
                args=[timer.name, False],
                id=timer.name,
                max_instances=2,
                coalesce=True,
                misfire_grace_time=60,
            )
            timer.scheduled = True
            timer.state = TimerState.SCHEDULED
            logger.info("Scheduler: %s scheduled (%s)", timer.name, describe_cron(timer.cron))

        self._scheduler.start()
        logger.info("Scheduler: All tasks started")

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        for timer in self._timers.values():
            timer.scheduled = False
            if timer.state != TimerState.RUNNING:
                timer.state = TimerState.IDLE
        logger.info("Scheduler: All tasks stopped")

    def trigger(self, name: str) -> RunOutcome:
        """Run a handler now, under the same non-overlap rule as its timer."""
        if name not in self._timers:
            raise KeyError(f"Unknown timer: {name}")
        logger.info("Scheduler: Manually triggering %s", name)
        return self._run(name, True)

    def status(self) -> dict:
        status = {}
        for name, timer in self._timers.items():
            job = self._scheduler.get_job(name) if self._scheduler is not None else None
            status[name] = {
                "state": timer.state.value,
                "cron": timer.cron,
                "skips": timer.skips,
                "last_outcome": timer.last_outcome.value if timer.last_outcome else None,
                "next_run": job.next_run_time if job is not None else None,
            }
        return status

    def _run(self, name: str, manual: bool) -> RunOutcome:
        timer = self._timers[name]
        how = "manual" if manual else "scheduled"

        if not self._guard.acquire(blocking=False):
            timer.skips += 1
            active = self._active
            blocker = "previous run" if active in (None, name) else f"{active} run"
            logger.warning(
                "Scheduler: Skipped %s run of %s, %s still in progress (%d skips)",
                how, name, blocker, timer.skips,
            )
            return RunOutcome.SKIPPED

        self._active = name
        try:
            timer.state = TimerState.RUNNING
            logger.info("Scheduler: Running %s %s", how, name)
            try:
                timer.handler()
            except Exception:  # a failed run must not unschedule the timer
                logger.exception("Scheduler: %s failed", name)
                outcome = RunOutcome.FAILED
            else:
                outcome = RunOutcome.SUCCEEDED
            timer.last_outcome = outcome
            return outcome
        finally:
            timer.state = TimerState.SCHEDULED if timer.scheduled else TimerState.IDLE
            self._active = None
            self._guard.release()

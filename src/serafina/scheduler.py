#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Scheduler
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Cron-style recurring jobs on the asyncio loop.

Jobs fire at fixed wall-clock instants in UTC, independent of when the process
started. A failed scheduled run is logged and the job stays registered; the
manual trigger path awaits the same callback and lets errors reach its caller.

The clock is injectable so tests can move time instead of waiting for it.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from croniter import croniter

from .background import ErrorCallback, spawn

logger = logging.getLogger(__name__)

COUNCIL_JOB = "council-report"

JobCallback = Callable[[], Awaitable]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_run(expression: str, now: datetime) -> datetime:
    """Return the first instant strictly after ``now`` matching ``expression`` (UTC)."""
    base = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
    nxt = croniter(expression, base.astimezone(timezone.utc)).get_next(datetime)
    # croniter may return naive datetimes when the base carries no tzinfo
    if nxt.tzinfo is None:
        nxt = nxt.replace(tzinfo=timezone.utc)
    return nxt


@dataclass
class ScheduledJob:
    """A registered recurring job."""

    name: str
    expression: str
    callback: JobCallback
    next_run: datetime
    last_run: Optional[datetime] = None
    runs: int = 0
    failures: int = 0


class Scheduler:
    """
    Minimal cron scheduler.

    Args:
        clock: Returns the current aware UTC datetime
        on_error: Receives exceptions raised by scheduled runs (after logging)
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        self._clock = clock or _utcnow
        self._on_error = on_error
        self._jobs: Dict[str, ScheduledJob] = {}
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def now(self) -> datetime:
        return self._clock()

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    def get(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"No scheduled job named {name!r}") from None

    def register(self, expression: str, callback: JobCallback, name: Optional[str] = None) -> ScheduledJob:
        """Register ``callback`` to run whenever ``expression`` matches."""
        if not croniter.is_valid(expression):
            raise ValueError(f"Invalid cron expression: {expression!r}")
        job_name = name or getattr(callback, "__name__", "job")
        job = ScheduledJob(
            name=job_name,
            expression=expression,
            callback=callback,
            next_run=next_run(expression, self.now()),
        )
        self._jobs[job_name] = job
        logger.info("Scheduled %s (%s UTC), next run %s", job_name, expression, job.next_run.isoformat())
        return job

    # ══════════════════════════════════════════════════════════════════════════
    # SCHEDULED PATH
    # ══════════════════════════════════════════════════════════════════════════

    async def _run_scheduled(self, job: ScheduledJob) -> None:
        job.runs += 1
        job.last_run = self.now()
        logger.info("Running scheduled job %s", job.name)
        await job.callback()

    def _job_failed(self, job: ScheduledJob) -> ErrorCallback:
        def handler(exc: BaseException) -> None:
            job.failures += 1
            logger.error(
                "Scheduled job %s failed; next run %s",
                job.name,
                job.next_run.isoformat(),
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            if self._on_error is not None:
                self._on_error(exc)

        return handler

    def tick(self) -> List[asyncio.Task]:
        """
        Launch every job that is due at ``now()``.

        Each due job's ``next_run`` moves past ``now()`` before it is launched,
        so missed instants collapse into a single run.

        Returns:
            The detached tasks running the due jobs
        """
        now = self.now()
        launched = []
        for job in self._jobs.values():
            if job.next_run > now:
                continue
            job.next_run = next_run(job.expression, now)
            launched.append(spawn(self._run_scheduled(job), name=job.name, on_error=self._job_failed(job)))
        return launched

    def seconds_until_next(self) -> Optional[float]:
        if not self._jobs:
            return None
        soonest = min(j.next_run for j in self._jobs.values())
        return max((soonest - self.now()).total_seconds(), 0.0)

    async def run_forever(self, idle_interval: float = 60.0) -> None:
        """Sleep until the next due job, tick, repeat until :meth:`stop`."""
        self._stop_event.clear()
        while not self._stop_event.is_set():
            delay = self.seconds_until_next()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=idle_interval if delay is None else delay)
                break  # Shutdown requested
            except asyncio.TimeoutError:
                pass  # Normal timeout
            self.tick()

    def start(self) -> asyncio.Task:
        """Run :meth:`run_forever` as a background task on the current loop."""
        if self._task is None or self._task.done():
            self._task = spawn(self.run_forever(), name="scheduler")
        return self._task

    def stop(self) -> None:
        self._stop_event.set()

    # ══════════════════════════════════════════════════════════════════════════
    # MANUAL PATH
    # ══════════════════════════════════════════════════════════════════════════

    async def trigger(self, name: str):
        """Run a job now, outside its schedule, and return its result. Errors propagate."""
        job = self.get(name)
        logger.info("Manual trigger for %s", job.name)
        return await job.callback()


def start_council_schedule(scheduler: Scheduler, composer, expression: str) -> ScheduledJob:
    """Register the nightly council report with ``scheduler``."""
    return scheduler.register(expression, composer.compose_and_send, name=COUNCIL_JOB)

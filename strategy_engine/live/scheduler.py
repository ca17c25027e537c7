"""
Periodic job scheduler for the live loop.
Each job runs as its own asyncio task; a job that is still running when it comes due again
is skipped for that tick (counted in Job.skipped). stop() drops all jobs but leaves running tasks alone.
"""

from __future__ import annotations
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Set

logger = logging.getLogger("strategy_engine.live.scheduler")

JobFunc = Callable[[], Awaitable[None]]


class Clock(ABC):
    @abstractmethod
    def now(self) -> float:
        """Monotonic seconds."""

    @abstractmethod
    def utcnow(self) -> datetime:
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        pass


class SystemClock(Clock):
    def now(self) -> float:
        return time.monotonic()

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock(Clock):
    """Virtual time. sleep() advances the clock instead of waiting."""

    def __init__(self, start: Optional[datetime] = None):
        self._elapsed = 0.0
        self._start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> float:
        return self._elapsed

    def utcnow(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._elapsed += seconds

    async def sleep(self, seconds: float) -> None:
        self.advance(seconds)
        await asyncio.sleep(0)


@dataclass
class Job:
    name: str
    interval: float
    func: JobFunc
    next_run: float
    running: bool = False
    runs: int = 0
    skipped: int = 0
    failures: int = 0


class Scheduler:
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self.jobs: Dict[str, Job] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def every(self, name: str, interval: float, func: JobFunc, run_immediately: bool = True) -> Job:
        if interval <= 0:
            raise ValueError("Job interval must be > 0")
        if name in self.jobs:
            raise ValueError(f"Job already scheduled: {name}")
        first = self.clock.now() if run_immediately else self.clock.now() + interval
        job = Job(name=name, interval=interval, func=func, next_run=first)
        self.jobs[name] = job
        return job

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        """Clear every job. In-flight tasks keep running to completion."""
        self._running = False
        self.jobs.clear()

    def in_flight(self) -> List[asyncio.Task]:
        return [t for t in self._tasks if not t.done()]

    async def _run(self, job: Job) -> None:
        try:
            await job.func()
            job.runs += 1
        except Exception:
            job.failures += 1
            logger.exception("Job %s failed", job.name)
        finally:
            job.running = False

    async def run_pending(self) -> List[asyncio.Task]:
        """Launch every due job. Returns the tasks started on this tick."""
        now = self.clock.now()
        started = []
        for job in list(self.jobs.values()):
            if now < job.next_run:
                continue
            job.next_run = now + job.interval
            if job.running:
                job.skipped += 1
                logger.debug("Job %s still running, skipping this tick", job.name)
                continue
            job.running = True
            task = asyncio.create_task(self._run(job), name=job.name)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(task)
        await asyncio.sleep(0)
        return started

    async def run_forever(self, tick: float = 0.1) -> None:
        self.start()
        while self._running:
            await self.run_pending()
            await self.clock.sleep(tick)

    async def drain(self) -> None:
        """Wait for in-flight tasks (including orphans of a stopped scheduler)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

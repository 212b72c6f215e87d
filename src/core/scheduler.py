#!/usr/bin/env python3
"""
Recurring job driver for harvest, summarize and post.

Jobs fire from event loop timers. Interval jobs run on wall-clock slots
aligned to midnight in the configured timezone (every 3 hours means
00:00, 03:00, ...); daily jobs run once a day at a fixed time. A job
never overlaps itself, but different jobs may run at the same time.
"""

import signal
import inspect
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import pytz

from core.config import SchedulerConfig

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Union[Awaitable[Any], Any]]


def parse_daily_time(value: str) -> time:
    """Parse ``HH:MM`` into a time."""
    hour, _, minute = value.strip().partition(':')
    return time(int(hour), int(minute or 0))


@dataclass
class ScheduledJob:
    """
    One recurring job.

    Exactly one of ``interval_hours`` and ``daily_at`` is set. When
    ``retry_delay`` is set, a failed run is retried once after that
    many seconds.
    """
    name: str
    func: JobFunc
    interval_hours: Optional[float] = None
    daily_at: Optional[time] = None
    retry_delay: Optional[float] = None


class Scheduler:
    """Drives the recurring jobs with explicit start/stop lifecycle."""

    def __init__(self,
                 config: SchedulerConfig,
                 jobs: List[ScheduledJob],
                 now: Optional[Callable[[], datetime]] = None):
        """
        Args:
            config: Scheduler settings (timezone, run_on_start)
            jobs: Jobs to drive
            now: Timezone-aware clock, defaults to the current time
        """
        self.config = config
        self.tz = pytz.timezone(config.timezone)
        self.jobs: Dict[str, ScheduledJob] = {job.name: job for job in jobs}
        self._now = now or (lambda: datetime.now(self.tz))
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._exit_event: Optional[asyncio.Event] = None
        self.running = False

    @classmethod
    def from_config(cls,
                    config: SchedulerConfig,
                    harvest: JobFunc,
                    summarize: JobFunc,
                    post: JobFunc,
                    **kwargs) -> 'Scheduler':
        jobs = [
            ScheduledJob('harvest', harvest, interval_hours=config.harvest_interval_hours),
            ScheduledJob('summarize', summarize,
                         daily_at=parse_daily_time(config.summarize_time),
                         retry_delay=config.summarize_retry_delay_seconds),
            ScheduledJob('post', post, interval_hours=config.post_interval_hours),
        ]
        return cls(config, jobs, **kwargs)

    def next_run(self, job: ScheduledJob, after: Optional[datetime] = None) -> datetime:
        """Next wall-clock time ``job`` should fire, strictly after ``after``."""
        current = (after or self._now()).astimezone(self.tz)
        midnight = self.tz.localize(datetime.combine(current.date(), time(0, 0)))

        if job.daily_at is not None:
            candidate = self.tz.localize(datetime.combine(current.date(), job.daily_at))
            if candidate <= current:
                candidate = self.tz.localize(
                    datetime.combine(current.date() + timedelta(days=1), job.daily_at)
                )
            return candidate

        step = timedelta(hours=job.interval_hours)
        elapsed = current - midnight
        slots = int(elapsed / step) + 1
        return midnight + step * slots

    def seconds_until_next(self, job: ScheduledJob) -> float:
        now = self._now()
        return max(0.0, (self.next_run(job, now) - now).total_seconds())

    def start(self) -> None:
        """
        Register every job. Calling start on a running scheduler does nothing.

        Must be called from within a running event loop.
        """
        if self.running:
            logger.info("Scheduler is already running")
            return

        self._loop = asyncio.get_running_loop()
        self._exit_event = asyncio.Event()
        self.running = True

        for job in self.jobs.values():
            self._schedule(job)
            if self.config.run_on_start:
                self._launch(job)

        logger.info(f"Scheduler started ({self.config.timezone}): " + ", ".join(
            f"{name} next at {self.next_run(job).strftime('%Y-%m-%d %H:%M')}"
            for name, job in self.jobs.items()
        ))

    def stop(self) -> None:
        """
        Cancel every pending registration, retries included.

        Jobs already running are left to finish. Calling stop twice does
        nothing the second time.
        """
        if not self.running:
            logger.info("Scheduler is not running")
            return

        self.running = False
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if self._exit_event is not None:
            self._exit_event.set()
        logger.info(f"Scheduler stopped, {len(self.inflight())} job(s) still finishing")

    def inflight(self) -> List[str]:
        return [name for name, task in self._inflight.items() if not task.done()]

    async def wait_for_inflight(self) -> None:
        tasks = [task for task in self._inflight.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def install_signal_handlers(self) -> None:
        """Stop on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._on_signal, sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down")
        self.stop()

    async def run_forever(self) -> None:
        """Start, block until stopped, then let in-flight jobs finish."""
        self.start()
        await self._exit_event.wait()
        await self.wait_for_inflight()

    def _schedule(self, job: ScheduledJob) -> None:
        delay = self.seconds_until_next(job)
        self._handles[job.name] = self._loop.call_later(delay, self._fire, job)
        logger.debug(f"{job.name} scheduled in {delay:.0f}s")

    def _fire(self, job: ScheduledJob) -> None:
        if not self.running:
            return
        self._schedule(job)
        self._launch(job)

    def _launch(self, job: ScheduledJob, is_retry: bool = False) -> None:
        current = self._inflight.get(job.name)
        if current is not None and not current.done():
            logger.warning(f"Skipping {job.name}: previous run still in progress")
            return
        self._inflight[job.name] = self._loop.create_task(self._run(job, is_retry))

    async def _run(self, job: ScheduledJob, is_retry: bool) -> None:
        label = f"{job.name} retry" if is_retry else job.name
        logger.info(f"Starting scheduled {label} job")
        try:
            if inspect.iscoroutinefunction(job.func):
                await job.func()
            else:
                await asyncio.to_thread(job.func)
        except Exception as e:
            logger.error(f"Scheduled {label} job failed: {e}", exc_info=True)
            if job.retry_delay is not None and not is_retry and self.running:
                logger.info(f"Retrying {job.name} in {job.retry_delay:.0f}s")
                self._handles[f"{job.name}:retry"] = self._loop.call_later(
                    job.retry_delay, self._fire_retry, job
                )
            return
        logger.info(f"Completed scheduled {label} job")

    def _fire_retry(self, job: ScheduledJob) -> None:
        self._handles.pop(f"{job.name}:retry", None)
        if self.running:
            self._launch(job, is_retry=True)

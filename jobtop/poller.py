"""Background polling of the monitoring backend."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from .cache import DataCache, PollState
from .models import DataSnapshot
from .sources.base import MonitoringDataSource

logger = logging.getLogger(__name__)

SLEEP_SLICE = 0.1
DEFAULT_JOB_LIMIT = 500


class PollScheduler:
    """Fetches a full snapshot every ``interval`` seconds on a daemon thread.

    A failed fetch flips the cache status to ``error`` and leaves the last good
    snapshot in place; the loop keeps going until ``running`` is cleared.
    """

    def __init__(
        self,
        source: MonitoringDataSource,
        cache: DataCache,
        interval: float = 2.0,
        running: Optional[threading.Event] = None,
        limit: int = DEFAULT_JOB_LIMIT,
        guard: Optional[PollState] = None,
    ):
        self.source = source
        self.cache = cache
        self.interval = interval
        self.limit = limit
        self.running = running if running is not None else threading.Event()
        self.guard = guard if guard is not None else PollState()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def fetch_snapshot(self) -> DataSnapshot:
        watched = self.cache.watched_queue
        queue_jobs = None
        if watched is not None:
            queue_jobs = tuple(self.source.queue_jobs(watched, self.limit))
        return DataSnapshot(
            overview=self.source.overview(),
            queues=tuple(self.source.queues()),
            processes=tuple(self.source.processes()),
            workers=tuple(self.source.workers()),
            retry_jobs=tuple(self.source.retry_jobs(self.limit)),
            scheduled_jobs=tuple(self.source.scheduled_jobs(self.limit)),
            dead_jobs=tuple(self.source.dead_jobs(self.limit)),
            queue_jobs=queue_jobs,
            queue_jobs_name=watched if queue_jobs is not None else None,
        )

    def poll_once(self) -> bool:
        """Run one fetch cycle. Returns True when a snapshot was published."""
        if not self.guard.try_acquire():
            logger.debug("Poll skipped: previous fetch still in progress")
            return False
        try:
            self.cache.set_status("updating")
            try:
                snapshot = self.fetch_snapshot()
            except Exception:
                logger.exception("Data refresh failed")
                self.cache.set_status("error")
                return False
            self.cache.publish(snapshot)
            self.cache.set_status("connected")
            return True
        finally:
            self.guard.release()

    def request_refresh(self) -> None:
        """Cut the current sleep short so the next poll happens right away."""
        self._wake.set()

    def _sleep(self) -> None:
        deadline = time.monotonic() + self.interval
        while self.running.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            if self._wake.wait(timeout=min(SLEEP_SLICE, remaining)):
                self._wake.clear()
                return

    def run(self) -> None:
        logger.debug("Poller started (interval %.1fs)", self.interval)
        while self.running.is_set():
            self.poll_once()
            self._sleep()
        logger.debug("Poller stopped")

    def start(self) -> None:
        self.running.set()
        self._thread = threading.Thread(target=self.run, name="jobtop-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> bool:
        """Clear the running flag and join for at most ``timeout`` seconds.

        Returns False if the thread was still busy (e.g. blocked in a slow
        request) when the timeout ran out.
        """
        self.running.clear()
        self._wake.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

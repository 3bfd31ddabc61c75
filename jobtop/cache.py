"""Shared state between the poller thread and the input/render loop.

``DataCache`` and ``PollState`` are the only objects both threads touch. Each
has its own lock and neither lock is ever taken while holding the other.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from typing import Optional

from .models import ConnectionStatus, DataSnapshot, JobInfo


class DataCache:
    """Holds the current snapshot and a version counter bumped on every publish."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Optional[DataSnapshot] = None
        self._version = 0
        self._status: ConnectionStatus = "connecting"
        self._watched_queue: Optional[str] = None
        self._stale = False

    def publish(self, snapshot: DataSnapshot) -> int:
        """Replace the snapshot and bump the version by exactly one.

        A snapshot without ``queue_jobs`` inherits the current one's while a
        queue is still being watched, so an out-of-band fetch made on Enter is
        not thrown away by the next regular poll. Queue jobs fetched for a
        queue that is no longer watched are discarded.
        """
        with self._lock:
            current = self._snapshot
            if snapshot.queue_jobs is not None and snapshot.queue_jobs_name != self._watched_queue:
                snapshot = dataclasses.replace(snapshot, queue_jobs=None, queue_jobs_name=None)
            if (
                snapshot.queue_jobs is None
                and current is not None
                and current.queue_jobs is not None
                and self._watched_queue is not None
                and current.queue_jobs_name == self._watched_queue
            ):
                snapshot = dataclasses.replace(
                    snapshot,
                    queue_jobs=current.queue_jobs,
                    queue_jobs_name=current.queue_jobs_name,
                )
            self._snapshot = snapshot
            self._version += 1
            return self._version

    def current(self) -> tuple[Optional[DataSnapshot], int]:
        with self._lock:
            return self._snapshot, self._version

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def merge_queue_jobs(self, queue_name: str, jobs: list[JobInfo] | tuple[JobInfo, ...]) -> bool:
        """Attach a freshly fetched job list for one queue to the current snapshot.

        Returns False when there is no snapshot yet to attach it to.
        """
        with self._lock:
            if self._snapshot is None:
                return False
            self._snapshot = dataclasses.replace(
                self._snapshot,
                queue_jobs=tuple(jobs),
                queue_jobs_name=queue_name,
            )
            return True

    # -- connection status ------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        with self._lock:
            return self._status

    def set_status(self, status: ConnectionStatus) -> None:
        with self._lock:
            self._status = status

    # -- queue_jobs focus -------------------------------------------------

    @property
    def watched_queue(self) -> Optional[str]:
        with self._lock:
            return self._watched_queue

    def watch_queue(self, name: Optional[str]) -> None:
        with self._lock:
            self._watched_queue = name

    # -- stale flag -------------------------------------------------------

    def mark_stale(self) -> None:
        """Force the next render-loop check to redraw even without a new version."""
        with self._lock:
            self._stale = True

    def consume_stale(self) -> bool:
        with self._lock:
            stale, self._stale = self._stale, False
            return stale


class PollState:
    """Single-flight guard: at most one fetch in progress, extras are skipped."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.in_progress = False
        self.started_at: Optional[float] = None

    def try_acquire(self) -> bool:
        with self._lock:
            if self.in_progress:
                return False
            self.in_progress = True
            self.started_at = time.monotonic()
            return True

    def release(self) -> None:
        with self._lock:
            self.in_progress = False
            self.started_at = None

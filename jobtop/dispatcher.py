"""Keyboard input handling.

Maps raw key bytes to view switches, navigation and job/process actions.
Runs on the input/render thread only; the one thing it shares with the poller
is the ``DataCache``.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .cache import DataCache
from .models import DataSnapshot, JobInfo, MessageLevel, ProcessInfo, StatusMessage, View
from .poller import DEFAULT_JOB_LIMIT
from .sources.base import JobActionService, MonitoringDataSource
from .viewport import ViewportState

logger = logging.getLogger(__name__)

ESCAPE = "\x1b"
ESCAPE_TIMEOUT = 0.05
ESCAPE_MAX_CHARS = 10

VIEW_KEYS = {
    "m": View.MAIN,
    "q": View.QUEUES,
    "p": View.PROCESSES,
    "w": View.WORKERS,
    "r": View.RETRIES,
    "s": View.SCHEDULED,
    "d": View.DEAD,
}

CTRL_C = "\x03"
CTRL_K = "\x0b"
CTRL_Q = "\x11"
CTRL_R = "\x12"
CTRL_X = "\x18"

# Job views whose rows can be retried/deleted, and the source each maps to
JOB_VIEW_SOURCES = {View.RETRIES: "retry", View.DEAD: "dead"}


class InputDispatcher:
    """Routes one key press at a time.

    Args:
        viewport: View, scroll and selection state to drive.
        cache: Shared snapshot cache (read for selections, written for queue jobs).
        source: Used for the out-of-band queue job fetch on Enter.
        actions: Receives retry/delete/quiet/stop requests.
        read_sequence: ``read_sequence(timeout, max_chars)`` returns whatever
            bytes follow an ESC, or ``""`` when nothing arrives in time.
        on_refresh: Called after a successful mutation to wake the poller.
    """

    def __init__(
        self,
        viewport: ViewportState,
        cache: DataCache,
        source: MonitoringDataSource,
        actions: JobActionService,
        read_sequence: Callable[[float, int], str],
        on_refresh: Optional[Callable[[], None]] = None,
        limit: int = DEFAULT_JOB_LIMIT,
    ):
        self.viewport = viewport
        self.cache = cache
        self.source = source
        self.actions = actions
        self.read_sequence = read_sequence
        self.on_refresh = on_refresh
        self.limit = limit
        self.status_message: Optional[StatusMessage] = None
        self.selected_queue: Optional[str] = None

    def set_status(self, text: str, level: MessageLevel = "info") -> None:
        self.status_message = StatusMessage(text, level=level)

    # ------------------------------------------------------------------
    # Key routing
    # ------------------------------------------------------------------

    def dispatch(self, key: str) -> None:
        view = VIEW_KEYS.get(key.lower())
        if view is not None:
            self.viewport.switch_to(view)
        elif key in ("\r", "\n"):
            self.handle_enter()
        elif key == CTRL_R:
            self.handle_retry()
        elif key == CTRL_X:
            self.handle_delete()
        elif key == CTRL_Q:
            self.handle_quiet_process()
        elif key == CTRL_K:
            self.handle_stop_process()
        elif key == ESCAPE:
            self._dispatch_escape()
        elif key == CTRL_C:
            raise KeyboardInterrupt

    def _dispatch_escape(self) -> None:
        seq = self.read_sequence(ESCAPE_TIMEOUT, ESCAPE_MAX_CHARS)
        if seq in ("[A", "OA"):
            self.viewport.select_up()
        elif seq in ("[B", "OB"):
            self.viewport.select_down()
        elif seq in ("[C", "OC"):
            self.viewport.next_view()
        elif seq in ("[D", "OD"):
            self.viewport.previous_view()
        elif seq == "[5~":
            self.viewport.page_up()
        elif seq == "[6~":
            self.viewport.page_down()
        elif seq in ("r", "R"):
            self.handle_retry_all()
        elif seq in ("x", "X"):
            self.handle_delete_all()
        else:
            self.handle_escape()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _snapshot(self) -> Optional[DataSnapshot]:
        snapshot, _ = self.cache.current()
        if snapshot is None:
            self.set_status("No data available")
        return snapshot

    def _pick(self, items: Sequence, index: int, empty_text: str):
        """Return ``items[index]`` or None after setting the matching message."""
        if not items:
            self.set_status(empty_text)
            return None
        if index >= len(items):
            self.set_status("Invalid selection")
            return None
        return items[index]

    def _changed(self) -> None:
        self.cache.mark_stale()
        if self.on_refresh is not None:
            self.on_refresh()

    def _fail(self, prefix: str, exc: Exception) -> None:
        logger.warning("%s%s", prefix, exc)
        self.set_status(f"{prefix}{exc}", level="error")

    def _selected_job(self, jobs: Sequence[JobInfo], empty_text: str) -> Optional[JobInfo]:
        job = self._pick(jobs, self.viewport.selected_index, empty_text)
        if job is not None and not job.jid:
            self.set_status("Job has no JID")
            return None
        return job

    def _selected_process(self) -> Optional[ProcessInfo]:
        snapshot = self._snapshot()
        if snapshot is None:
            return None
        process = self._pick(snapshot.processes, self.viewport.selected_index, "No processes")
        if process is not None and not process.identity:
            self.set_status("Process has no identity")
            return None
        return process

    def _job_list(self, snapshot: DataSnapshot) -> Sequence[JobInfo]:
        if self.viewport.current_view == View.RETRIES:
            return snapshot.retry_jobs
        return snapshot.dead_jobs

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def handle_retry(self) -> None:
        source = JOB_VIEW_SOURCES.get(self.viewport.current_view)
        if source is None:
            return
        snapshot = self._snapshot()
        if snapshot is None:
            return
        job = self._selected_job(self._job_list(snapshot), "No jobs to retry")
        if job is None:
            return
        try:
            self.actions.retry_job(job.jid, source)
        except Exception as e:
            self._fail("Error: ", e)
            return
        self.set_status(f"Retrying {job.klass}")
        self._changed()

    def handle_delete(self) -> None:
        if self.viewport.current_view == View.QUEUE_JOBS:
            self.handle_delete_queue_job()
            return
        source = JOB_VIEW_SOURCES.get(self.viewport.current_view)
        if source is None:
            return
        snapshot = self._snapshot()
        if snapshot is None:
            return
        job = self._selected_job(self._job_list(snapshot), "No jobs to delete")
        if job is None:
            return
        try:
            self.actions.delete_job(job.jid, source)
        except Exception as e:
            self._fail("Error: ", e)
            return
        self.set_status(f"Deleted {job.klass}")
        self._changed()

    def handle_retry_all(self) -> None:
        source = JOB_VIEW_SOURCES.get(self.viewport.current_view)
        if source is None:
            return
        try:
            count = self.actions.retry_all(source)
        except Exception as e:
            self._fail("Error: ", e)
            return
        self.set_status(f"Retrying all {count} jobs")
        self._changed()

    def handle_delete_all(self) -> None:
        source = JOB_VIEW_SOURCES.get(self.viewport.current_view)
        if source is None:
            return
        try:
            count = self.actions.delete_all(source)
        except Exception as e:
            self._fail("Error: ", e)
            return
        self.set_status(f"Deleted all {count} jobs")
        self._changed()

    def handle_quiet_process(self) -> None:
        if self.viewport.current_view != View.PROCESSES:
            return
        process = self._selected_process()
        if process is None:
            return
        try:
            self.actions.quiet_process(process.identity)
        except Exception as e:
            self._fail("Error: ", e)
            return
        self.set_status(f"Quieting {process.hostname}:{process.pid}")
        self._changed()

    def handle_stop_process(self) -> None:
        if self.viewport.current_view != View.PROCESSES:
            return
        process = self._selected_process()
        if process is None:
            return
        try:
            self.actions.stop_process(process.identity)
        except Exception as e:
            self._fail("Error: ", e)
            return
        self.set_status(f"Stopping {process.hostname}:{process.pid}")
        self._changed()

    def handle_enter(self) -> None:
        """Open the job list of the queue on the top visible row."""
        if self.viewport.current_view != View.QUEUES:
            return
        snapshot = self._snapshot()
        if snapshot is None:
            return
        queue = self._pick(snapshot.queues, self.viewport.scroll_offset, "No queues")
        if queue is None:
            return

        try:
            jobs = self.source.queue_jobs(queue.name, self.limit)
        except Exception as e:
            self._fail("Error loading queue: ", e)
            return

        self.cache.watch_queue(queue.name)
        self.cache.merge_queue_jobs(queue.name, jobs)
        self.selected_queue = queue.name
        entry = self.viewport.entry(View.QUEUE_JOBS)
        entry.scroll_offset = entry.selected_index = 0
        self.viewport.switch_to(View.QUEUE_JOBS)
        self.set_status(f"Loaded {len(jobs)} jobs from {queue.name}")
        self.cache.mark_stale()

    def handle_escape(self) -> None:
        if self.viewport.current_view == View.QUEUE_JOBS:
            self.viewport.switch_to(View.QUEUES)
            self.selected_queue = None
            self.cache.watch_queue(None)
        else:
            self.viewport.switch_to(View.MAIN)

    def handle_delete_queue_job(self) -> None:
        snapshot = self._snapshot()
        if snapshot is None:
            return
        queue_name = snapshot.queue_jobs_name
        if snapshot.queue_jobs and queue_name != self.selected_queue:
            self.set_status("Invalid selection")
            return
        job = self._selected_job(snapshot.queue_jobs or (), "No jobs to delete")
        if job is None:
            return
        try:
            self.actions.delete_queue_job(queue_name, job.jid)
            self.set_status(f"Deleted {job.klass}")
            self.cache.merge_queue_jobs(queue_name, self.source.queue_jobs(queue_name, self.limit))
        except Exception as e:
            self._fail("Error: ", e)
            return
        self._changed()

"""Data model shared by the poller, the renderer and the input dispatcher.

Records are frozen dataclasses holding plain values; sequences are tuples so a
published snapshot can be handed to the render thread without copying.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional


class View(str, Enum):
    MAIN = "main"
    QUEUES = "queues"
    PROCESSES = "processes"
    WORKERS = "workers"
    RETRIES = "retries"
    SCHEDULED = "scheduled"
    DEAD = "dead"
    QUEUE_JOBS = "queue_jobs"


# Left/right arrow cycling order. queue_jobs is reached only through Enter.
VIEW_ORDER: list[View] = [
    View.MAIN,
    View.QUEUES,
    View.PROCESSES,
    View.WORKERS,
    View.RETRIES,
    View.SCHEDULED,
    View.DEAD,
]

# Views where up/down move a row cursor instead of scrolling
SELECTABLE_VIEWS: frozenset[View] = frozenset(
    {View.PROCESSES, View.RETRIES, View.DEAD, View.QUEUE_JOBS}
)

ConnectionStatus = Literal["connecting", "updating", "connected", "error"]

# Job sources accepted by the action service
JobSource = Literal["retry", "dead", "scheduled"]

MessageLevel = Literal["info", "error"]
JOB_SOURCES: tuple[str, ...] = ("retry", "dead", "scheduled")

STATUS_MESSAGE_TTL = 3.0


@dataclass(frozen=True)
class Overview:
    processed: int = 0
    failed: int = 0
    scheduled_size: int = 0
    retry_size: int = 0
    dead_size: int = 0
    enqueued: int = 0
    default_queue_latency: float = 0.0


@dataclass(frozen=True)
class QueueInfo:
    name: str
    size: int = 0
    latency: float = 0.0
    paused: bool = False


@dataclass(frozen=True)
class ProcessInfo:
    identity: Optional[str]
    hostname: str = ""
    pid: Optional[int] = None
    tag: Optional[str] = None
    started_at: Optional[float] = None
    concurrency: int = 0
    busy: int = 0
    queues: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    quiet: bool = False
    stopping: bool = False
    rss: Optional[int] = None  # KB


@dataclass(frozen=True)
class WorkerInfo:
    """One busy worker thread, normalized from whatever shape the backend sends."""

    process_id: str
    thread_id: str
    queue: str = ""
    klass: str = ""
    args: tuple[Any, ...] = ()
    run_at: Optional[float] = None
    elapsed: float = 0.0


@dataclass(frozen=True)
class JobInfo:
    """A job in a queue, the retry set, the scheduled set or the dead set."""

    jid: Optional[str]
    klass: str = ""
    queue: str = ""
    args: tuple[Any, ...] = ()
    created_at: Optional[float] = None
    enqueued_at: Optional[float] = None
    scheduled_at: Optional[float] = None
    failed_at: Optional[float] = None
    retry_count: Optional[int] = None
    error_class: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class DataSnapshot:
    """One complete capture of the monitored backend.

    Built wholesale by the poller and never mutated; the only field that can be
    swapped in after the fact is ``queue_jobs`` (see ``DataCache.merge_queue_jobs``),
    and that produces a new snapshot rather than editing this one.
    """

    overview: Overview = field(default_factory=Overview)
    queues: tuple[QueueInfo, ...] = ()
    processes: tuple[ProcessInfo, ...] = ()
    workers: tuple[WorkerInfo, ...] = ()
    retry_jobs: tuple[JobInfo, ...] = ()
    scheduled_jobs: tuple[JobInfo, ...] = ()
    dead_jobs: tuple[JobInfo, ...] = ()
    queue_jobs: Optional[tuple[JobInfo, ...]] = None
    queue_jobs_name: Optional[str] = None
    fetched_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class StatusMessage:
    """A transient one-line message shown above the footer."""

    text: str
    created_at: float = field(default_factory=time.monotonic)
    level: MessageLevel = "info"

    def is_visible(self, now: float | None = None) -> bool:
        if now is None:
            now = time.monotonic()
        return now - self.created_at < STATUS_MESSAGE_TTL

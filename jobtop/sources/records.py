"""Normalize backend payloads into the dashboard's record types.

Backends hand back plain dicts in a handful of shapes (different server
versions disagree on where a worker's job lives, whether flags are booleans or
strings, whether times are epochs or ISO strings). All of that is settled
here so the rest of the code only ever sees ``models`` dataclasses.
"""

from __future__ import annotations

import json
import math
import time
from datetime import datetime, timezone
from typing import Any, Optional

from ..exceptions import UnknownSourceError
from ..models import JOB_SOURCES, JobInfo, Overview, ProcessInfo, QueueInfo, WorkerInfo


def check_source(source: str) -> str:
    if source not in JOB_SOURCES:
        raise UnknownSourceError(source)
    return source


def to_timestamp(value: Any) -> Optional[float]:
    """Convert an epoch number or ISO-8601 string to POSIX seconds.

    NaN and infinities come back as None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return _finite(float(value))
    try:
        return _finite(float(value))
    except (TypeError, ValueError):
        pass
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def to_flag(value: Any) -> bool:
    return value is True or value == "true"


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def overview_from_dict(data: dict[str, Any]) -> Overview:
    return Overview(
        processed=_int(data.get("processed")),
        failed=_int(data.get("failed")),
        scheduled_size=_int(data.get("scheduled_size")),
        retry_size=_int(data.get("retry_size")),
        dead_size=_int(data.get("dead_size")),
        enqueued=_int(data.get("enqueued")),
        default_queue_latency=_float(data.get("default_queue_latency")),
    )


def queue_from_dict(data: dict[str, Any]) -> QueueInfo:
    return QueueInfo(
        name=str(data.get("name", "")),
        size=_int(data.get("size")),
        latency=_float(data.get("latency")),
        paused=to_flag(data.get("paused")),
    )


def process_from_dict(data: dict[str, Any]) -> ProcessInfo:
    rss = data.get("rss")
    pid = data.get("pid")
    return ProcessInfo(
        identity=data.get("identity"),
        hostname=str(data.get("hostname") or ""),
        pid=_int(pid) if pid is not None else None,
        tag=data.get("tag"),
        started_at=to_timestamp(data.get("started_at")),
        concurrency=_int(data.get("concurrency")),
        busy=_int(data.get("busy")),
        queues=tuple(str(q) for q in _tuple(data.get("queues"))),
        labels=tuple(str(label) for label in _tuple(data.get("labels"))),
        quiet=to_flag(data.get("quiet")),
        stopping=to_flag(data.get("stopping")),
        rss=_int(rss) if rss is not None else None,
    )


def worker_from_dict(data: dict[str, Any], now: float | None = None) -> WorkerInfo:
    """Build a WorkerInfo from either worker payload shape.

    Older servers nest the job under ``payload`` (sometimes as a JSON string),
    newer ones under ``job``; a flat record with ``class``/``args`` at the top
    level is accepted as well.
    """
    if now is None:
        now = time.time()

    if "payload" in data:
        job = data["payload"]
        if isinstance(job, str):
            try:
                job = json.loads(job)
            except ValueError:
                job = {}
    elif "job" in data:
        job = data["job"]
    else:
        job = data
    if not isinstance(job, dict):
        job = {}

    run_at = to_timestamp(data.get("run_at"))
    return WorkerInfo(
        process_id=str(data.get("process_id", "")),
        thread_id=str(data.get("thread_id", "")),
        queue=str(data.get("queue") or job.get("queue") or ""),
        klass=str(job.get("class") or job.get("wrapped") or ""),
        args=_tuple(job.get("args")),
        run_at=run_at,
        elapsed=max(now - run_at, 0.0) if run_at is not None else 0.0,
    )


def job_from_dict(data: dict[str, Any]) -> JobInfo:
    retry_count = data.get("retry_count")
    return JobInfo(
        jid=data.get("jid"),
        klass=str(data.get("class") or data.get("klass") or ""),
        queue=str(data.get("queue") or ""),
        args=_tuple(data.get("args")),
        created_at=to_timestamp(data.get("created_at")),
        enqueued_at=to_timestamp(data.get("enqueued_at")),
        scheduled_at=to_timestamp(data.get("scheduled_at") or data.get("at")),
        failed_at=to_timestamp(data.get("failed_at")),
        retry_count=_int(retry_count) if retry_count is not None else None,
        error_class=data.get("error_class"),
        error_message=data.get("error_message"),
    )

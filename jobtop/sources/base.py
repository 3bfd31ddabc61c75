"""Interfaces the dashboard core consumes.

Anything that satisfies these protocols can drive the dashboard; the core
never looks past them.
"""

from __future__ import annotations

from typing import Protocol

from ..models import JobInfo, Overview, ProcessInfo, QueueInfo, WorkerInfo


class MonitoringDataSource(Protocol):
    """Read side. Every method may raise ``FetchError``."""

    def overview(self) -> Overview: ...

    def queues(self) -> list[QueueInfo]: ...

    def processes(self) -> list[ProcessInfo]: ...

    def workers(self) -> list[WorkerInfo]: ...

    def retry_jobs(self, limit: int) -> list[JobInfo]: ...

    def scheduled_jobs(self, limit: int) -> list[JobInfo]: ...

    def dead_jobs(self, limit: int) -> list[JobInfo]: ...

    def queue_jobs(self, name: str, limit: int) -> list[JobInfo]: ...


class JobActionService(Protocol):
    """Write side. Raises ``NotFoundError`` or ``UnknownSourceError`` on bad targets."""

    def retry_job(self, jid: str, source: str) -> bool: ...

    def delete_job(self, jid: str, source: str) -> bool: ...

    def retry_all(self, source: str) -> int: ...

    def delete_all(self, source: str) -> int: ...

    def quiet_process(self, identity: str) -> bool: ...

    def stop_process(self, identity: str) -> bool: ...

    def delete_queue_job(self, queue: str, jid: str) -> bool: ...

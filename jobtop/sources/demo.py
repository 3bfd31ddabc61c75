"""In-memory demo backend.

Serves generated sample data and applies actions to it, so the dashboard can
be explored with ``jobtop --demo`` and no server. The poller thread reads
while the input thread mutates, hence the lock.
"""

from __future__ import annotations

import random
import threading
import time
import uuid
from typing import Any

from ..exceptions import NotFoundError
from ..models import JobInfo, Overview, ProcessInfo, QueueInfo, WorkerInfo
from .records import (
    check_source,
    job_from_dict,
    overview_from_dict,
    process_from_dict,
    queue_from_dict,
    worker_from_dict,
)

QUEUE_NAMES = ["default", "mailers", "critical", "low", "webhooks", "reports"]
JOB_CLASSES = [
    "UserMailer",
    "InvoiceGenerator",
    "WebhookDelivery",
    "ImageResizeJob",
    "SearchIndexer",
    "ReportBuilder",
    "CacheWarmer",
    "PaymentSyncJob",
]
ERROR_CLASSES = ["Net::ReadTimeout", "ActiveRecord::RecordNotFound", "RuntimeError", "Redis::TimeoutError"]
HOSTS = ["worker-1.prod", "worker-2.prod", "worker-3.prod", "batch-1.prod"]


def _jid() -> str:
    return uuid.uuid4().hex[:24]


class DemoBackend:
    """Implements both MonitoringDataSource and JobActionService."""

    def __init__(self, seed: int | None = None, latency: float = 0.0):
        self._lock = threading.Lock()
        self._rng = random.Random(seed)
        self._latency = latency
        now = time.time()

        self._stats = {"processed": 1_284_503, "failed": 3_117}
        self._queues: dict[str, list[dict[str, Any]]] = {
            name: [self._make_job(name, now) for _ in range(self._rng.randint(0, 40))]
            for name in QUEUE_NAMES
        }
        self._paused = {"low"}
        self._processes = [
            {
                "identity": f"{host}:{1000 + i}:{uuid.uuid4().hex[:12]}",
                "hostname": host,
                "pid": 1000 + i,
                "started_at": now - self._rng.randint(120, 86400 * 3),
                "concurrency": 10,
                "busy": 0,
                "queues": QUEUE_NAMES[: 2 + i],
                "labels": [],
                "quiet": "false",
                "stopping": "false",
                "rss": self._rng.randint(180_000, 900_000),
            }
            for i, host in enumerate(HOSTS)
        ]
        self._retries = [self._make_failed(now, retry=True) for _ in range(25)]
        self._dead = [self._make_failed(now, retry=False) for _ in range(12)]
        self._scheduled = [
            dict(self._make_job(self._rng.choice(QUEUE_NAMES), now), at=now + self._rng.randint(60, 86400))
            for _ in range(30)
        ]

    # ------------------------------------------------------------------
    # Generators
    # ------------------------------------------------------------------

    def _make_job(self, queue: str, now: float) -> dict[str, Any]:
        created = now - self._rng.randint(1, 3600)
        return {
            "jid": _jid(),
            "class": self._rng.choice(JOB_CLASSES),
            "queue": queue,
            "args": [self._rng.randint(1, 99999), "sync"],
            "created_at": created,
            "enqueued_at": created,
        }

    def _make_failed(self, now: float, retry: bool) -> dict[str, Any]:
        job = self._make_job(self._rng.choice(QUEUE_NAMES), now)
        job.update(
            failed_at=now - self._rng.randint(60, 86400),
            error_class=self._rng.choice(ERROR_CLASSES),
            error_message="execution expired",
        )
        if retry:
            job["retry_count"] = self._rng.randint(0, 24)
        return job

    def _tick(self) -> None:
        """Advance the simulation a little on every overview read."""
        if self._latency:
            time.sleep(self._latency)
        now = time.time()
        self._stats["processed"] += self._rng.randint(0, 250)
        if self._rng.random() < 0.3:
            self._stats["failed"] += 1
        for proc in self._processes:
            if proc["stopping"] == "true":
                proc["busy"] = 0
            else:
                proc["busy"] = self._rng.randint(0, proc["concurrency"])
        for name, jobs in self._queues.items():
            if name in self._paused:
                continue
            del jobs[: self._rng.randint(0, 3)]
            for _ in range(self._rng.randint(0, 3)):
                jobs.append(self._make_job(name, now))

    # ------------------------------------------------------------------
    # MonitoringDataSource
    # ------------------------------------------------------------------

    def overview(self) -> Overview:
        with self._lock:
            self._tick()
            enqueued = sum(len(jobs) for jobs in self._queues.values())
            default = self._queues.get("default") or []
            latency = time.time() - default[0]["enqueued_at"] if default else 0.0
            return overview_from_dict({
                **self._stats,
                "scheduled_size": len(self._scheduled),
                "retry_size": len(self._retries),
                "dead_size": len(self._dead),
                "enqueued": enqueued,
                "default_queue_latency": latency,
            })

    def queues(self) -> list[QueueInfo]:
        now = time.time()
        with self._lock:
            return [
                queue_from_dict({
                    "name": name,
                    "size": len(jobs),
                    "latency": now - jobs[0]["enqueued_at"] if jobs else 0.0,
                    "paused": name in self._paused,
                })
                for name, jobs in self._queues.items()
            ]

    def processes(self) -> list[ProcessInfo]:
        with self._lock:
            return [process_from_dict(p) for p in self._processes]

    def workers(self) -> list[WorkerInfo]:
        now = time.time()
        workers = []
        with self._lock:
            for proc in self._processes:
                for thread in range(proc["busy"]):
                    job = {"class": self._rng.choice(JOB_CLASSES), "args": [thread], "queue": proc["queues"][0]}
                    run_at = now - self._rng.randint(0, 300)
                    # Alternate between the two payload shapes servers send
                    if thread % 2:
                        raw = {"queue": job["queue"], "run_at": run_at, "job": job}
                    else:
                        raw = {"queue": job["queue"], "run_at": run_at, "payload": job}
                    raw.update(process_id=proc["identity"], thread_id=f"tid-{thread}")
                    workers.append(worker_from_dict(raw, now=now))
        return workers

    def retry_jobs(self, limit: int) -> list[JobInfo]:
        with self._lock:
            return [job_from_dict(j) for j in self._retries[:limit]]

    def scheduled_jobs(self, limit: int) -> list[JobInfo]:
        with self._lock:
            return [job_from_dict(j) for j in self._scheduled[:limit]]

    def dead_jobs(self, limit: int) -> list[JobInfo]:
        with self._lock:
            return [job_from_dict(j) for j in self._dead[:limit]]

    def queue_jobs(self, name: str, limit: int) -> list[JobInfo]:
        with self._lock:
            return [job_from_dict(j) for j in self._queues.get(name, [])[:limit]]

    # ------------------------------------------------------------------
    # JobActionService
    # ------------------------------------------------------------------

    def _set(self, source: str) -> list[dict[str, Any]]:
        check_source(source)
        return {"retry": self._retries, "dead": self._dead, "scheduled": self._scheduled}[source]

    def _pop_job(self, jid: str, source: str) -> dict[str, Any]:
        jobs = self._set(source)
        for idx, job in enumerate(jobs):
            if job["jid"] == jid:
                return jobs.pop(idx)
        raise NotFoundError(f"Job not found (JID: {jid})")

    def retry_job(self, jid: str, source: str) -> bool:
        with self._lock:
            job = self._pop_job(jid, source)
            self._queues.setdefault(job["queue"], []).append(job)
        return True

    def delete_job(self, jid: str, source: str) -> bool:
        with self._lock:
            self._pop_job(jid, source)
        return True

    def retry_all(self, source: str) -> int:
        with self._lock:
            jobs = self._set(source)
            count = len(jobs)
            for job in jobs:
                self._queues.setdefault(job["queue"], []).append(job)
            jobs.clear()
        return count

    def delete_all(self, source: str) -> int:
        with self._lock:
            jobs = self._set(source)
            count = len(jobs)
            jobs.clear()
        return count

    def _find_process(self, identity: str) -> dict[str, Any]:
        for proc in self._processes:
            if proc["identity"] == identity:
                return proc
        raise NotFoundError(f"Process not found (identity: {identity})")

    def quiet_process(self, identity: str) -> bool:
        with self._lock:
            self._find_process(identity)["quiet"] = "true"
        return True

    def stop_process(self, identity: str) -> bool:
        with self._lock:
            self._find_process(identity)["stopping"] = "true"
        return True

    def delete_queue_job(self, queue: str, jid: str) -> bool:
        with self._lock:
            jobs = self._queues.get(queue, [])
            for idx, job in enumerate(jobs):
                if job["jid"] == jid:
                    del jobs[idx]
                    return True
        raise NotFoundError(f"Job not found (JID: {jid})")

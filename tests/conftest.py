"""Shared test fixtures for jobtop tests."""

from unittest.mock import MagicMock

import pytest

from jobtop.cache import DataCache
from jobtop.models import (
    DataSnapshot,
    JobInfo,
    Overview,
    ProcessInfo,
    QueueInfo,
    WorkerInfo,
)

NOW = 1_700_000_000.0


def _make_job(i: int = 0, **overrides) -> JobInfo:
    fields = dict(
        jid=f"jid-{i}",
        klass=f"Job{i}",
        queue="default",
        args=(i, "sync"),
        created_at=NOW - 600,
        enqueued_at=NOW - 600,
        failed_at=NOW - 300,
        retry_count=i,
        error_class="RuntimeError",
        error_message="boom",
    )
    fields.update(overrides)
    return JobInfo(**fields)


def _make_process(i: int = 0, **overrides) -> ProcessInfo:
    fields = dict(
        identity=f"host{i}:{1234 + i}:abc",
        hostname=f"host{i}" if i else "host",
        pid=1234 + i,
        started_at=NOW - 3600,
        concurrency=10,
        busy=3,
        queues=("default", "mailers"),
        rss=204800,
    )
    fields.update(overrides)
    return ProcessInfo(**fields)


def _make_snapshot(**overrides) -> DataSnapshot:
    fields = dict(
        overview=Overview(
            processed=1234567,
            failed=12,
            scheduled_size=2,
            retry_size=3,
            dead_size=1,
            enqueued=5,
            default_queue_latency=0.5,
        ),
        queues=(
            QueueInfo("default", size=5, latency=0.5),
            QueueInfo("mailers", size=0, latency=0.0, paused=True),
        ),
        processes=(_make_process(0),),
        workers=(
            WorkerInfo("host:1234:abc", "tid-1", queue="default", klass="UserMailer", args=(1,), run_at=NOW - 5, elapsed=5),
        ),
        retry_jobs=tuple(_make_job(i) for i in range(3)),
        scheduled_jobs=(_make_job(10, scheduled_at=NOW + 600),),
        dead_jobs=(_make_job(20),),
        fetched_at=NOW,
    )
    fields.update(overrides)
    return DataSnapshot(**fields)


@pytest.fixture
def make_job():
    """Factory for JobInfo records with predictable jid/klass."""
    return _make_job


@pytest.fixture
def make_process():
    return _make_process


@pytest.fixture
def make_snapshot():
    """Factory for a small but complete DataSnapshot."""
    return _make_snapshot


@pytest.fixture
def snapshot():
    return _make_snapshot()


@pytest.fixture
def cache():
    return DataCache()


@pytest.fixture
def mock_source():
    """MonitoringDataSource double returning empty lists."""
    source = MagicMock()
    source.overview.return_value = Overview()
    for name in ("queues", "processes", "workers", "retry_jobs", "scheduled_jobs", "dead_jobs", "queue_jobs"):
        getattr(source, name).return_value = []
    return source


@pytest.fixture
def mock_actions():
    return MagicMock()

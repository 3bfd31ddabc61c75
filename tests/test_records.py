"""Tests for jobtop.sources.records payload normalization."""

import json

import pytest

from jobtop.exceptions import UnknownSourceError
from jobtop.models import WorkerInfo
from jobtop.sources.records import (
    check_source,
    job_from_dict,
    overview_from_dict,
    process_from_dict,
    queue_from_dict,
    to_flag,
    to_timestamp,
    worker_from_dict,
)

NOW = 1_700_000_000.0


class TestScalars:
    """to_timestamp() and to_flag()."""

    def test_epoch_number(self):
        assert to_timestamp(1700000000) == 1700000000.0

    def test_epoch_string(self):
        assert to_timestamp("1700000000.5") == 1700000000.5

    def test_iso_string_with_z(self):
        assert to_timestamp("2024-01-01T00:00:00Z") == 1704067200.0

    def test_naive_iso_is_utc(self):
        assert to_timestamp("2024-01-01T00:00:00") == 1704067200.0

    def test_empty_and_garbage(self):
        assert to_timestamp(None) is None
        assert to_timestamp("") is None
        assert to_timestamp("yesterday") is None

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf", float("nan"), float("inf")])
    def test_non_finite_is_none(self, value):
        assert to_timestamp(value) is None

    def test_huge_epoch_is_kept(self):
        assert to_timestamp("1e20") == 1e20

    def test_non_finite_latency_falls_back_to_zero(self):
        assert queue_from_dict({"name": "q", "latency": "nan"}).latency == 0.0

    def test_flags(self):
        assert to_flag(True) is True
        assert to_flag("true") is True
        assert to_flag("false") is False
        assert to_flag(None) is False


class TestCheckSource:
    def test_valid_sources(self):
        for source in ("retry", "dead", "scheduled"):
            assert check_source(source) == source

    def test_unknown_source(self):
        with pytest.raises(UnknownSourceError, match="Unknown source: bogus"):
            check_source("bogus")


class TestWorkerFromDict:
    """Both worker payload shapes end up as the same WorkerInfo."""

    def test_payload_dict_shape(self):
        worker = worker_from_dict({
            "process_id": "host:1:abc",
            "thread_id": "tid-1",
            "queue": "default",
            "run_at": NOW - 30,
            "payload": {"class": "UserMailer", "args": [1, 2]},
        }, now=NOW)
        assert worker == WorkerInfo("host:1:abc", "tid-1", "default", "UserMailer", (1, 2), NOW - 30, 30.0)

    def test_payload_json_string(self):
        worker = worker_from_dict({
            "queue": "default",
            "run_at": NOW,
            "payload": json.dumps({"class": "UserMailer", "args": ["x"]}),
        }, now=NOW)
        assert worker.klass == "UserMailer"
        assert worker.args == ("x",)

    def test_job_object_shape(self):
        worker = worker_from_dict({
            "process_id": "host:1:abc",
            "thread_id": "tid-2",
            "run_at": "2024-01-01T00:00:00Z",
            "job": {"class": "InvoiceGenerator", "args": [], "queue": "critical"},
        }, now=1704067260.0)
        assert worker.queue == "critical"
        assert worker.klass == "InvoiceGenerator"
        assert worker.elapsed == 60.0

    def test_flat_shape(self):
        worker = worker_from_dict({"class": "CacheWarmer", "args": [3], "queue": "low"}, now=NOW)
        assert (worker.klass, worker.args, worker.queue) == ("CacheWarmer", (3,), "low")
        assert worker.elapsed == 0.0

    def test_broken_payload_string(self):
        worker = worker_from_dict({"payload": "{not json", "queue": "q"}, now=NOW)
        assert worker.klass == ""
        assert worker.queue == "q"

    def test_future_run_at_clamps_elapsed(self):
        worker = worker_from_dict({"run_at": NOW + 10, "job": {}}, now=NOW)
        assert worker.elapsed == 0.0


class TestRecords:
    """Overview, queue, process and job records."""

    def test_overview_defaults(self):
        overview = overview_from_dict({"processed": "10"})
        assert overview.processed == 10
        assert overview.failed == 0
        assert overview.default_queue_latency == 0.0

    def test_queue(self):
        queue = queue_from_dict({"name": "default", "size": 3, "latency": 1.5, "paused": "true"})
        assert (queue.name, queue.size, queue.latency, queue.paused) == ("default", 3, 1.5, True)

    def test_process_string_flags(self):
        proc = process_from_dict({
            "identity": "host:1:abc",
            "hostname": "host",
            "pid": "1",
            "quiet": "true",
            "stopping": "false",
            "queues": ["a", "b"],
            "labels": "reliable",
        })
        assert proc.pid == 1
        assert proc.quiet is True
        assert proc.stopping is False
        assert proc.queues == ("a", "b")
        assert proc.labels == ("reliable",)
        assert proc.rss is None

    def test_job_scheduled_at_alias(self):
        job = job_from_dict({"jid": "j1", "class": "Foo", "at": NOW})
        assert job.scheduled_at == NOW
        assert job.klass == "Foo"
        assert job.retry_count is None

    def test_job_klass_key(self):
        assert job_from_dict({"jid": "j1", "klass": "Bar"}).klass == "Bar"

    def test_job_without_jid(self):
        assert job_from_dict({"class": "Foo"}).jid is None

"""Tests for jobtop.cache: DataCache and PollState."""

import threading

from jobtop.cache import DataCache, PollState
from jobtop.models import DataSnapshot, Overview


class TestPublish:
    """publish() and current()."""

    def test_starts_empty(self, cache):
        assert cache.current() == (None, 0)

    def test_publish_bumps_version_by_one(self, cache, snapshot):
        assert cache.publish(snapshot) == 1
        assert cache.publish(snapshot) == 2
        assert cache.version == 2

    def test_current_returns_latest(self, cache, make_snapshot):
        first = make_snapshot()
        second = make_snapshot(overview=Overview(processed=9))
        cache.publish(first)
        cache.publish(second)
        assert cache.current() == (second, 2)

    def test_reader_never_sees_torn_pair(self):
        """Each published snapshot carries its own version as `processed`."""
        cache = DataCache()
        total = 2000
        errors = []

        def writer():
            for i in range(1, total + 1):
                cache.publish(DataSnapshot(overview=Overview(processed=i)))

        def reader():
            while True:
                snap, version = cache.current()
                if snap is None:
                    if version != 0:
                        errors.append(version)
                elif snap.overview.processed != version:
                    errors.append((snap.overview.processed, version))
                if version >= total:
                    return

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert errors == []


class TestQueueJobs:
    """merge_queue_jobs() and the watched-queue carry-over."""

    def test_merge_without_snapshot(self, cache, make_job):
        assert cache.merge_queue_jobs("default", [make_job()]) is False

    def test_merge_replaces_only_queue_jobs(self, cache, snapshot, make_job):
        cache.publish(snapshot)
        jobs = [make_job(1), make_job(2)]
        assert cache.merge_queue_jobs("default", jobs) is True

        merged, version = cache.current()
        assert version == 1
        assert merged.queue_jobs == tuple(jobs)
        assert merged.queue_jobs_name == "default"
        assert merged.processes is snapshot.processes
        assert merged.overview is snapshot.overview

    def test_publish_keeps_jobs_of_watched_queue(self, cache, make_snapshot, make_job):
        cache.publish(make_snapshot())
        cache.watch_queue("default")
        cache.merge_queue_jobs("default", [make_job(1)])

        cache.publish(make_snapshot())
        current, _ = cache.current()
        assert current.queue_jobs == (make_job(1),)
        assert current.queue_jobs_name == "default"

    def test_publish_drops_jobs_when_not_watching(self, cache, make_snapshot, make_job):
        cache.publish(make_snapshot())
        cache.merge_queue_jobs("default", [make_job(1)])

        cache.publish(make_snapshot())
        current, _ = cache.current()
        assert current.queue_jobs is None

    def test_publish_with_jobs_wins(self, cache, make_snapshot, make_job):
        cache.publish(make_snapshot())
        cache.watch_queue("default")
        cache.merge_queue_jobs("default", [make_job(1)])

        cache.publish(make_snapshot(queue_jobs=(make_job(7),), queue_jobs_name="default"))
        current, _ = cache.current()
        assert current.queue_jobs == (make_job(7),)

    def test_publish_discards_jobs_of_unwatched_queue(self, cache, make_snapshot, make_job):
        """A poll that fetched queue a's jobs lands after the user switched to b."""
        cache.publish(make_snapshot())
        cache.watch_queue("mailers")
        cache.merge_queue_jobs("mailers", [make_job(3, queue="mailers")])

        cache.publish(make_snapshot(queue_jobs=(make_job(1),), queue_jobs_name="default"))
        current, version = cache.current()
        assert version == 2
        assert current.queue_jobs == (make_job(3, queue="mailers"),)
        assert current.queue_jobs_name == "mailers"

    def test_publish_discards_jobs_when_nothing_watched(self, cache, make_snapshot, make_job):
        cache.publish(make_snapshot(queue_jobs=(make_job(1),), queue_jobs_name="default"))
        current, _ = cache.current()
        assert current.queue_jobs is None
        assert current.queue_jobs_name is None


class TestStatusAndStale:
    """Connection status and the stale flag."""

    def test_initial_status(self, cache):
        assert cache.status == "connecting"

    def test_set_status(self, cache):
        cache.set_status("error")
        assert cache.status == "error"

    def test_stale_is_consumed_once(self, cache):
        assert cache.consume_stale() is False
        cache.mark_stale()
        assert cache.consume_stale() is True
        assert cache.consume_stale() is False

    def test_watch_queue(self, cache):
        cache.watch_queue("mailers")
        assert cache.watched_queue == "mailers"
        cache.watch_queue(None)
        assert cache.watched_queue is None


class TestPollState:
    """Single-flight guard."""

    def test_second_acquire_is_refused(self):
        guard = PollState()
        assert guard.try_acquire() is True
        assert guard.in_progress is True
        assert guard.try_acquire() is False

    def test_release_allows_next(self):
        guard = PollState()
        guard.try_acquire()
        guard.release()
        assert guard.in_progress is False
        assert guard.started_at is None
        assert guard.try_acquire() is True

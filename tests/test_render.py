"""Tests for jobtop.render.FrameRenderer."""

import pytest

from jobtop.models import QueueInfo, StatusMessage, View
from jobtop.render import FrameRenderer, split_rows
from jobtop.sources.records import job_from_dict
from jobtop.text import Colors, strip_ansi, visible_length
from jobtop.viewport import ViewportState

NOW = 1_700_000_000.0


def renderer(width=80, height=24, now=NOW):
    return FrameRenderer(width, height, clock=lambda: now)


def plain(lines):
    return [strip_ansi(line) for line in lines]


def text(lines):
    return "\n".join(plain(lines))


class TestFrameShape:
    """Every frame is exactly height x width."""

    @pytest.mark.parametrize("view", list(View))
    @pytest.mark.parametrize("size", [(80, 24), (132, 50), (40, 10)])
    def test_exact_dimensions(self, snapshot, view, size):
        width, height = size
        lines = renderer(width, height).render(snapshot, ViewportState(view, height))
        assert len(lines) == height
        assert all(visible_length(line) == width for line in lines)

    def test_loading_frame(self):
        lines = renderer().render(None, ViewportState(), status="connecting")
        assert len(lines) == 24
        assert "Connecting to backend..." in text(lines)
        assert "Waiting for data..." in text(lines)
        assert "Connecting" in plain(lines)[0]

    def test_too_small(self, snapshot):
        lines = renderer(30, 8).render(snapshot, ViewportState())
        assert len(lines) == 8
        assert all(visible_length(line) == 30 for line in lines)
        assert plain(lines)[0].startswith("Terminal too small!")

    def test_many_rows_still_fit(self, make_snapshot, make_job, make_process):
        big = make_snapshot(
            retry_jobs=tuple(make_job(i) for i in range(300)),
            processes=tuple(make_process(i) for i in range(40)),
        )
        for view in (View.MAIN, View.RETRIES, View.PROCESSES):
            lines = renderer().render(big, ViewportState(view))
            assert len(lines) == 24
            assert all(visible_length(line) == 80 for line in lines)


class TestBars:
    """Header, status line and footer."""

    def test_header_connected(self, snapshot):
        header = plain(renderer().render(snapshot, ViewportState()))[0]
        assert header.startswith(" jobtop ")
        assert "Connected" in header

    def test_header_shows_age_of_old_data(self, snapshot):
        header = plain(renderer(now=NOW + 120).render(snapshot, ViewportState()))[0]
        assert "2m ago" in header

    @pytest.mark.parametrize("status,label", [("updating", "Updating"), ("error", "Error")])
    def test_header_status(self, snapshot, status, label):
        header = plain(renderer().render(snapshot, ViewportState(), status=status))[0]
        assert label in header

    def test_status_message_above_footer(self, snapshot):
        message = StatusMessage("Retrying Job1")
        lines = plain(renderer().render(snapshot, ViewportState(), message=message))
        assert lines[22].strip() == "Retrying Job1"

    def test_status_message_colour_follows_level(self, snapshot):
        info = renderer().render(snapshot, ViewportState(), message=StatusMessage("Retrying Job1"))
        error = renderer().render(snapshot, ViewportState(), message=StatusMessage("Error: boom", level="error"))
        assert info[22].startswith(Colors.GREEN)
        assert error[22].startswith(Colors.RED)
        assert strip_ansi(error[22]).strip() == "Error: boom"

    def test_expired_status_message_hidden(self, snapshot):
        message = StatusMessage("old", created_at=0.0)
        lines = plain(renderer().render(snapshot, ViewportState(), message=message))
        assert lines[22].strip() == ""

    def test_footer_on_main_omits_main_key(self, snapshot):
        footer = plain(renderer().render(snapshot, ViewportState()))[-1]
        assert "Main" not in footer
        assert "Queues" in footer

    def test_footer_on_detail_view(self, snapshot):
        footer = plain(renderer().render(snapshot, ViewportState(View.DEAD)))[-1]
        assert footer.startswith("mMain")


class TestMainView:
    """Counters and the two summary sections."""

    def test_counters(self, snapshot):
        out = text(renderer().render(snapshot, ViewportState()))
        assert "1,234,567" in out
        assert "Processed:" in out
        assert "Latency:" in out
        assert "500ms" in out
        assert "Workers: [" in out
        assert "3/10]" in out

    def test_no_workers(self, make_snapshot):
        out = text(renderer().render(make_snapshot(processes=(), workers=()), ViewportState()))
        assert "Workers: No workers" in out
        assert "No processes running" in out
        assert "No active workers" in out

    def test_sections_show_more_indicator(self, make_snapshot, make_process):
        snap = make_snapshot(processes=tuple(make_process(i) for i in range(20)))
        out = text(renderer().render(snap, ViewportState()))
        assert "Processes (20)" in out
        assert "more" in out


class TestDetailViews:
    """Scrollable tables."""

    def test_more_line_and_range(self, make_snapshot, make_job):
        snap = make_snapshot(retry_jobs=tuple(make_job(i) for i in range(50)))
        lines = plain(renderer().render(snap, ViewportState(View.RETRIES)))
        out = "\n".join(lines)
        assert "Retry Queue [1-16/50]" in out
        assert "↓ 34 more" in out

    def test_selected_row_highlighted(self, snapshot):
        vp = ViewportState(View.RETRIES)
        vp.select_down()
        lines = renderer().render(snapshot, vp)
        highlighted = [line for line in lines if line.startswith(Colors.SELECTED)]
        assert len(highlighted) == 1
        assert "Job1" in highlighted[0]

    def test_queues_highlight_top_visible_row(self, make_snapshot):
        snap = make_snapshot(queues=tuple(QueueInfo(f"q{i}", size=i) for i in range(30)))
        vp = ViewportState(View.QUEUES)
        vp.scroll_down()
        lines = renderer().render(snap, vp)
        highlighted = [line for line in lines if line.startswith(Colors.SELECTED)]
        assert len(highlighted) == 1
        assert strip_ansi(highlighted[0]).split()[0] == "q1"

    def test_paused_queue(self, snapshot):
        out = text(renderer().render(snapshot, ViewportState(View.QUEUES)))
        assert "PAUSED" in out
        assert "ACTIVE" in out

    def test_render_clamps_viewport(self, snapshot):
        vp = ViewportState(View.DEAD)
        vp.select_down(40)
        renderer().render(snapshot, vp)
        assert vp.selected_index == 0

    def test_empty_views(self, make_snapshot):
        snap = make_snapshot(retry_jobs=(), dead_jobs=(), scheduled_jobs=(), workers=())
        assert "No retries pending" in text(renderer().render(snap, ViewportState(View.RETRIES)))
        assert "No dead jobs" in text(renderer().render(snap, ViewportState(View.DEAD)))
        assert "No scheduled jobs" in text(renderer().render(snap, ViewportState(View.SCHEDULED)))
        assert "No active workers" in text(renderer().render(snap, ViewportState(View.WORKERS)))

    def test_queue_jobs_view(self, make_snapshot, make_job):
        snap = make_snapshot(queue_jobs=(make_job(1),), queue_jobs_name="default")
        out = text(renderer().render(snap, ViewportState(View.QUEUE_JOBS)))
        assert "Queue: default" in out
        assert "jid-1" in out

    def test_queue_jobs_loading(self, snapshot):
        out = text(renderer().render(snapshot, ViewportState(View.QUEUE_JOBS)))
        assert "Loading jobs..." in out

    def test_process_status_labels(self, make_snapshot, make_process):
        snap = make_snapshot(processes=(
            make_process(1, quiet=True),
            make_process(2, stopping=True),
            make_process(3),
        ))
        out = text(renderer(132, 30).render(snap, ViewportState(View.PROCESSES)))
        assert "QUIET" in out
        assert "STOPPING" in out
        assert "RUNNING" in out

    @pytest.mark.parametrize("failed_at", ["nan", "inf", "1e20"])
    def test_unrepresentable_timestamps_render(self, make_snapshot, failed_at):
        job = job_from_dict({"jid": "j1", "class": "Broken", "queue": "default", "failed_at": failed_at})
        snap = make_snapshot(retry_jobs=(job,), dead_jobs=(job,))
        for view in (View.RETRIES, View.DEAD):
            lines = renderer(140, 24).render(snap, ViewportState(view))
            assert len(lines) == 24
            assert all(visible_length(line) == 140 for line in lines)
            assert "Broken" in text(lines)
            assert "N/A" in text(lines)

    def test_long_class_names_are_truncated(self, make_snapshot, make_job):
        snap = make_snapshot(dead_jobs=(make_job(0, klass="X" * 100),))
        out = text(renderer().render(snap, ViewportState(View.DEAD)))
        assert "X" * 34 + "~" in out


class TestSplitRows:
    """split_rows() shares rows between processes and workers."""

    def test_everything_fits(self):
        assert split_rows(10, 3, 4) == (3, 4)

    def test_proportional_split(self):
        assert split_rows(10, 30, 10) == (7, 3)

    def test_minimum_per_section(self):
        assert split_rows(10, 100, 1) == (9, 1)
        assert split_rows(10, 1, 100) == (1, 9)

    def test_never_exceeds_available(self):
        for available in range(0, 12):
            for first in (0, 1, 5, 50):
                for second in (0, 1, 5, 50):
                    a, b = split_rows(available, first, second)
                    assert a + b <= max(available, 0)
                    assert a <= first and b <= second

    def test_negative_available(self):
        assert split_rows(-3, 5, 5) == (0, 0)

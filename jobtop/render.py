"""Frame composition.

``FrameRenderer.render`` turns a snapshot plus the viewport state into exactly
``height`` lines, each exactly ``width`` visible columns wide. The event loop
paints those lines in place with absolute cursor moves, so a frame never needs
a clear-screen and never flickers.

Layout of every frame:

    row 0            header bar (title, connection status, clock)
    rows 1..h-3      view body
    row h-2          status message (blank when none is active)
    row h-1          key-binding footer
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, Sequence

from .formatting import (
    format_args,
    format_duration,
    format_latency,
    format_memory,
    format_number,
    format_time_ago,
    format_timestamp,
    format_update_age,
)
from .models import (
    ConnectionStatus,
    DataSnapshot,
    JobInfo,
    Overview,
    ProcessInfo,
    QueueInfo,
    StatusMessage,
    View,
    WorkerInfo,
)
from .text import Colors, pad, paint, strip_ansi, truncate, truncate_to_width, visible_length
from .viewport import PAGE_OVERHEAD, ViewportState

MIN_WIDTH = 40
MIN_HEIGHT = 10

# header, blank, counters(6), blank, two section bars + table headers,
# two "more" lines, blank between sections, status line, footer
MAIN_OVERHEAD = 18
MIN_SECTION_ROWS = 3
FRESH_DATA_SECONDS = 5

FOOTER_KEYS = [
    ("m", "Main"),
    ("q", "Queues"),
    ("p", "Procs"),
    ("w", "Workers"),
    ("r", "Retries"),
    ("s", "Sched"),
    ("d", "Dead"),
    ("^C", "Quit"),
]

SELECT_HINT = "↑↓ select"
SCROLL_HINT = "↑↓ to scroll, 'm' for main"
JOB_ACTION_HINT = f"{SELECT_HINT}, ^R=retry, ^X=del, Alt+R=retryAll, Alt+X=delAll"


class FrameRenderer:
    """Builds full-screen frames for the current view."""

    def __init__(self, width: int = 80, height: int = 24, clock: Callable[[], float] = time.time):
        self.width = width
        self.height = height
        self.clock = clock

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    @property
    def detail_rows(self) -> int:
        """Number of data rows a detail-view table can show."""
        return max(self.height - PAGE_OVERHEAD, 1)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def render(
        self,
        snapshot: Optional[DataSnapshot],
        viewport: ViewportState,
        status: ConnectionStatus = "connected",
        message: Optional[StatusMessage] = None,
    ) -> list[str]:
        if self.width < MIN_WIDTH or self.height < MIN_HEIGHT:
            return self._fit([f"Terminal too small! Need {MIN_WIDTH}x{MIN_HEIGHT} minimum."], "")

        now = self.clock()
        header = self._header_bar(status, snapshot, now)
        if snapshot is None:
            body = self._loading_body()
        else:
            body = self._build_body(snapshot, viewport, now)

        status_line = ""
        if message is not None and message.is_visible():
            color = Colors.RED if message.level == "error" else Colors.GREEN
            status_line = paint(f"  {message.text}", color)

        lines = [header] + body
        lines = self._fit(lines, status_line, footer=self._function_bar(viewport.current_view))
        return lines

    def _fit(self, lines: list[str], status_line: str, footer: str = "") -> list[str]:
        """Pad/cut to exactly height lines of exactly width columns."""
        body_rows = self.height - 2
        body = lines[:body_rows]
        body += [""] * (body_rows - len(body))
        frame = body + [status_line, footer]
        return [truncate_to_width(line, self.width) for line in frame]

    def _build_body(self, snapshot: DataSnapshot, viewport: ViewportState, now: float) -> list[str]:
        view = viewport.current_view
        if view == View.QUEUES:
            return self._queues_view(snapshot.queues, viewport)
        if view == View.PROCESSES:
            return self._processes_view(snapshot.processes, viewport, now)
        if view == View.WORKERS:
            return self._workers_view(snapshot.workers, viewport)
        if view == View.RETRIES:
            return self._retries_view(snapshot.retry_jobs, viewport)
        if view == View.SCHEDULED:
            return self._scheduled_view(snapshot.scheduled_jobs, viewport)
        if view == View.DEAD:
            return self._dead_view(snapshot.dead_jobs, viewport)
        if view == View.QUEUE_JOBS:
            return self._queue_jobs_view(snapshot, viewport)
        return self._main_view(snapshot, now)

    # ------------------------------------------------------------------
    # Bars
    # ------------------------------------------------------------------

    def _header_bar(self, status: ConnectionStatus, snapshot: Optional[DataSnapshot], now: float) -> str:
        if status == "connecting":
            indicator = paint(" ● Connecting ", Colors.YELLOW, Colors.BG_BLUE)
        elif status == "updating":
            indicator = paint(" ↻ Updating ", Colors.CYAN, Colors.BG_BLUE)
        elif status == "error":
            indicator = paint(" ✗ Error ", Colors.RED, Colors.BG_BLUE)
        else:
            age = now - snapshot.fetched_at if snapshot is not None else 0
            if age < FRESH_DATA_SECONDS:
                indicator = paint(" ● Connected ", Colors.GREEN, Colors.BG_BLUE)
            else:
                indicator = paint(f" ● {format_update_age(age)} ago ", Colors.GREEN, Colors.BG_BLUE)

        left = paint(" jobtop ", Colors.WHITE, Colors.BG_BLUE, Colors.BOLD)
        right = paint(time.strftime(" %H:%M:%S ", time.localtime(now)), Colors.WHITE, Colors.BG_BLUE, Colors.BOLD)
        middle_width = self.width - visible_length(left) - visible_length(indicator) - visible_length(right)
        middle = paint(" " * max(middle_width, 0), Colors.BG_BLUE)
        return left + indicator + middle + right

    def _section_bar(self, title: str) -> str:
        left = paint(f" {title} ", Colors.BLACK, Colors.BG_GREEN, Colors.BOLD)
        padding = paint(" " * max(self.width - visible_length(left), 0), Colors.BG_GREEN)
        return left + padding

    def _table_header(self, header: str) -> str:
        return paint(pad(header, self.width), Colors.BLACK, Colors.BG_CYAN)

    def _function_bar(self, view: View) -> str:
        items = FOOTER_KEYS[1:] if view == View.MAIN else FOOTER_KEYS
        bar = " ".join(
            paint(key, Colors.BLACK, Colors.BG_CYAN, Colors.BOLD) + paint(label, Colors.WHITE, Colors.BG_BLUE)
            for key, label in items
        )
        return bar + paint(" " * max(self.width - visible_length(bar), 0), Colors.BG_BLUE)

    def _selected(self, row: str) -> str:
        return paint(pad(strip_ansi(row), self.width), Colors.SELECTED)

    @staticmethod
    def _more_line(remaining: int, suffix: str = "") -> str:
        return paint(f"  ↓ {remaining} more{suffix}", Colors.DIM)

    @staticmethod
    def _range_indicator(offset: int, rows: int, total: int) -> str:
        if total <= rows:
            return ""
        return f" [{offset + 1}-{min(offset + rows, total)}/{total}]"

    # ------------------------------------------------------------------
    # Loading / main view
    # ------------------------------------------------------------------

    def _loading_body(self) -> list[str]:
        return [
            "",
            paint("  Connecting to backend...", Colors.CYAN),
            "",
            paint("  Waiting for data...", Colors.DIM),
        ]

    def _main_view(self, snapshot: DataSnapshot, now: float) -> list[str]:
        processes = snapshot.processes
        workers = snapshot.workers

        lines = [""]
        lines += self._stats_meters(snapshot.overview, processes)
        lines.append("")

        process_rows, worker_rows = split_rows(
            max(self.height - MAIN_OVERHEAD, 0), len(processes), len(workers)
        )
        lines += self._processes_section(processes, process_rows, now)
        lines.append("")
        lines += self._workers_section(workers, worker_rows)
        return lines

    def _stats_meters(self, overview: Overview, processes: Sequence[ProcessInfo]) -> list[str]:
        col_width = self.width // 2 - 2
        total_busy = sum(p.busy or 0 for p in processes)
        total_threads = sum(p.concurrency or 0 for p in processes)

        def pair(left: str, right: str = "") -> str:
            return f"  {left}  {right}" if right else f"  {left}"

        lines = [f"  {self._utilization_bar('Workers', total_busy, total_threads, col_width)}", ""]
        lines.append(pair(
            self._meter("Processed", format_number(overview.processed), Colors.GREEN, col_width),
            self._meter("Failed", format_number(overview.failed),
                        Colors.RED if overview.failed > 0 else Colors.WHITE, col_width),
        ))
        lines.append(pair(
            self._meter("Enqueued", format_number(overview.enqueued),
                        Colors.YELLOW if overview.enqueued > 0 else Colors.WHITE, col_width),
            self._meter("Scheduled", format_number(overview.scheduled_size), Colors.CYAN, col_width),
        ))
        lines.append(pair(
            self._meter("Retries", format_number(overview.retry_size),
                        Colors.YELLOW if overview.retry_size > 0 else Colors.WHITE, col_width),
            self._meter("Dead", format_number(overview.dead_size),
                        Colors.RED if overview.dead_size > 0 else Colors.WHITE, col_width),
        ))
        latency = overview.default_queue_latency or 0
        lines.append(pair(
            self._meter("Latency", format_latency(latency),
                        Colors.YELLOW if latency > 1 else Colors.GREEN, col_width),
        ))
        return lines

    @staticmethod
    def _utilization_bar(label: str, used: int, total: int, width: int) -> str:
        if total == 0:
            return f"{label}: No workers"

        label_part = f"{label}: ["
        count_part = f" {used}/{total}]"
        bar_width = max(width - len(label_part) - len(count_part), 10)

        ratio = used / total
        filled = min(round(ratio * bar_width), bar_width)
        if ratio < 0.5:
            color = Colors.GREEN
        elif ratio < 0.8:
            color = Colors.YELLOW
        else:
            color = Colors.RED

        return (
            paint(label_part, Colors.CYAN)
            + paint("|" * filled, color)
            + " " * (bar_width - filled)
            + paint(count_part, color)
        )

    @staticmethod
    def _meter(label: str, value: str, color: str, width: int) -> str:
        label_str = f"{label}:"
        spacing = max(width - len(label_str) - len(value), 1)
        return paint(label_str, Colors.CYAN) + " " * spacing + paint(value, color, Colors.BOLD)

    def _processes_section(self, processes: Sequence[ProcessInfo], max_rows: int, now: float) -> list[str]:
        lines = [self._section_bar(f"Processes ({len(processes)}) - Press 'p' for details")]
        if not processes:
            lines.append(paint("  No processes running", Colors.DIM))
            return lines

        host_width = max(20, (self.width - 80) // 2)
        queue_width = max(24, (self.width - 80) // 2)
        lines.append(self._table_header(process_header(host_width, queue_width)))
        for proc in processes[:max_rows]:
            lines.append(self._process_row(proc, host_width, queue_width, now))
        if len(processes) > max_rows:
            lines.append(self._more_line(len(processes) - max_rows))
        return lines

    def _workers_section(self, workers: Sequence[WorkerInfo], max_rows: int) -> list[str]:
        lines = [self._section_bar(f"Active Workers ({len(workers)}) - Press 'w' for details")]
        if not workers:
            lines.append(paint("  No active workers", Colors.DIM))
            return lines

        job_width = max(30, (self.width - 50) // 2)
        lines.append(self._table_header(worker_header(job_width, job_width)))
        for worker in workers[:max_rows]:
            lines.append(self._worker_row(worker, job_width, job_width))
        if len(workers) > max_rows:
            lines.append(self._more_line(len(workers) - max_rows))
        return lines

    # ------------------------------------------------------------------
    # Detail views
    # ------------------------------------------------------------------

    def _table_view(
        self,
        viewport: ViewportState,
        title: str,
        hint: str,
        items: Sequence[Any],
        header: str,
        format_row: Callable[[Any], str],
        empty_text: str,
        highlight_top: bool = False,
    ) -> list[str]:
        """Render one scrollable table below the header.

        Args:
            viewport: Clamped against ``items`` before anything is drawn.
            highlight_top: Mark the first visible row, used where a view is not
                selectable but Enter still acts on a row.
        """
        rows = self.detail_rows
        entry = viewport.clamp(len(items), rows)
        offset = entry.scroll_offset
        selected = entry.selected_index if viewport.is_selectable() else None
        if highlight_top:
            selected = offset

        lines = ["", self._section_bar(f"{title}{self._range_indicator(offset, rows, len(items))} - {hint}")]
        if not items:
            lines.append(paint(f"  {empty_text}", Colors.DIM))
            return lines

        lines.append(self._table_header(header))
        for idx, item in enumerate(items[offset:offset + rows], start=offset):
            row = format_row(item)
            lines.append(self._selected(row) if idx == selected else row)

        remaining = len(items) - offset - rows
        if remaining > 0:
            lines.append(self._more_line(remaining))
        return lines

    def _queues_view(self, queues: Sequence[QueueInfo], viewport: ViewportState) -> list[str]:
        name_width = max(40, self.width - 40)
        return self._table_view(
            viewport,
            "Queues",
            "↑↓ to scroll, Enter=jobs, 'm' for main",
            queues,
            f"  {'NAME':<{name_width}} {'SIZE':>10} {'LATENCY':>10} {'STATUS':>10}",
            lambda q: self._queue_row(q, name_width),
            "No queues",
            highlight_top=True,
        )

    def _processes_view(self, processes: Sequence[ProcessInfo], viewport: ViewportState, now: float) -> list[str]:
        host_width = max(26, (self.width - 80) // 2)
        queue_width = max(34, (self.width - 80) // 2)
        return self._table_view(
            viewport,
            "Processes",
            f"{SELECT_HINT}, ^Q=quiet, ^K=stop, m=main",
            processes,
            process_header(host_width, queue_width),
            lambda p: self._process_row(p, host_width, queue_width, now),
            "No processes running",
        )

    def _workers_view(self, workers: Sequence[WorkerInfo], viewport: ViewportState) -> list[str]:
        job_width = max(40, (self.width - 50) // 2)
        return self._table_view(
            viewport,
            f"Active Workers ({len(workers)})",
            SCROLL_HINT,
            workers,
            worker_header(job_width, job_width),
            lambda w: self._worker_row(w, job_width, job_width),
            "No active workers",
        )

    def _retries_view(self, jobs: Sequence[JobInfo], viewport: ViewportState) -> list[str]:
        job_width = max(35, (self.width - 60) // 2)
        return self._table_view(
            viewport,
            "Retry Queue",
            JOB_ACTION_HINT,
            jobs,
            f"  {'JOB':<{job_width}} {'QUEUE':<15} {'COUNT':>6} {'ERROR':<{job_width}} {'FAILED AT':>16}",
            lambda j: self._retry_row(j, job_width),
            "No retries pending",
        )

    def _scheduled_view(self, jobs: Sequence[JobInfo], viewport: ViewportState) -> list[str]:
        job_width = max(35, (self.width - 60) // 2)
        return self._table_view(
            viewport,
            "Scheduled Jobs",
            SCROLL_HINT,
            jobs,
            f"  {'JOB':<{job_width}} {'QUEUE':<15} {'SCHEDULED FOR':<20} {'ARGS':<{job_width}}",
            lambda j: self._scheduled_row(j, job_width),
            "No scheduled jobs",
        )

    def _dead_view(self, jobs: Sequence[JobInfo], viewport: ViewportState) -> list[str]:
        job_width = max(35, (self.width - 60) // 2)
        return self._table_view(
            viewport,
            "Dead Jobs",
            JOB_ACTION_HINT,
            jobs,
            f"  {'JOB':<{job_width}} {'QUEUE':<15} {'ERROR':<{job_width}} {'FAILED AT':>16}",
            lambda j: self._dead_row(j, job_width),
            "No dead jobs",
        )

    def _queue_jobs_view(self, snapshot: DataSnapshot, viewport: ViewportState) -> list[str]:
        jobs = snapshot.queue_jobs or ()
        name = snapshot.queue_jobs_name or "?"
        job_width = max(30, (self.width - 70) // 2)
        return self._table_view(
            viewport,
            f"Queue: {name}",
            f"{SELECT_HINT}, ^X=del, Esc=back",
            jobs,
            f"  {'JOB':<{job_width}} {'JID':<24} {'ENQUEUED AT':<19} {'ARGS':<{job_width}}",
            lambda j: self._queue_job_row(j, job_width),
            "No jobs in queue" if snapshot.queue_jobs is not None else "Loading jobs...",
        )

    # ------------------------------------------------------------------
    # Row formatters
    # ------------------------------------------------------------------

    @staticmethod
    def _queue_row(queue: QueueInfo, name_width: int) -> str:
        name = truncate(queue.name, name_width)
        size = f"{format_number(queue.size):>10}"
        if queue.size > 0:
            size = paint(size, Colors.YELLOW)
        status = paint(f"{'PAUSED':>10}", Colors.RED) if queue.paused else paint(f"{'ACTIVE':>10}", Colors.GREEN)
        return f"  {name:<{name_width}} {size} {format_latency(queue.latency):>10} {status}"

    @staticmethod
    def _process_row(proc: ProcessInfo, host_width: int, queue_width: int, now: float) -> str:
        host = truncate(proc.hostname, host_width)
        pid = "" if proc.pid is None else str(proc.pid)
        busy = f"{f'{proc.busy}/{proc.concurrency}':>9}"
        if proc.busy > 0:
            busy = paint(busy, Colors.YELLOW, Colors.BOLD)
        queues = truncate(",".join(proc.queues), queue_width)

        if proc.stopping:
            status = paint("STOPPING", Colors.RED)
        elif proc.quiet:
            status = paint("QUIET", Colors.YELLOW)
        else:
            status = paint("RUNNING", Colors.GREEN)

        return (
            f"  {host:<{host_width}} {pid:>6} {busy} {format_memory(proc.rss):>8} "
            f"{queues:<{queue_width}} {format_time_ago(proc.started_at, now):>8} {status}"
        )

    @staticmethod
    def _worker_row(worker: WorkerInfo, job_width: int, args_width: int) -> str:
        queue = truncate(worker.queue, 15)
        job = truncate(worker.klass, job_width)
        args = truncate(format_args(worker.args), args_width)
        running = f"{format_duration(worker.elapsed):>12}"
        if worker.elapsed > 60:
            running = paint(running, Colors.YELLOW)
        return f"  {queue:<15} {job:<{job_width}} {running} {args:<{args_width}}"

    @staticmethod
    def _retry_row(job: JobInfo, width: int) -> str:
        klass = truncate(job.klass, width)
        queue = truncate(job.queue, 15)
        count = paint(f"{'' if job.retry_count is None else job.retry_count:>6}", Colors.YELLOW)
        error = paint(f"{truncate(job.error_class or '', width):<{width}}", Colors.RED)
        return f"  {klass:<{width}} {queue:<15} {count} {error} {format_timestamp(job.failed_at):>16}"

    @staticmethod
    def _scheduled_row(job: JobInfo, width: int) -> str:
        klass = truncate(job.klass, width)
        queue = truncate(job.queue, 15)
        when = paint(f"{format_timestamp(job.scheduled_at, '%Y-%m-%d %H:%M:%S'):<20}", Colors.CYAN)
        args = truncate(format_args(job.args), width)
        return f"  {klass:<{width}} {queue:<15} {when} {args:<{width}}"

    @staticmethod
    def _dead_row(job: JobInfo, width: int) -> str:
        klass = truncate(job.klass, width)
        queue = truncate(job.queue, 15)
        error = paint(f"{truncate(job.error_class or '', width):<{width}}", Colors.RED)
        return f"  {klass:<{width}} {queue:<15} {error} {format_timestamp(job.failed_at):>16}"

    @staticmethod
    def _queue_job_row(job: JobInfo, width: int) -> str:
        klass = truncate(job.klass, width)
        jid = truncate(job.jid or "", 24)
        enqueued = format_timestamp(job.enqueued_at or job.created_at, "%Y-%m-%d %H:%M:%S")
        args = truncate(format_args(job.args), width)
        return f"  {klass:<{width}} {jid:<24} {enqueued:<19} {args:<{width}}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def process_header(host_width: int, queue_width: int) -> str:
    return (
        f"  {'HOST':<{host_width}} {'PID':>6} {'BUSY':>9} {'MEM':>8} "
        f"{'QUEUES':<{queue_width}} {'UPTIME':>8} {'STATUS':>8}"
    )


def worker_header(job_width: int, args_width: int) -> str:
    return f"  {'QUEUE':<15} {'JOB':<{job_width}} {'RUNNING':>12} {'ARGS':<{args_width}}"


def split_rows(available: int, first_needed: int, second_needed: int) -> tuple[int, int]:
    """Share ``available`` rows between the two summary sections.

    Everything is shown when it fits. Otherwise rows are split in proportion
    to each list's length with a floor of MIN_SECTION_ROWS per section; a
    section never gets more rows than it needs, and rows one section leaves
    unused go to the other.
    """
    available = max(available, 0)
    total = first_needed + second_needed
    if total <= available:
        return first_needed, second_needed

    if available >= MIN_SECTION_ROWS * 2:
        share = round(available * first_needed / max(total, 1))
        share = min(max(share, MIN_SECTION_ROWS), available - MIN_SECTION_ROWS)
    else:
        share = available // 2

    first = min(share, first_needed)
    second = min(available - first, second_needed)
    first = min(first_needed, available - second)
    return first, second

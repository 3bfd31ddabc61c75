"""jobtop main application: the input/render loop."""

from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

from .cache import DataCache
from .dispatcher import InputDispatcher
from .models import View
from .poller import DEFAULT_JOB_LIMIT, PollScheduler
from .render import FrameRenderer
from .sources.base import JobActionService, MonitoringDataSource
from .terminal import Terminal
from .viewport import ViewportState

logger = logging.getLogger(__name__)

INPUT_TIMEOUT = 0.03
POLLER_JOIN_TIMEOUT = 1.0


class Dashboard:
    """Full-screen dashboard over one data source and one action service.

    The poller runs on its own thread and only ever writes to ``cache``;
    everything else here (viewport, status message, painting) belongs to the
    thread that calls ``run``.
    """

    def __init__(
        self,
        source: MonitoringDataSource,
        actions: JobActionService,
        refresh_interval: float = 2.0,
        limit: int = DEFAULT_JOB_LIMIT,
        initial_view: View = View.MAIN,
        terminal: Optional[Terminal] = None,
    ):
        self.terminal = terminal or Terminal()
        self.running = threading.Event()
        self.cache = DataCache()
        width, height = self.terminal.size()
        self.renderer = FrameRenderer(width, height)
        self.viewport = ViewportState(initial_view, terminal_height=height)
        self.poller = PollScheduler(source, self.cache, refresh_interval, running=self.running, limit=limit)
        self.dispatcher = InputDispatcher(
            self.viewport,
            self.cache,
            source,
            actions,
            read_sequence=self.terminal.read_pending,
            on_refresh=self.poller.request_refresh,
            limit=limit,
        )

        self._rendered_version = -1
        self._rendered_status = None
        self._message_visible = False

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> None:
        snapshot, version = self.cache.current()
        status = self.cache.status
        message = self.dispatcher.status_message
        lines = self.renderer.render(snapshot, self.viewport, status, message)
        self.terminal.paint(lines)
        self._rendered_version = version
        self._rendered_status = status
        self._message_visible = message is not None and message.is_visible()

    def _check_resize(self) -> bool:
        width, height = self.terminal.size()
        if (width, height) == (self.renderer.width, self.renderer.height):
            return False
        logger.debug("Terminal resized to %dx%d", width, height)
        self.renderer.resize(width, height)
        self.viewport.terminal_height = height
        self.terminal.clear()
        return True

    def _needs_render(self) -> bool:
        if self.cache.consume_stale():
            return True
        if self.cache.version != self._rendered_version:
            return True
        if self.cache.status != self._rendered_status:
            return True
        message = self.dispatcher.status_message
        return self._message_visible and not (message is not None and message.is_visible())

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _on_sigint(self, signum, frame) -> None:
        self.running.clear()

    def _loop(self) -> None:
        self.render()
        while self.running.is_set():
            resized = self._check_resize()
            key = self.terminal.read_key(INPUT_TIMEOUT)
            if key is not None:
                self.dispatcher.dispatch(key)
                self.render()
            elif resized or self._needs_render():
                self.render()

    def run(self) -> None:
        """Run until Ctrl-C or SIGINT; the terminal is always restored."""
        previous_handler = signal.getsignal(signal.SIGINT)
        try:
            self.running.set()
            signal.signal(signal.SIGINT, self._on_sigint)
            self.terminal.enter()
            self.poller.start()
            self._loop()
        finally:
            self.running.clear()
            if not self.poller.stop(timeout=POLLER_JOIN_TIMEOUT):
                logger.warning("Poller did not stop within %.1fs", POLLER_JOIN_TIMEOUT)
            try:
                self.terminal.restore()
            finally:
                if previous_handler is not None:
                    signal.signal(signal.SIGINT, previous_handler)

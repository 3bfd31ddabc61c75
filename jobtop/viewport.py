"""Per-view scroll and selection memory.

Owned by the input/render thread only; the poller never touches it, so there
is no locking here.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import SELECTABLE_VIEWS, VIEW_ORDER, View

MIN_PAGE_SIZE = 5
PAGE_OVERHEAD = 8  # header, blank, section bar, table header, more, status, footer, spare


@dataclass
class ViewportEntry:
    scroll_offset: int = 0
    selected_index: int = 0


class ViewportState:
    """Scroll offset and selected row for every view.

    All operations act on ``current_view``. Switching views never resets the
    stored positions: each view remembers where it was left.
    """

    def __init__(self, current_view: View = View.MAIN, terminal_height: int = 24):
        self.current_view = current_view
        self.terminal_height = terminal_height
        self._entries: dict[View, ViewportEntry] = {view: ViewportEntry() for view in View}

    # -- accessors --------------------------------------------------------

    def entry(self, view: View | None = None) -> ViewportEntry:
        return self._entries[view or self.current_view]

    @property
    def scroll_offset(self) -> int:
        return self.entry().scroll_offset

    @property
    def selected_index(self) -> int:
        return self.entry().selected_index

    def is_selectable(self, view: View | None = None) -> bool:
        return (view or self.current_view) in SELECTABLE_VIEWS

    def default_page_size(self) -> int:
        return max(self.terminal_height - PAGE_OVERHEAD, MIN_PAGE_SIZE)

    # -- view switching ---------------------------------------------------

    def switch_to(self, view: View) -> None:
        self.current_view = view

    def next_view(self) -> None:
        self._cycle(1)

    def previous_view(self) -> None:
        self._cycle(-1)

    def _cycle(self, step: int) -> None:
        anchor = View.QUEUES if self.current_view == View.QUEUE_JOBS else self.current_view
        idx = VIEW_ORDER.index(anchor)
        self.current_view = VIEW_ORDER[(idx + step) % len(VIEW_ORDER)]

    # -- movement ---------------------------------------------------------

    def scroll_up(self, amount: int = 1) -> None:
        entry = self.entry()
        entry.scroll_offset = max(entry.scroll_offset - amount, 0)

    def scroll_down(self, amount: int = 1) -> None:
        self.entry().scroll_offset += amount

    def select_up(self, amount: int = 1) -> None:
        if not self.is_selectable():
            self.scroll_up(amount)
            return
        entry = self.entry()
        entry.selected_index = max(entry.selected_index - amount, 0)

    def select_down(self, amount: int = 1) -> None:
        if not self.is_selectable():
            self.scroll_down(amount)
            return
        self.entry().selected_index += amount

    def page_up(self, page_size: int | None = None) -> None:
        self.select_up(page_size or self.default_page_size())

    def page_down(self, page_size: int | None = None) -> None:
        self.select_down(page_size or self.default_page_size())

    def reset(self) -> None:
        """Scroll the current view back to the top (selection is kept)."""
        self.entry().scroll_offset = 0

    # -- clamping ---------------------------------------------------------

    def clamp(self, item_count: int, visible_rows: int) -> ViewportEntry:
        """Fit the current view's offsets to the data about to be drawn.

        Called by the renderer before every frame, so positions stay valid as
        lists shrink or grow between polls.
        """
        entry = self.entry()
        visible_rows = max(visible_rows, 1)
        max_scroll = max(item_count - visible_rows, 0)
        entry.scroll_offset = min(max(entry.scroll_offset, 0), max_scroll)
        entry.selected_index = min(max(entry.selected_index, 0), max(item_count - 1, 0))

        if self.is_selectable():
            if entry.selected_index < entry.scroll_offset:
                entry.scroll_offset = entry.selected_index
            elif entry.selected_index >= entry.scroll_offset + visible_rows:
                entry.scroll_offset = entry.selected_index - visible_rows + 1
        return entry

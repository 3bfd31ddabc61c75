"""Raw terminal control: alternate screen, cursor, key reads and painting."""

from __future__ import annotations

import logging
import os
import select
import shutil
import sys
import termios
import tty
from typing import Optional, Sequence, TextIO

from .exceptions import TerminalError

logger = logging.getLogger(__name__)

ENTER_ALT_SCREEN = "\x1b[?1049h"
LEAVE_ALT_SCREEN = "\x1b[?1049l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_SCREEN = "\x1b[2J"
RESET_STYLE = "\x1b[0m"

FALLBACK_SIZE = (80, 24)


def move_to(row: int) -> str:
    """Absolute cursor move to column 1 of a 1-indexed row."""
    return f"\x1b[{row};1H"


class Terminal:
    """Owns stdin raw mode and everything written to stdout."""

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self._saved_attrs = None

    @property
    def fd(self) -> int:
        return self.stdin.fileno()

    # -- lifecycle --------------------------------------------------------

    def enter(self) -> None:
        """Switch stdin to raw mode and take over the screen."""
        try:
            self._saved_attrs = termios.tcgetattr(self.fd)
            tty.setraw(self.fd)
        except (termios.error, OSError, ValueError) as e:
            raise TerminalError(f"Cannot switch terminal to raw mode: {e}") from e
        self.write(ENTER_ALT_SCREEN + HIDE_CURSOR + CLEAR_SCREEN)
        logger.debug("Terminal entered")

    def restore(self) -> None:
        """Undo ``enter``. Safe to call more than once."""
        try:
            self.write(RESET_STYLE + SHOW_CURSOR + LEAVE_ALT_SCREEN)
        finally:
            if self._saved_attrs is not None:
                try:
                    termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved_attrs)
                except (termios.error, OSError) as e:
                    raise TerminalError(f"Cannot restore terminal: {e}") from e
                finally:
                    self._saved_attrs = None
        logger.debug("Terminal restored")

    # -- output -----------------------------------------------------------

    def write(self, data: str) -> None:
        self.stdout.write(data)
        self.stdout.flush()

    def size(self) -> tuple[int, int]:
        """Return (columns, lines), falling back to 80x24 when unknown."""
        try:
            size = os.get_terminal_size(self.stdout.fileno())
        except (OSError, ValueError, AttributeError):
            size = shutil.get_terminal_size(FALLBACK_SIZE)
        return size.columns, size.lines

    def clear(self) -> None:
        self.write(CLEAR_SCREEN)

    def paint(self, lines: Sequence[str]) -> None:
        """Overwrite every row in place, one absolute cursor move per line."""
        self.write("".join(f"{move_to(row)}{line}{RESET_STYLE}" for row, line in enumerate(lines, start=1)))

    # -- input ------------------------------------------------------------

    def _ready(self, timeout: float) -> bool:
        readable, _, _ = select.select([self.fd], [], [], timeout)
        return bool(readable)

    def read_key(self, timeout: float) -> Optional[str]:
        """Wait up to ``timeout`` seconds for one byte of input."""
        if not self._ready(timeout):
            return None
        data = os.read(self.fd, 1)
        if not data:
            return None
        return data.decode("latin-1")

    def read_pending(self, timeout: float, max_chars: int = 10) -> str:
        """Read whatever follows an ESC, or "" if nothing arrives in time."""
        if not self._ready(timeout):
            return ""
        return os.read(self.fd, max_chars).decode("latin-1")

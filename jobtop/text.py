"""ANSI-aware text measurement and truncation.

Every string that reaches the screen may carry SGR colour codes
(``ESC [ ... m``). Widths are always computed on the visible characters only.
"""

from __future__ import annotations

import re

ESCAPE = "\x1b"
ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
TRUNCATION_MARKER = "~"


# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

class Colors:
    RESET = "\x1b[0m"
    BOLD = "\x1b[1m"
    DIM = "\x1b[2m"

    BLACK = "\x1b[30m"
    RED = "\x1b[31m"
    GREEN = "\x1b[32m"
    YELLOW = "\x1b[33m"
    BLUE = "\x1b[34m"
    CYAN = "\x1b[36m"
    WHITE = "\x1b[37m"

    BG_GREEN = "\x1b[42m"
    BG_BLUE = "\x1b[44m"
    BG_CYAN = "\x1b[46m"
    BG_WHITE = "\x1b[47m"

    SELECTED = BLACK + BG_WHITE


def paint(text: str, *styles: str) -> str:
    """Wrap text in the given SGR styles followed by a reset."""
    if not styles:
        return text
    return "".join(styles) + text + Colors.RESET


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------

def strip_ansi(s: str) -> str:
    return ANSI_PATTERN.sub("", s)


def visible_length(s: str) -> int:
    """Length of s excluding embedded escape sequences."""
    return len(strip_ansi(s))


def truncate_to_width(s: str, width: int) -> str:
    """Cut s to exactly ``width`` visible columns, padding with spaces.

    Escape sequences are copied through verbatim, including any found after
    the visible limit has been reached, so colour state is never left half
    written. A stray ESC that does not start a complete sequence is dropped.
    """
    width = max(width, 0)
    out: list[str] = []
    visible = 0
    i = 0

    while i < len(s):
        match = ANSI_PATTERN.match(s, i)
        if match:
            out.append(match.group())
            i = match.end()
            continue
        ch = s[i]
        if ch != ESCAPE and visible < width:
            out.append(ch)
            visible += 1
        i += 1

    return "".join(out) + " " * (width - visible)


def truncate(s: object, max_len: int) -> str:
    """Shorten a cell value to ``max_len`` visible columns, marking the cut with ``~``."""
    text = "" if s is None else str(s)
    if max_len <= 0:
        return ""
    if visible_length(text) > max_len:
        return truncate_to_width(text, max_len - 1) + TRUNCATION_MARKER
    return text


def pad(s: str, width: int) -> str:
    """Right-pad s with spaces to ``width`` visible columns (never truncates)."""
    return s + " " * max(width - visible_length(s), 0)

"""Value formatters used by the table rows and the summary counters."""

from __future__ import annotations

import json
import math
import time


def format_number(num: int | float | None) -> str:
    """Format an integer with thousands separators: 1234567 -> '1,234,567'."""
    if num is None:
        return "0"
    return f"{int(num):,}"


def format_latency(seconds: float | None) -> str:
    if not seconds:
        return "0s"
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    if seconds < 60:
        return f"{round(seconds, 1)}s"
    if seconds < 3600:
        return f"{round(seconds / 60, 1)}m"
    return f"{round(seconds / 3600, 1)}h"


def format_duration(seconds: float | None) -> str:
    """Format a running time like '45s', '3m12s' or '2h5m'."""
    if not seconds or not math.isfinite(seconds):
        return "0s"
    if seconds < 60:
        return f"{round(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m{round(seconds % 60)}s"
    return f"{int(seconds // 3600)}h{round((seconds % 3600) / 60)}m"


def format_time_ago(ts: float | None, now: float | None = None) -> str:
    """Format a POSIX timestamp as an age like 'now', '15m', '2h' or '3d'."""
    if ts is None or not math.isfinite(ts):
        return "-"
    if now is None:
        now = time.time()
    secs = now - ts
    if secs < 60:
        return "now"
    if secs < 3600:
        return f"{round(secs / 60)}m"
    if secs < 86400:
        return f"{round(secs / 3600)}h"
    return f"{round(secs / 86400)}d"


def format_update_age(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds)}s"
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    return f"{round(seconds / 3600)}h"


def format_memory(kb: int | None) -> str:
    if not kb:
        return "N/A"
    if kb < 1024:
        return f"{kb}K"
    if kb < 1024 * 1024:
        return f"{round(kb / 1024, 1)}M"
    return f"{round(kb / 1024 / 1024, 2)}G"


def format_timestamp(ts: float | None, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if ts is None:
        return "N/A"
    try:
        return time.strftime(fmt, time.localtime(ts))
    except (ValueError, OverflowError, OSError):
        return "N/A"


def format_args(args: tuple | list | None) -> str:
    """Render job arguments the way they would appear in a JSON payload."""
    return json.dumps(list(args or ()), default=str)

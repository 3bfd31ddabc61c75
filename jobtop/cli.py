"""Command-line entry point: jobtop [options]"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .app import Dashboard
from .cache import DataCache
from .config import Settings, load_settings
from .exceptions import ConfigError
from .models import View
from .poller import PollScheduler
from .render import FrameRenderer
from .text import strip_ansi
from .terminal import Terminal
from .viewport import ViewportState

logger = logging.getLogger("jobtop")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

VIEW_FLAGS = [
    ("-m", "--main", View.MAIN, "Start in the main overview (default)"),
    ("-q", "--queues", View.QUEUES, "Start in the queues view"),
    ("-p", "--processes", View.PROCESSES, "Start in the processes view"),
    ("-w", "--workers", View.WORKERS, "Start in the workers view"),
    ("-R", "--retries", View.RETRIES, "Start in the retries view"),
    ("-s", "--scheduled", View.SCHEDULED, "Start in the scheduled jobs view"),
    ("-d", "--dead", View.DEAD, "Start in the dead jobs view"),
]


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobtop",
        description="htop-style terminal monitor for background job queues",
    )
    parser.add_argument("-u", "--url", type=str,
                        help="Monitoring API URL (e.g., http://localhost:9292)")
    parser.add_argument("-k", "--api-key", type=str,
                        help="API key for server authentication")
    parser.add_argument("-c", "--config", type=Path,
                        help="Path to config file (default: .jobtop/config.yaml)")
    parser.add_argument("-i", "--interval", type=_positive_float,
                        help="Refresh interval in seconds (default: 2)")
    parser.add_argument("--limit", type=_positive_int,
                        help="Maximum jobs fetched per list (default: 500)")
    parser.add_argument("--demo", action="store_true",
                        help="Run in demo mode with sample data")
    parser.add_argument("-1", "--once", action="store_true",
                        help="Print one plain-text frame and exit")
    parser.add_argument("-v", "--version", action="version", version=f"jobtop {__version__}")

    views = parser.add_mutually_exclusive_group()
    for short, long, view, help_text in VIEW_FLAGS:
        views.add_argument(short, long, dest="view", action="store_const", const=view, help=help_text)
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Config file and environment first, then CLI flags on top."""
    settings = load_settings(args.config)
    if args.url:
        settings.url = args.url
    if args.api_key:
        settings.api_key = args.api_key
    if args.interval:
        settings.refresh_interval = args.interval
    if args.limit:
        settings.job_limit = args.limit
    if args.view:
        settings.initial_view = args.view
    return settings


def setup_logging(settings: Settings) -> None:
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(settings.log_file),
        level=settings.log_level,
        format=LOG_FORMAT,
    )


def build_backend(args: argparse.Namespace, settings: Settings):
    """Return a (data source, action service) pair, or None when unconfigured."""
    if args.demo:
        from .sources.demo import DemoBackend
        backend = DemoBackend()
        return backend, backend
    if not settings.url:
        return None
    from .sources.client import MonitoringClient
    client = MonitoringClient(server_url=settings.url, api_key=settings.api_key, timeout=settings.timeout)
    return client, client


def print_usage_hint() -> None:
    print("Error: jobtop needs a monitoring API to connect to.", file=sys.stderr)
    print("", file=sys.stderr)
    print("Options:", file=sys.stderr)
    print("  --demo               Run with demo data (no server needed)", file=sys.stderr)
    print("  --url <URL>          Connect to a monitoring API server", file=sys.stderr)
    print("", file=sys.stderr)
    print("Example:", file=sys.stderr)
    print("  jobtop --url http://localhost:9292", file=sys.stderr)
    print("", file=sys.stderr)
    print("The URL can also come from JOBTOP_URL or server.url in .jobtop/config.yaml.", file=sys.stderr)


def render_once(source, settings: Settings, width: int, height: int) -> tuple[list[str], bool]:
    """Fetch a single snapshot and return it as plain-text lines.

    The flag is False when the fetch failed (the frame then shows the loading
    screen with an error indicator).
    """
    cache = DataCache()
    poller = PollScheduler(source, cache, settings.refresh_interval, limit=settings.job_limit)
    ok = poller.poll_once()
    snapshot, _ = cache.current()
    renderer = FrameRenderer(width, height)
    viewport = ViewportState(settings.initial_view, terminal_height=height)
    lines = renderer.render(snapshot, viewport, cache.status)
    return [strip_ansi(line).rstrip() for line in lines], ok


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = resolve_settings(args)
        setup_logging(settings)
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    backend = build_backend(args, settings)
    if backend is None:
        print_usage_hint()
        return 1
    source, actions = backend

    if args.once:
        width, height = Terminal().size()
        lines, ok = render_once(source, settings, width, height)
        for line in lines:
            print(line)
        return 0 if ok else 1

    try:
        Dashboard(
            source,
            actions,
            refresh_interval=settings.refresh_interval,
            limit=settings.job_limit,
            initial_view=settings.initial_view,
        ).run()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.exception("jobtop crashed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

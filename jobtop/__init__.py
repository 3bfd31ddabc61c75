"""
jobtop - htop-style terminal monitor for background job queues.

Example:
    >>> from jobtop.sources.demo import DemoBackend
    >>> from jobtop.app import Dashboard
    >>>
    >>> backend = DemoBackend()
    >>> Dashboard(source=backend, actions=backend).run()
"""

from .exceptions import (
    ActionError,
    ConfigError,
    FetchError,
    InvalidSelectionError,
    JobtopError,
    NotFoundError,
    TerminalError,
    UnknownSourceError,
)

__version__ = "0.1.0"
__all__ = [
    "ActionError",
    "ConfigError",
    "FetchError",
    "InvalidSelectionError",
    "JobtopError",
    "NotFoundError",
    "TerminalError",
    "UnknownSourceError",
]

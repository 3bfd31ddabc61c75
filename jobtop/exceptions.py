"""
jobtop exceptions
"""


class JobtopError(Exception):
    """Base exception for all jobtop errors"""

    pass


class ConfigError(JobtopError):
    """Raised when configuration cannot be loaded or is invalid"""

    pass


class FetchError(JobtopError):
    """Raised when monitoring data cannot be retrieved.

    Transient: the poller logs it, flips the connection status to ``error``
    and tries again on the next cycle.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ActionError(JobtopError):
    """Raised when a remote job/process action fails"""

    pass


class NotFoundError(ActionError):
    """Raised when the target job or process does not exist"""

    pass


class UnknownSourceError(ActionError):
    """Raised when a job source is not one of retry, dead or scheduled"""

    def __init__(self, source: str):
        super().__init__(f"Unknown source: {source}")
        self.source = source


class InvalidSelectionError(ActionError):
    """Raised when the selected row does not map to an actionable entity"""

    pass


class TerminalError(JobtopError):
    """Raised when the terminal cannot be sized, switched to raw mode or restored"""

    pass

"""
Error taxonomy for the session supervisor.

Only ``UsageError`` and ``WatcherStartupFailure`` ever decide the exit code;
the others are converted locally into "terminate" or "ignore".
"""


class SessionBindError(Exception):
    """Base class for all sessionbind errors."""


class UsageError(SessionBindError):
    """Bad command line or configuration. Raised before any resource exists."""


class WatcherStartupFailure(SessionBindError):
    """The watch command could not be spawned or never became ready."""


class StreamEndedError(SessionBindError):
    """The watcher's event stream reached end of file."""


class QueryFailure(SessionBindError):
    """The session-state query failed or produced no usable answer."""


class SignalDeliveryFailure(SessionBindError):
    """A signal could not be delivered, usually because the PID is gone."""

    def __init__(self, pid: int, signum: int, reason: str):
        self.pid = pid
        self.signum = signum
        super().__init__(f"signal {signum} to pid {pid} failed: {reason}")

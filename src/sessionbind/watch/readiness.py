"""
Watcher readiness handshake.

A freshly spawned watcher needs some time before it actually observes its
paths; a session change in that window would be lost. The supervisor therefore
watches a private temporary file alongside the session state and keeps
touching it until the watcher reports a change. The first reported event
proves the watcher is live.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from sessionbind.errors import StreamEndedError, WatcherStartupFailure
from sessionbind.logger import get_logger
from sessionbind.watch.watcher import WatcherProcess

logger = get_logger(__name__)

ARTIFACT_PREFIX = "sessionbind-"


class ReadinessArtifact:
    """Uniquely named temp file used only as a rendezvous with the watcher."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def create(cls, directory: Optional[Path] = None) -> "ReadinessArtifact":
        fd, name = tempfile.mkstemp(
            prefix=ARTIFACT_PREFIX,
            dir=str(directory) if directory else None,
        )
        os.close(fd)
        logger.debug(f"Readiness artifact created: {name}")
        return cls(Path(name))

    def exists(self) -> bool:
        return self.path.exists()

    def touch(self) -> None:
        """Bump the mtime so the watcher sees an ATTRIB event."""
        os.utime(self.path, None)

    def remove(self) -> bool:
        """Delete the file. Returns False if it was already gone."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Readiness artifact removed: {self.path}")
        return True


class ReadinessGate:
    """One-shot gate that closes once the watcher has reported an event.

    Args:
        artifact: The file the watcher was told to observe.
        poll_timeout: Seconds to wait for an event after each touch.
        max_attempts: Touch/read rounds before giving up; 0 means no limit.
    """

    def __init__(
        self,
        artifact: ReadinessArtifact,
        poll_timeout: float,
        max_attempts: int = 0,
    ):
        self.artifact = artifact
        self.poll_timeout = poll_timeout
        self.max_attempts = max_attempts
        self._closed = False
        self.attempts = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def wait(self, watcher: WatcherProcess) -> None:
        """
        Block until the watcher is confirmed active.

        Raises:
            WatcherStartupFailure: the watcher died, or ``max_attempts`` rounds
                passed without a single event.
        """
        if self._closed:
            return

        while not self.max_attempts or self.attempts < self.max_attempts:
            self.attempts += 1
            self.artifact.touch()
            try:
                event = await watcher.next_event(timeout=self.poll_timeout)
            except StreamEndedError as e:
                raise WatcherStartupFailure(
                    f"watcher exited before becoming ready: {e}"
                ) from e

            if event is not None:
                self._closed = True
                logger.debug(f"Watcher ready after {self.attempts} attempt(s)")
                return

        raise WatcherStartupFailure(
            f"watcher not ready after {self.attempts} attempts "
            f"({self.poll_timeout}s each)"
        )

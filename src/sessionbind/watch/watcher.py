"""
The external filesystem watcher as a child process.

The watch command is expected to print one line per change on any of the
paths it was given (``inotifywait --monitor`` does exactly that).
"""

import asyncio
from pathlib import Path
from typing import Callable, Optional, Sequence

from sessionbind.errors import StreamEndedError, WatcherStartupFailure
from sessionbind.logger import get_logger

logger = get_logger(__name__)


class WatcherProcess:
    """Owns the watch subprocess and its line-oriented event stream.

    Args:
        command: Watch command; the watched paths are appended to it.
        on_spawn: Called with the new process so it can be tracked for cleanup.
    """

    def __init__(
        self,
        command: Sequence[str],
        on_spawn: Optional[Callable[[asyncio.subprocess.Process], None]] = None,
    ):
        self.command = list(command)
        self._on_spawn = on_spawn
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._ended = False

    @property
    def process(self) -> Optional[asyncio.subprocess.Process]:
        return self._proc

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc else None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def start(self, paths: Sequence[Path]) -> None:
        """Spawn the watcher on the given paths."""
        if self._proc is not None:
            raise RuntimeError("watcher already started")

        argv = self.command + [str(p) for p in paths]
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise WatcherStartupFailure(f"cannot spawn {argv[0]}: {e}") from e

        if self._on_spawn:
            self._on_spawn(self._proc)
        logger.debug(f"Watcher started pid={self._proc.pid}: {' '.join(argv)}")

    async def next_event(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait for the next change notification.

        Returns:
            The event line, or None if ``timeout`` elapsed first.

        Raises:
            StreamEndedError: the watcher closed its output (it died).
        """
        if self._proc is None or self._proc.stdout is None:
            raise RuntimeError("watcher not started")
        if self._ended:
            raise StreamEndedError("watcher stream already ended")

        read = self._proc.stdout.readline()
        if timeout is None:
            line = await read
        else:
            try:
                line = await asyncio.wait_for(read, timeout)
            except asyncio.TimeoutError:
                return None

        if not line:
            self._ended = True
            raise StreamEndedError(f"watcher pid={self._proc.pid} closed its output")

        event = line.decode(errors="replace").rstrip("\n")
        logger.debug(f"Watcher event: {event}")
        return event

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        try:
            return await self.next_event()
        except StreamEndedError:
            raise StopAsyncIteration from None

    async def reap(self, timeout: float) -> Optional[int]:
        """Wait up to ``timeout`` seconds for the watcher to exit; return its code."""
        if self._proc is None:
            return None
        if self._proc.returncode is not None:
            return self._proc.returncode
        try:
            return await asyncio.wait_for(self._proc.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Watcher pid={self._proc.pid} still running after {timeout}s")
            return None

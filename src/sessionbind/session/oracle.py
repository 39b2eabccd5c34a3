"""
Session state queries.

Asks the session manager for a session's state and reads the answer from
``State=<value>`` lines in its output. Anything that is not a clear "active"
answer counts as inactive, so the supervisor shuts down instead of spinning
on a session that has vanished.
"""

import asyncio
import contextlib
import re
from typing import Callable, Iterable, Optional, Sequence

from sessionbind.errors import QueryFailure
from sessionbind.logger import get_logger

logger = get_logger(__name__)

STATE_LINE = re.compile(r"^\s*State\s*=\s*(\S+)\s*$", re.MULTILINE)


def parse_state(output: str) -> str:
    """Extract the session state from query output."""
    states = STATE_LINE.findall(output)
    if len(set(states)) != 1:
        raise QueryFailure(f"ambiguous query output: {output.strip()!r}")
    return states[0].lower()


class SessionStateOracle:
    """Runs the state query command and answers ``is_active``.

    Args:
        command: Query command; the session id is appended to it.
        active_states: State values that count as active.
        timeout: Seconds before a hung query is killed.
        on_spawn: Called with each query process while it runs.
        on_exit: Called with each query process once it has finished.
    """

    def __init__(
        self,
        command: Sequence[str],
        active_states: Iterable[str],
        timeout: float,
        on_spawn: Optional[Callable[[asyncio.subprocess.Process], None]] = None,
        on_exit: Optional[Callable[[asyncio.subprocess.Process], None]] = None,
    ):
        self.command = list(command)
        self.active_states = {s.lower() for s in active_states}
        self.timeout = timeout
        self._on_spawn = on_spawn
        self._on_exit = on_exit

    async def query(self, session_id: str) -> str:
        """
        Return the raw session state.

        Raises:
            QueryFailure: the command is missing, failed, hung, or printed
                nothing recognizable.
        """
        argv = self.command + [session_id]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise QueryFailure(f"cannot run {argv[0]}: {e}") from e

        if self._on_spawn:
            self._on_spawn(proc)
        try:
            try:
                stdout, _ = await asyncio.wait_for(proc.communicate(), self.timeout)
            except asyncio.TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
                raise QueryFailure(f"query timed out after {self.timeout}s")
        finally:
            # A cancelled query may still be running; leave it tracked.
            if self._on_exit and proc.returncode is not None:
                self._on_exit(proc)

        if proc.returncode != 0:
            raise QueryFailure(f"{argv[0]} exited with {proc.returncode}")
        return parse_state(stdout.decode(errors="replace"))

    async def is_active(self, session_id: str) -> bool:
        """True only if the query cleanly reports one of the active states."""
        try:
            state = await self.query(session_id)
        except QueryFailure as e:
            logger.info(f"Session {session_id} treated as inactive: {e}")
            return False

        active = state in self.active_states
        logger.debug(f"Session {session_id} state={state} active={active}")
        return active

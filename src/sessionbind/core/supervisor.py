"""
Lifecycle supervisor: binds a target process to a login session.

    INIT -> AWAITING_READY -> WATCHING -> TERMINATING

The supervisor is single-shot. It starts the watcher, waits for the readiness
handshake, then alternates between checking the session and waiting for the
next change notification. Whatever ends the run (session gone, watcher gone,
startup failure, a termination signal) cleanup runs exactly once before
``run`` returns the exit code.
"""

import asyncio
import signal
from enum import Enum
from typing import Optional

from sessionbind.config import SupervisorConfig
from sessionbind.core.cleanup import CleanupCoordinator
from sessionbind.errors import StreamEndedError, WatcherStartupFailure
from sessionbind.logger import get_logger
from sessionbind.session.oracle import SessionStateOracle
from sessionbind.watch.readiness import ReadinessArtifact, ReadinessGate
from sessionbind.watch.watcher import WatcherProcess

logger = get_logger(__name__)

HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGHUP)

EXIT_OK = 0
EXIT_FAILURE = 1


class SupervisorState(str, Enum):
    INIT = "init"
    AWAITING_READY = "awaiting_ready"
    WATCHING = "watching"
    TERMINATING = "terminating"


class LifecycleSupervisor:
    """Watches one session on behalf of one target process.

    Args:
        config: Run configuration.
        oracle: Session state source. Built from ``config`` if omitted.
        watcher: Watcher process. Built from ``config`` if omitted.
        cleanup: Cleanup coordinator. Built from ``config`` if omitted.
    """

    def __init__(
        self,
        config: SupervisorConfig,
        oracle: Optional[SessionStateOracle] = None,
        watcher: Optional[WatcherProcess] = None,
        cleanup: Optional[CleanupCoordinator] = None,
    ):
        self.config = config
        self.cleanup = cleanup or CleanupCoordinator(
            config.target_pid, config.target_signal
        )
        self.oracle = oracle or SessionStateOracle(
            config.query_command,
            config.active_states,
            config.query_timeout,
            on_spawn=self.cleanup.adopt,
            on_exit=self.cleanup.release,
        )
        self.watcher = watcher or WatcherProcess(
            config.watch_command, on_spawn=self.cleanup.adopt
        )
        self.state = SupervisorState.INIT
        self.gate: Optional[ReadinessGate] = None
        self.queries = 0
        self.events = 0
        self.stop_reason: Optional[str] = None
        self.received_signal: Optional[int] = None
        self._lifecycle: Optional[asyncio.Task] = None

    async def run(self) -> int:
        """Supervise until the session ends. Returns the process exit code."""
        loop = asyncio.get_running_loop()
        # Handlers go in first: the readiness wait is interruptible too.
        for sig in HANDLED_SIGNALS:
            loop.add_signal_handler(sig, self._on_signal, sig)

        try:
            self._lifecycle = asyncio.ensure_future(self._run_lifecycle())
            try:
                code = await self._lifecycle
            except asyncio.CancelledError:
                if self.received_signal is None:
                    raise
                self.stop_reason = f"signal {signal.Signals(self.received_signal).name}"
                code = 128 + self.received_signal
            except WatcherStartupFailure as e:
                logger.error(f"Watcher failed to start: {e}")
                self.stop_reason = "watcher startup failure"
                code = EXIT_FAILURE
            except Exception as e:
                logger.exception(f"Supervisor error: {e}")
                self.stop_reason = f"error: {e}"
                code = EXIT_FAILURE
            finally:
                self._terminate()
        finally:
            for sig in HANDLED_SIGNALS:
                loop.remove_signal_handler(sig)

        await self.watcher.reap(self.config.reap_timeout)
        logger.info(f"Supervisor exiting ({self.stop_reason}), code={code}")
        return code

    def _on_signal(self, signum: int) -> None:
        logger.info(f"Received {signal.Signals(signum).name}")
        if self.received_signal is None:
            self.received_signal = signum
        if self._lifecycle is not None and not self._lifecycle.done():
            self._lifecycle.cancel()

    def _terminate(self) -> None:
        self.state = SupervisorState.TERMINATING
        self.cleanup.run()

    async def _run_lifecycle(self) -> int:
        cfg = self.config

        # INIT
        self.state = SupervisorState.INIT
        artifact = ReadinessArtifact.create(cfg.temp_dir)
        self.cleanup.artifact = artifact
        await self.watcher.start(cfg.watch_targets(artifact.path))

        # AWAITING_READY
        self.state = SupervisorState.AWAITING_READY
        self.gate = ReadinessGate(artifact, cfg.poll_timeout, cfg.max_ready_attempts)
        await self.gate.wait(self.watcher)

        # WATCHING
        self.state = SupervisorState.WATCHING
        logger.info(
            f"Watching session {cfg.session_id} ({cfg.session_state_path}) "
            f"for target pid={cfg.target_pid}"
        )
        # Late readiness events may still be queued; each costs one extra query.
        while True:
            self.queries += 1
            if not await self.oracle.is_active(cfg.session_id):
                self.stop_reason = "session inactive"
                break
            try:
                await self.watcher.next_event()
            except StreamEndedError as e:
                logger.info(f"Watcher stream ended: {e}")
                self.stop_reason = "watcher stream ended"
                break
            self.events += 1

        return EXIT_OK

"""
Exit-path cleanup for the supervisor.

Every step is fire-and-forget: signals are sent but never waited on, and a
failing step is logged without stopping the ones after it.
"""

import os
import signal
from typing import Callable, Optional

from sessionbind.errors import SignalDeliveryFailure
from sessionbind.logger import get_logger
from sessionbind.watch.readiness import ReadinessArtifact

logger = get_logger(__name__)


def send_signal(pid: int, signum: int) -> None:
    """Signal a PID, raising SignalDeliveryFailure instead of OSError."""
    try:
        os.kill(pid, signum)
    except ProcessLookupError:
        raise SignalDeliveryFailure(pid, signum, "no such process") from None
    except OSError as e:
        raise SignalDeliveryFailure(pid, signum, e.strerror or str(e)) from e


class CleanupCoordinator:
    """Removes the readiness artifact and signals the target and owned children.

    Children are tracked explicitly with ``adopt``/``release``; nothing outside
    that collection (other than the target) is ever signaled.
    """

    def __init__(self, target_pid: int, target_signal: int = signal.SIGTERM):
        self.target_pid = target_pid
        self.target_signal = target_signal
        self.artifact: Optional[ReadinessArtifact] = None
        self._children: dict[int, object] = {}
        self._ran = False

    @property
    def ran(self) -> bool:
        return self._ran

    @property
    def children(self) -> list:
        return list(self._children.values())

    def adopt(self, proc) -> None:
        """Track a child process handle (anything with ``pid`` and ``returncode``)."""
        self._children[proc.pid] = proc

    def release(self, proc) -> None:
        self._children.pop(proc.pid, None)

    def run(self) -> None:
        """Run all cleanup steps. Later calls do nothing."""
        if self._ran:
            logger.debug("Cleanup already done")
            return
        self._ran = True

        for label, step in (
            ("remove readiness artifact", self.remove_artifact),
            ("signal target", self.signal_target),
            ("signal children", self.signal_children),
        ):
            self._best_effort(label, step)

    def _best_effort(self, label: str, step: Callable[[], None]) -> None:
        try:
            step()
        except Exception as e:
            logger.warning(f"Cleanup step '{label}' failed: {e}")

    def remove_artifact(self) -> None:
        if self.artifact is not None:
            self.artifact.remove()

    def signal_target(self) -> None:
        try:
            send_signal(self.target_pid, self.target_signal)
        except SignalDeliveryFailure as e:
            logger.debug(str(e))
            return
        logger.info(f"Sent signal {self.target_signal} to target pid={self.target_pid}")

    def signal_children(self) -> None:
        for pid, proc in list(self._children.items()):
            if getattr(proc, "returncode", None) is not None:
                continue
            try:
                send_signal(pid, signal.SIGTERM)
            except SignalDeliveryFailure as e:
                logger.debug(str(e))
                continue
            logger.debug(f"Sent SIGTERM to child pid={pid}")

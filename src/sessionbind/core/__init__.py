"""
Supervisor core: the lifecycle state machine and its cleanup.
"""

from sessionbind.core.cleanup import CleanupCoordinator, send_signal
from sessionbind.core.supervisor import LifecycleSupervisor, SupervisorState

__all__ = [
    "CleanupCoordinator",
    "LifecycleSupervisor",
    "SupervisorState",
    "send_signal",
]

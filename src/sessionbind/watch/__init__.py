"""
Filesystem watching: the watcher subprocess and its readiness handshake.
"""

from sessionbind.watch.readiness import ReadinessArtifact, ReadinessGate
from sessionbind.watch.watcher import WatcherProcess

__all__ = ["ReadinessArtifact", "ReadinessGate", "WatcherProcess"]

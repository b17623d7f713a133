"""
Errors raised by the daemon orchestrator.

Per-instance errors (unknown worker type, bad configuration, failed
handshake) are collected by the supervisor and reported after the batch.
TerminationTimeout and SupervisorBusy are fatal for the invocation.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class DaemonError(Exception):
    """Base class for daemon orchestration errors."""


class WorkerTypeNotAvailable(DaemonError):
    """No worker implementation is registered under the requested name."""

    def __init__(self, worker_type: str, available: Iterable[str] = ()):
        self.worker_type = worker_type
        self.available = sorted(available)
        message = f"Worker type not available: '{worker_type}'"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class WorkerConfigurationError(DaemonError):
    """A pipeline's settings cannot be turned into a worker configuration."""


class HandshakeFailed(DaemonError):
    """A spawned worker never reported its pid through the handshake file."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Handshake failed for {path}: {reason}")


class TerminationTimeout(DaemonError):
    """Some signalled daemons were still alive once the wait budget ran out."""

    def __init__(self, pids: Iterable[int], waited_seconds: float):
        self.pids = sorted(pids)
        self.waited_seconds = waited_seconds
        super().__init__(
            "Could not kill all daemons. The following processes were still alive "
            f"after {waited_seconds:g} seconds: {', '.join(str(p) for p in self.pids)}"
        )


class SupervisorBusy(DaemonError):
    """Another orchestrator invocation holds the supervisor lock."""

    def __init__(self, path: Path, holder: str = ""):
        self.path = path
        self.holder = holder
        message = f"Supervisor lock {path} is held by another invocation"
        if holder:
            message += f" (pid {holder})"
        super().__init__(message)

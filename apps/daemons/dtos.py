"""
Result objects returned by the supervisor and the termination controller.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field

from apps.pipelines.models import process_marker
from apps.pipelines.selection import PipelineSelection


@dataclass
class SpawnedDaemon:
    """A daemon that completed its handshake and has a registry row."""

    selection: PipelineSelection
    daemon_type: str
    pid: int
    instance_id: int
    process: subprocess.Popen | None = None

    @property
    def marker(self) -> str:
        return process_marker(self.selection.pipeline.submission_type, self.daemon_type)


@dataclass
class SpawnError:
    """A per-instance failure collected during a spawn batch."""

    selection: PipelineSelection
    error_type: str
    message: str
    orphan_pid: int | None = None


@dataclass
class SpawnReport:
    """Outcome of one spawn batch."""

    spawned: list[SpawnedDaemon] = field(default_factory=list)
    errors: list[SpawnError] = field(default_factory=list)

    @property
    def processes(self) -> list[subprocess.Popen]:
        return [daemon.process for daemon in self.spawned if daemon.process is not None]


@dataclass
class TerminationReport:
    """Outcome of a termination request."""

    terminated: list[int] = field(default_factory=list)
    stale: list[int] = field(default_factory=list)
    exited: list[int] = field(default_factory=list)
    survivors: list[int] = field(default_factory=list)

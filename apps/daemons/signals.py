"""
Lifecycle signals for daemon orchestration.

Every state change of a daemon instance is emitted as a structured log record
so operators can follow a daemon from spawn to reconciliation:

- daemon.spawned
- daemon.spawn_failed
- daemon.signalled
- daemon.reconciled (with reason exited/terminated/stale)

Tags on every signal: pipeline, daemon_type, pid (when known), hostname.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("apps.daemons.signals")


@dataclass
class DaemonTags:
    """Tags attached to every daemon lifecycle signal."""

    pipeline: str
    daemon_type: str
    pid: int | None = None
    hostname: str = field(default_factory=socket.gethostname)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pipeline": self.pipeline,
            "daemon_type": self.daemon_type,
            "pid": self.pid,
            "hostname": self.hostname,
        }

    @classmethod
    def for_instance(cls, instance) -> DaemonTags:
        return cls(
            pipeline=instance.pipeline.submission_type,
            daemon_type=instance.daemon_type,
            pid=instance.pid,
            hostname=instance.hostname,
        )


def emit_daemon_event(
    event: str,
    tags: DaemonTags,
    level: int = logging.INFO,
    **extra: Any,
) -> None:
    """Log a structured lifecycle event."""
    data = {"event": event, **tags.to_dict(), **extra}
    logger.log(
        level,
        "[DAEMON] %s %s.%s pid=%s",
        event,
        tags.pipeline,
        tags.daemon_type,
        tags.pid,
        extra={"daemon_event": data},
    )


def emit_daemon_spawned(tags: DaemonTags, instance_id: int) -> None:
    emit_daemon_event("daemon.spawned", tags, instance_id=instance_id)


def emit_spawn_failed(tags: DaemonTags, error_type: str, error_message: str) -> None:
    emit_daemon_event(
        "daemon.spawn_failed",
        tags,
        level=logging.ERROR,
        error_type=error_type,
        error_message=error_message,
    )


def emit_daemon_signalled(tags: DaemonTags, signal_number: int) -> None:
    emit_daemon_event("daemon.signalled", tags, signal=int(signal_number))


def emit_daemon_reconciled(tags: DaemonTags, reason: str) -> None:
    level = logging.WARNING if reason == "stale" else logging.INFO
    emit_daemon_event("daemon.reconciled", tags, level=level, reason=reason)

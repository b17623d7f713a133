"""
Daemon instance registry access layer.

All reads and writes of DaemonInstance rows by the orchestrator go through
DaemonRegistry. Each write is a single-row insert or conditional update, so no
multi-row transaction is needed.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Iterable

from apps.daemons.models import DaemonInstance, EndReason, current_user
from apps.daemons.signals import DaemonTags, emit_daemon_reconciled
from apps.pipelines.models import Pipeline

logger = logging.getLogger(__name__)


class DaemonRegistry:
    """
    Persistent record of spawned daemons on one host.

    Usage:
        registry = DaemonRegistry()
        instance = registry.record_spawn(pipeline, "FileChecker", pid=4321)
        registry.reconcile_id(instance.pk, EndReason.EXITED)
    """

    def __init__(self, hostname: str | None = None, user: str | None = None):
        self.hostname = hostname or socket.gethostname()
        self.user = user if user is not None else current_user()

    def record_spawn(self, pipeline: Pipeline, daemon_type: str, pid: int) -> DaemonInstance:
        """Insert a RUNNING row for a daemon whose handshake succeeded."""
        return DaemonInstance.objects.create(
            pipeline=pipeline,
            daemon_type=daemon_type,
            pid=pid,
            hostname=self.hostname,
            user=self.user,
            running=True,
        )

    def running(self, pipeline_names: Iterable[str] | None = None):
        """Running rows on this host, newest first."""
        qs = DaemonInstance.objects.running().on_host(self.hostname).select_related("pipeline")
        if pipeline_names:
            qs = qs.for_pipelines(pipeline_names)
        return qs.order_by("-start_time", "-id")

    def reconcile(self, instance: DaemonInstance, reason: str) -> bool:
        """Close a running claim. Returns False if it was already closed."""
        closed = instance.mark_reconciled(reason)
        if closed:
            emit_daemon_reconciled(DaemonTags.for_instance(instance), reason)
        else:
            logger.debug("Daemon instance %s was already reconciled", instance.pk)
        return closed

    def reconcile_id(self, instance_id: int, reason: str = EndReason.EXITED) -> DaemonInstance | None:
        """
        Reconcile the row with primary key ``instance_id``.

        Returns:
            The instance, or None if no such row exists.
        """
        instance = DaemonInstance.objects.select_related("pipeline").filter(pk=instance_id).first()
        if instance is None:
            logger.info("No daemon instance recorded with id %s", instance_id)
            return None
        self.reconcile(instance, reason)
        return instance

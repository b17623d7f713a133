"""
Daemon instance registry model.

Every spawned checker daemon gets one row. Rows are never deleted: a row with
running=True is a claim that the pid is alive and ours, and it stays until the
monitor sees the process exit or the termination controller reconciles it.
"""

import getpass
import socket

from django.db import models
from django.utils import timezone

from apps.pipelines.models import process_marker


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


class EndReason(models.TextChoices):
    """Why a running claim was closed."""

    EXITED = "exited", "Exited"
    TERMINATED = "terminated", "Terminated"
    STALE = "stale", "Stale claim"


class DaemonInstanceQuerySet(models.QuerySet):
    def running(self):
        return self.filter(running=True)

    def on_host(self, hostname: str | None = None):
        return self.filter(hostname=hostname or socket.gethostname())

    def for_pipelines(self, names):
        return self.filter(pipeline__submission_type__in=list(names))


class DaemonInstance(models.Model):
    """
    One spawned checker daemon.

    The pid comes from the spawn handshake, not from the spawn call, because
    a daemon may change its effective pid before it is ready to be tracked.
    """

    pipeline = models.ForeignKey(
        "pipelines.Pipeline",
        on_delete=models.PROTECT,
        related_name="daemon_instances",
    )
    daemon_type = models.CharField(
        max_length=100,
        help_text="Worker type name the daemon was started with.",
    )
    pid = models.PositiveIntegerField(
        db_index=True,
        help_text="Process id reported by the daemon through the spawn handshake.",
    )
    hostname = models.CharField(
        max_length=255,
        default=socket.gethostname,
        db_index=True,
        help_text="Host the process runs on; pids are only meaningful per host.",
    )
    user = models.CharField(
        max_length=150,
        blank=True,
        default=current_user,
        help_text="User who launched the daemon.",
    )

    running = models.BooleanField(default=True, db_index=True)
    end_reason = models.CharField(
        max_length=20,
        choices=EndReason.choices,
        blank=True,
        default="",
    )
    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField(null=True, blank=True)

    objects = DaemonInstanceQuerySet.as_manager()

    class Meta:
        ordering = ["-start_time", "-id"]
        indexes = [
            models.Index(fields=["running", "pid"], name="daemon_running_pid_idx"),
            models.Index(fields=["hostname", "running"], name="daemon_host_running_idx"),
        ]

    def __str__(self):
        state = "running" if self.running else self.end_reason or "stopped"
        return f"{self.process_marker} pid={self.pid} [{state}]"

    @property
    def process_marker(self) -> str:
        return process_marker(self.pipeline.submission_type, self.daemon_type)

    def mark_reconciled(self, reason: str) -> bool:
        """
        Close this running claim.

        The update is conditional on running=True, so only the first caller
        wins and repeated reconciliation is a no-op.

        Returns:
            True if this call closed the claim.
        """
        now = timezone.now()
        updated = DaemonInstance.objects.filter(pk=self.pk, running=True).update(
            running=False, end_time=now, end_reason=reason
        )
        if updated:
            self.running = False
            self.end_time = now
            self.end_reason = reason
        return bool(updated)

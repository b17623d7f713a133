"""
Pipeline definition model.

Pipelines are managed by curators; the daemon orchestrator reads them to decide
which checker daemons to start and with which settings.
"""

from collections.abc import Mapping

from django.db import models

from apps.pipelines.severity import combine_levels


def process_marker(submission_type: str, daemon_type: str) -> str:
    """Token placed on a daemon's command line to identify its process later."""
    return f"{submission_type}.{daemon_type}"


class Pipeline(models.Model):
    """
    A submission pipeline and the checker daemon configuration for it.

    Example:
        submission_type="MAGE-TAB", daemon_type="FileChecker",
        instances_to_start=2, checker_threshold="WARN, ERROR"
    """

    submission_type = models.CharField(
        max_length=50,
        unique=True,
        db_index=True,
        help_text="Pipeline name used to select it on the command line (e.g., 'MAGE-TAB').",
    )
    description = models.TextField(
        blank=True,
        default="",
    )
    daemon_type = models.CharField(
        max_length=100,
        help_text="Name of the checker daemon implementation to run (e.g., 'FileChecker').",
    )
    instances_to_start = models.PositiveIntegerField(
        default=0,
        help_text="Number of daemons to start when no pipeline is named explicitly.",
    )
    polling_interval = models.PositiveIntegerField(
        default=60,
        help_text="Seconds the daemon waits between polls for new work.",
    )
    checker_threshold = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Comma separated severity levels the checker acts on (e.g., 'WARN, ERROR').",
    )
    accession_prefix = models.CharField(
        max_length=20,
        blank=True,
        default="",
        help_text="Accession prefix handed to the daemon unchanged (e.g., 'E-MTAB-').",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.submission_type} ({self.daemon_type} x{self.instances_to_start})"

    def severity_threshold(self, levels: Mapping[str, int]) -> int:
        """Combine ``checker_threshold`` into a single bitmask using ``levels``."""
        return combine_levels(self.checker_threshold, levels)

"""
Management command to list tracked daemon instances.

Usage:
    # Daemons currently recorded as running on this host
    python manage.py list_daemons

    # Recent history, including ended daemons, for one pipeline
    python manage.py list_daemons --all -p MAGE-TAB --limit 20

    # Worker types that pipelines can refer to
    python manage.py list_daemons --workers
"""

import socket

from django.core.management.base import BaseCommand

from apps.daemons.models import DaemonInstance
from apps.daemons.workers import get_available_workers


class Command(BaseCommand):
    help = "List tracked daemon instances and available worker types."

    def add_arguments(self, parser):
        parser.add_argument(
            "--all",
            action="store_true",
            help="Include daemons that are no longer running",
        )
        parser.add_argument(
            "-p",
            "--pipeline",
            action="append",
            dest="pipelines",
            default=[],
            help="Only show daemons of this pipeline (repeatable)",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=50,
            help="Number of instances to show (default: 50)",
        )
        parser.add_argument(
            "--workers",
            action="store_true",
            help="List available worker types instead",
        )

    def handle(self, *args, **options):
        if options["workers"]:
            self.list_workers()
        else:
            self.list_instances(options["all"], options["pipelines"], options["limit"])

    def list_workers(self):
        self.stdout.write(self.style.HTTP_INFO("Available worker types:"))
        for name in get_available_workers():
            self.stdout.write(f"  - {name}")

    def list_instances(self, include_ended, pipelines, limit):
        qs = DaemonInstance.objects.on_host(socket.gethostname()).select_related("pipeline")
        if not include_ended:
            qs = qs.running()
        if pipelines:
            qs = qs.for_pipelines(pipelines)
        qs = qs[:limit]

        if not qs:
            self.stdout.write(self.style.WARNING("No daemon instances found."))
            return

        self.stdout.write(
            f"{'ID':<6} {'Marker':<36} {'PID':<8} {'User':<12} {'Started':<20} {'State':<12}"
        )
        self.stdout.write("-" * 98)
        for instance in qs:
            state = "running" if instance.running else instance.end_reason
            self.stdout.write(
                f"{instance.pk:<6} {instance.process_marker:<36} {instance.pid:<8} "
                f"{instance.user:<12} {instance.start_time:%Y-%m-%d %H:%M:%S} {state:<12}"
            )

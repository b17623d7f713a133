"""
Management command that runs a single checker daemon in the foreground.

Spawned by the launch commands; the leading MARKER argument
("<pipeline>.<worker type>") identifies the process in its command line.

Usage:
    python manage.py run_daemon MAGE-TAB.FileChecker \
        --worker-type FileChecker --pipeline MAGE-TAB \
        --pidfile var/run/handshake/MAGE-TAB.FileChecker.x.pid --run-mode once
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.daemons.conf import parse_signal
from apps.daemons.exceptions import DaemonError
from apps.daemons.workers import RunMode, WorkerConfig, get_worker_class


class Command(BaseCommand):
    help = "Run one checker daemon in the foreground (normally spawned by launch_daemons)."

    def add_arguments(self, parser):
        parser.add_argument("marker", help="Process marker '<pipeline>.<worker type>'")
        parser.add_argument("--worker-type", required=True)
        parser.add_argument("--pipeline", required=True)
        parser.add_argument("--pidfile", required=True, help="Handshake file to publish the pid to")
        parser.add_argument("--polling-interval", type=float, default=60.0)
        parser.add_argument("--severity-threshold", type=int, default=0)
        parser.add_argument("--accession-prefix", default="")
        parser.add_argument(
            "--run-mode",
            choices=[mode.value for mode in RunMode],
            default=RunMode.FOREVER.value,
        )
        parser.add_argument("--stop-signal", default="SIGUSR1")
        parser.add_argument("--handshake-timeout", type=float, default=5.0)
        parser.add_argument("--admin-email", default="")
        parser.add_argument("--work-dir")

    def handle(self, *args, **options):
        try:
            stop_signal = parse_signal(options["stop_signal"])
        except ValueError as exc:
            raise CommandError(str(exc)) from exc

        config = WorkerConfig.from_mapping(
            {
                "pipeline_name": options["pipeline"],
                "worker_type": options["worker_type"],
                "pidfile_path": options["pidfile"],
                "polling_interval": options["polling_interval"],
                "severity_threshold": options["severity_threshold"],
                "accession_prefix": options["accession_prefix"],
                "run_mode": options["run_mode"],
                "admin_email": options["admin_email"],
                "work_dir": options["work_dir"],
                "termination_signal": stop_signal,
                "handshake_timeout": options["handshake_timeout"],
                "severity_levels": dict(getattr(settings, "CHECKER_SEVERITY_LEVELS", {})),
            }
        )
        if options["marker"] != config.marker:
            raise CommandError(
                f"Marker '{options['marker']}' does not match pipeline and worker type ({config.marker})"
            )

        try:
            worker_class = get_worker_class(config.worker_type)
            worker = worker_class.configure(config)
            handled = worker.run()
        except DaemonError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"{config.marker} exited after {handled} work units"))

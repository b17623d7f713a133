"""
Shared implementation of the launch_daemons and launch_daemons_once commands.
"""

from django.core.management.base import BaseCommand, CommandError

from apps.daemons.conf import SPAWN_MODES, DaemonSettings
from apps.daemons.exceptions import DaemonError
from apps.daemons.launcher import DaemonLauncher
from apps.daemons.workers import RunMode
from apps.pipelines.selection import PipelineNotFound


class BaseLaunchCommand(BaseCommand):
    run_mode = RunMode.FOREVER

    def add_arguments(self, parser):
        parser.add_argument(
            "-p",
            "--pipeline",
            action="append",
            dest="pipelines",
            default=[],
            metavar="NAME",
            help="Pipeline to start a daemon for. Repeat to start several. "
            "Starts every pipeline's default instances if omitted.",
        )
        parser.add_argument(
            "--spawn-mode",
            choices=SPAWN_MODES,
            help="serial: wait for each daemon's handshake before spawning the next; "
            "pipelined: spawn all, then collect handshakes (default from settings).",
        )

    def get_launcher(self, options) -> DaemonLauncher:
        daemon_settings = DaemonSettings.from_django(spawn_mode=options.get("spawn_mode"))
        return DaemonLauncher(daemon_settings)

    def launch(self, launcher: DaemonLauncher, pipelines, restart: bool = False) -> None:
        try:
            termination, report = launcher.launch(pipelines, self.run_mode, restart=restart)
        except (PipelineNotFound, DaemonError) as exc:
            raise CommandError(str(exc)) from exc
        except KeyboardInterrupt:
            self.stdout.write(
                self.style.WARNING(
                    "Interrupted while starting daemons. Daemons already started keep running; "
                    "use list_daemons to see them and launch_daemons --kill to stop them."
                )
            )
            return

        if termination is not None:
            self.write_termination(termination)

        for daemon in report.spawned:
            self.stdout.write(
                self.style.SUCCESS(f"Started {daemon.marker} (pid {daemon.pid}, instance #{daemon.instance_id})")
            )
        for error in report.errors:
            line = f"Failed to start {error.selection.label}: {error.message}"
            if error.orphan_pid:
                line += f" [untracked process {error.orphan_pid} may still be running]"
            self.stderr.write(self.style.ERROR(line))

        if not report.spawned:
            if report.errors:
                raise CommandError("No daemons were started")
            self.stdout.write(self.style.WARNING("No daemons to start."))
            return

        self.stdout.write("Waiting for child processes...")
        try:
            launcher.watch(report, self.run_mode)
        except KeyboardInterrupt:
            self.stdout.write(
                self.style.WARNING(
                    f"Interrupted. {len(report.spawned)} daemons keep running; "
                    "use launch_daemons --kill to stop them."
                )
            )
            return
        self.stdout.write(self.style.SUCCESS("All daemons have exited."))

    def write_termination(self, report) -> None:
        for pid in report.terminated:
            self.stdout.write(f"Killed daemon {pid}")
        for pid in report.stale:
            self.stdout.write(self.style.WARNING(f"Daemon {pid} was not running; record updated"))
        for pid in report.exited:
            self.stdout.write(f"Daemon {pid} had already exited")
        self.stdout.write(self.style.SUCCESS("Killing daemons done"))

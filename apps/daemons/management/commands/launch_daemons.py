"""
Management command to launch, kill or restart pipeline checker daemons.

Usage:
    # Start the default daemons of every pipeline and watch them
    python manage.py launch_daemons

    # Start specific daemons
    python manage.py launch_daemons -p MAGE-TAB -p GEO

    # Kill all daemons currently known to be running
    python manage.py launch_daemons --kill

    # Kill all running daemons and then restart the default daemons
    python manage.py launch_daemons --restart --noinput
"""

from django.core.management.base import CommandError

from apps.daemons.exceptions import DaemonError
from apps.daemons.management.base import BaseLaunchCommand
from apps.daemons.workers import RunMode


class Command(BaseLaunchCommand):
    help = "Launch pipeline checker daemons and watch them, or kill/restart running daemons."
    run_mode = RunMode.FOREVER

    def add_arguments(self, parser):
        super().add_arguments(parser)
        action = parser.add_mutually_exclusive_group()
        action.add_argument(
            "-k",
            "--kill",
            action="store_true",
            help="Kill all daemons currently known to be running and exit.",
        )
        action.add_argument(
            "-r",
            "--restart",
            action="store_true",
            help="Kill all running daemons, then launch the selected ones.",
        )
        parser.add_argument(
            "--noinput",
            "--no-input",
            action="store_false",
            dest="interactive",
            help="Do not ask for confirmation before killing daemons.",
        )

    def handle(self, *args, **options):
        pipelines = options["pipelines"]
        if options["kill"] and pipelines:
            raise CommandError("--kill stops every tracked daemon and takes no --pipeline")

        launcher = self.get_launcher(options)

        if options["kill"] or options["restart"]:
            if options["interactive"] and not self.confirm():
                raise CommandError("Aborted.")

        if options["kill"]:
            try:
                report = launcher.kill()
            except DaemonError as exc:
                raise CommandError(str(exc)) from exc
            self.write_termination(report)
            return

        self.launch(launcher, pipelines, restart=options["restart"])

    def confirm(self) -> bool:
        self.stdout.write("** This will kill ALL tracking daemons currently running **")
        answer = input("Continue? (y/n) ").strip().lower()
        return answer.startswith("y")

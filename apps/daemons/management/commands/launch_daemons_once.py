"""
Management command to run pipeline checker daemons until their work runs out.

Each daemon is told to exit once it finds nothing left to do, and the command
returns when every daemon it started has exited.

Usage:
    python manage.py launch_daemons_once -p MAGE-TAB
    python manage.py launch_daemons_once                # default daemons of every pipeline
"""

from apps.daemons.management.base import BaseLaunchCommand
from apps.daemons.workers import RunMode


class Command(BaseLaunchCommand):
    help = "Launch pipeline checker daemons that stop when idle, and wait for them to exit."
    run_mode = RunMode.ONCE

    def handle(self, *args, **options):
        self.launch(self.get_launcher(options), options["pipelines"])

"""
Termination controller.

Stops the daemons the registry claims are running on this host:

1. every running claim is re-verified against the live process: the pid must
   exist and its command line must carry the "<pipeline>.<daemon_type>"
   marker. Anything else is a stale claim, which is reconciled and never
   signalled;
2. verified daemons get the graceful termination signal;
3. the signalled pids are checked at a fixed interval for a bounded number of
   rounds. Pids seen gone are reconciled as terminated; if any survive the
   budget the whole request fails with TerminationTimeout.

There is no escalation to SIGKILL; a daemon that ignores the signal needs an
operator.
"""

from __future__ import annotations

import logging
import signal
import time
from collections.abc import Callable, Iterable

import psutil

from apps.daemons import processes
from apps.daemons.dtos import TerminationReport
from apps.daemons.exceptions import TerminationTimeout
from apps.daemons.models import DaemonInstance, EndReason
from apps.daemons.registry import DaemonRegistry
from apps.daemons.signals import DaemonTags, emit_daemon_signalled

logger = logging.getLogger(__name__)


class TerminationController:
    """
    Gracefully stop tracked daemons.

    Usage:
        controller = TerminationController(registry, signal.SIGUSR1)
        report = controller.terminate(["MAGE-TAB"])
    """

    def __init__(
        self,
        registry: DaemonRegistry | None = None,
        signal_number: int = signal.SIGUSR1,
        interval: float = 5.0,
        rounds: int = 16,
        sleep: Callable[[float], None] = time.sleep,
        get_process: Callable[[int], psutil.Process | None] = processes.get_process,
        is_alive: Callable[[int], bool] = processes.is_alive,
    ):
        self.registry = registry or DaemonRegistry()
        self.signal_number = signal_number
        self.interval = interval
        self.rounds = rounds
        self._sleep = sleep
        self._get_process = get_process
        self._is_alive = is_alive

    def terminate(self, pipeline_names: Iterable[str] | None = None) -> TerminationReport:
        """
        Signal every verified running daemon and wait for them to exit.

        Args:
            pipeline_names: Only consider daemons of these pipelines.

        Returns:
            TerminationReport listing terminated, stale and already-exited pids.

        Raises:
            TerminationTimeout: If signalled daemons are still alive after
                ``rounds`` checks ``interval`` seconds apart.
        """
        report = TerminationReport()
        waiting: dict[int, DaemonInstance] = {}

        for instance in self._candidates(pipeline_names):
            proc = self._get_process(instance.pid)
            marker = instance.process_marker

            if proc is None or not processes.carries_marker(proc, marker):
                logger.warning(
                    "Process %s with name %s not found. Updating daemon status to not running",
                    instance.pid,
                    marker,
                )
                self.registry.reconcile(instance, EndReason.STALE)
                report.stale.append(instance.pid)
                continue

            logger.info("Killing %s (%s)", instance.pid, marker)
            try:
                delivered = processes.send_signal(proc, self.signal_number)
            except psutil.AccessDenied:
                logger.warning("Could not send kill signal to process %s: access denied", instance.pid)
                waiting[instance.pid] = instance
                continue
            if not delivered:
                self.registry.reconcile(instance, EndReason.EXITED)
                report.exited.append(instance.pid)
                continue

            emit_daemon_signalled(DaemonTags.for_instance(instance), self.signal_number)
            waiting[instance.pid] = instance

        self._wait_for_exit(waiting, report)

        if report.survivors:
            raise TerminationTimeout(report.survivors, self.interval * self.rounds)
        return report

    def _candidates(self, pipeline_names: Iterable[str] | None) -> list[DaemonInstance]:
        """Newest running claim per pid; older duplicate claims are stale."""
        latest: dict[int, DaemonInstance] = {}
        for instance in list(self.registry.running(pipeline_names)):
            if instance.pid in latest:
                logger.warning(
                    "Superseded running claim %s for pid %s; marking stale", instance.pk, instance.pid
                )
                self.registry.reconcile(instance, EndReason.STALE)
                continue
            latest[instance.pid] = instance
        return list(latest.values())

    def _collect_exited(self, waiting: dict[int, DaemonInstance], report: TerminationReport) -> None:
        for pid in [pid for pid in waiting if not self._is_alive(pid)]:
            self.registry.reconcile(waiting.pop(pid), EndReason.TERMINATED)
            report.terminated.append(pid)

    def _wait_for_exit(self, waiting: dict[int, DaemonInstance], report: TerminationReport) -> None:
        for round_number in range(self.rounds):
            self._collect_exited(waiting, report)
            if not waiting:
                return
            logger.info(
                "Waiting for %d daemons to exit (round %d/%d)", len(waiting), round_number + 1, self.rounds
            )
            self._sleep(self.interval)

        self._collect_exited(waiting, report)
        report.survivors = sorted(waiting)

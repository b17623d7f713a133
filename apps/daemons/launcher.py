"""
Daemon launcher service.

Entry point used by the launch management commands. Wires the pipeline
reader, supervisor, monitor and termination controller together from one
DaemonSettings value, and runs every registry-mutating step under the
supervisor lock.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from apps.daemons.conf import DaemonSettings
from apps.daemons.dtos import SpawnReport, TerminationReport
from apps.daemons.locking import supervisor_lock
from apps.daemons.monitor import LivenessMonitor
from apps.daemons.registry import DaemonRegistry
from apps.daemons.supervisor import ProcessSupervisor
from apps.daemons.termination import TerminationController
from apps.daemons.workers import RunMode
from apps.pipelines.selection import resolve_pipelines

logger = logging.getLogger(__name__)


class DaemonLauncher:
    """
    Launch, watch and kill pipeline daemons.

    Usage:
        launcher = DaemonLauncher(DaemonSettings.from_django())
        _, report = launcher.launch(["MAGE-TAB"], RunMode.ONCE)
        launcher.watch(report, RunMode.ONCE)
    """

    def __init__(
        self,
        daemon_settings: DaemonSettings,
        registry: DaemonRegistry | None = None,
        supervisor: ProcessSupervisor | None = None,
        monitor: LivenessMonitor | None = None,
        controller: TerminationController | None = None,
    ):
        self.settings = daemon_settings
        self.registry = registry or DaemonRegistry()
        self.supervisor = supervisor or ProcessSupervisor(daemon_settings, registry=self.registry)
        self.monitor = monitor or LivenessMonitor(
            registry=self.registry,
            interval=daemon_settings.monitor_interval,
        )
        self.controller = controller or TerminationController(
            registry=self.registry,
            signal_number=daemon_settings.termination_signal,
            interval=daemon_settings.termination_interval,
            rounds=daemon_settings.termination_rounds,
        )

    def _lock(self):
        return supervisor_lock(self.settings.lock_path, timeout=self.settings.lock_timeout)

    def kill(self) -> TerminationReport:
        """Terminate every daemon recorded as running on this host."""
        with self._lock():
            return self.controller.terminate()

    def launch(
        self,
        selectors: Sequence[str] = (),
        run_mode: RunMode = RunMode.FOREVER,
        restart: bool = False,
    ) -> tuple[TerminationReport | None, SpawnReport]:
        """
        Resolve pipelines, optionally kill all running daemons, then spawn.

        Selectors are resolved before anything is killed or spawned, so an
        unknown pipeline name aborts the invocation without side effects.
        On restart the selectors only choose what is launched; every running
        daemon is terminated first.

        Raises:
            PipelineNotFound: If a selector names no pipeline.
            TerminationTimeout: If a restart could not stop the old daemons.
            SupervisorBusy: If another invocation holds the lock.
        """
        with self._lock():
            selections = resolve_pipelines(selectors)
            logger.info("Launching %d daemons (%s)", len(selections), run_mode.value)
            termination = None
            if restart:
                termination = self.controller.terminate()
            report = self.supervisor.launch(selections, run_mode)
        return termination, report

    def watch(self, report: SpawnReport, run_mode: RunMode) -> None:
        """Monitor the spawned daemons; returns only in ONCE mode."""
        self.monitor.watch(
            report.spawned,
            exit_when_done=run_mode is RunMode.ONCE,
            children=report.processes,
        )

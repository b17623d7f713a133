"""
Process supervisor.

Spawns one detached checker daemon per pipeline selection, learns each
daemon's pid through the spawn handshake and records it in the registry.

Failure policy:
- Unknown worker type, bad severity threshold, an unusable handshake
  directory, spawn or handshake failure affect only that instance; the
  error is collected in the SpawnReport and the batch carries on.
- A daemon whose handshake failed is left running untracked (an orphan); its
  spawn pid is logged so an operator can clean it up.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from apps.daemons.conf import DaemonSettings
from apps.daemons.dtos import SpawnedDaemon, SpawnError, SpawnReport
from apps.daemons.exceptions import DaemonError, HandshakeFailed, WorkerConfigurationError
from apps.daemons.handshake import SpawnHandshake, safe_filename
from apps.daemons.registry import DaemonRegistry
from apps.daemons.signals import DaemonTags, emit_daemon_spawned, emit_spawn_failed
from apps.daemons.workers import BaseWorker, RunMode, WorkerConfig, get_worker_class
from apps.pipelines.selection import PipelineSelection
from apps.pipelines.severity import UnknownSeverityLevel

logger = logging.getLogger(__name__)


class WorkerSpawner:
    """Start `run_daemon` processes that outlive the launcher."""

    def __init__(self, daemon_settings: DaemonSettings):
        self.settings = daemon_settings

    def command(self, config: WorkerConfig) -> list[str]:
        # The marker must stay a literal argv token: termination matches on it.
        return [
            self.settings.python_executable,
            "-m",
            "django",
            "run_daemon",
            config.marker,
            *config.to_options(),
        ]

    def log_path(self, config: WorkerConfig) -> Path:
        return self.settings.log_dir / f"{safe_filename(config.marker)}.log"

    def spawn(self, config: WorkerConfig) -> subprocess.Popen:
        log_path = self.log_path(config)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        env = os.environ.copy()
        env.setdefault("DJANGO_SETTINGS_MODULE", self.settings.settings_module)

        with open(log_path, "ab") as log_file:
            return subprocess.Popen(
                self.command(config),
                cwd=self.settings.base_dir,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                start_new_session=True,
                close_fds=True,
            )


@dataclass
class _SpawnAttempt:
    selection: PipelineSelection
    config: WorkerConfig
    process: subprocess.Popen
    deadline: float


class ProcessSupervisor:
    """
    Spawn daemons for a list of pipeline selections.

    Usage:
        supervisor = ProcessSupervisor(DaemonSettings.from_django())
        report = supervisor.launch(resolve_pipelines(["MAGE-TAB"]), RunMode.ONCE)
    """

    def __init__(
        self,
        daemon_settings: DaemonSettings,
        registry: DaemonRegistry | None = None,
        handshake: SpawnHandshake | None = None,
        spawner: WorkerSpawner | None = None,
        resolve_worker: Callable[[str], type[BaseWorker]] = get_worker_class,
    ):
        self.settings = daemon_settings
        self.registry = registry or DaemonRegistry()
        self.handshake = handshake or SpawnHandshake(
            daemon_settings.handshake_dir,
            timeout=daemon_settings.handshake_timeout,
            poll_interval=daemon_settings.handshake_poll_interval,
        )
        self.spawner = spawner or WorkerSpawner(daemon_settings)
        self.resolve_worker = resolve_worker

    def launch(
        self,
        selections: Sequence[PipelineSelection],
        run_mode: RunMode = RunMode.FOREVER,
    ) -> SpawnReport:
        """
        Spawn one daemon per selection, in order.

        In "serial" spawn mode each handshake completes before the next spawn;
        in "pipelined" mode every daemon is spawned first and the handshakes
        are collected afterwards in the same order.
        """
        report = SpawnReport()
        pending: list[_SpawnAttempt] = []

        for selection in selections:
            attempt = self._start(selection, run_mode, report)
            if attempt is None:
                continue
            if self.settings.spawn_mode == "serial":
                self._complete(attempt, report)
            else:
                pending.append(attempt)

        for attempt in pending:
            self._complete(attempt, report)

        logger.info(
            "Spawn batch finished: %d started, %d failed", len(report.spawned), len(report.errors)
        )
        return report

    def build_config(self, selection: PipelineSelection, run_mode: RunMode) -> WorkerConfig:
        pipeline = selection.pipeline
        try:
            threshold = pipeline.severity_threshold(self.settings.severity_levels)
        except UnknownSeverityLevel as exc:
            raise WorkerConfigurationError(
                f"Pipeline {pipeline.submission_type}: {exc}"
            ) from exc

        return WorkerConfig(
            pipeline_name=pipeline.submission_type,
            worker_type=pipeline.daemon_type,
            pidfile_path=self.handshake.allocate(pipeline.submission_type, pipeline.daemon_type),
            polling_interval=float(pipeline.polling_interval),
            severity_threshold=threshold,
            accession_prefix=pipeline.accession_prefix,
            run_mode=run_mode,
            admin_email=self.settings.admin_email,
            work_dir=self.settings.work_dir,
            termination_signal=self.settings.termination_signal,
            handshake_timeout=self.settings.handshake_timeout,
        )

    def _start(
        self,
        selection: PipelineSelection,
        run_mode: RunMode,
        report: SpawnReport,
    ) -> _SpawnAttempt | None:
        pipeline = selection.pipeline
        try:
            self.resolve_worker(pipeline.daemon_type)
            config = self.build_config(selection, run_mode)
        except (DaemonError, OSError) as exc:
            self._fail(report, selection, exc)
            return None

        try:
            process = self.spawner.spawn(config)
        except OSError as exc:
            self._fail(report, selection, exc, message=f"Could not spawn {config.marker} daemon: {exc}")
            return None

        logger.info("Spawned %s (%s), spawn pid %s", config.marker, selection.label, process.pid)
        return _SpawnAttempt(
            selection=selection,
            config=config,
            process=process,
            deadline=self.handshake.deadline(),
        )

    def _complete(self, attempt: _SpawnAttempt, report: SpawnReport) -> None:
        selection = attempt.selection
        pipeline = selection.pipeline
        try:
            pid = self.handshake.wait_for_pid(attempt.config.pidfile_path, deadline=attempt.deadline)
        except HandshakeFailed as exc:
            message = str(exc)
            returncode = attempt.process.poll()
            if returncode is not None:
                message += f" (daemon exited with status {returncode})"
            else:
                logger.warning(
                    "Daemon %s (spawn pid %s) is running untracked after a failed handshake",
                    attempt.config.marker,
                    attempt.process.pid,
                )
            self._fail(
                report,
                selection,
                exc,
                message=message,
                orphan_pid=attempt.process.pid if returncode is None else None,
            )
            return

        instance = self.registry.record_spawn(pipeline, pipeline.daemon_type, pid)
        emit_daemon_spawned(
            DaemonTags(pipeline=pipeline.submission_type, daemon_type=pipeline.daemon_type, pid=pid),
            instance.pk,
        )
        report.spawned.append(
            SpawnedDaemon(
                selection=selection,
                daemon_type=pipeline.daemon_type,
                pid=pid,
                instance_id=instance.pk,
                process=attempt.process,
            )
        )

    def _fail(
        self,
        report: SpawnReport,
        selection: PipelineSelection,
        exc: Exception,
        message: str | None = None,
        orphan_pid: int | None = None,
    ) -> None:
        error = SpawnError(
            selection=selection,
            error_type=type(exc).__name__,
            message=message or str(exc),
            orphan_pid=orphan_pid,
        )
        report.errors.append(error)
        emit_spawn_failed(
            DaemonTags(
                pipeline=selection.pipeline.submission_type,
                daemon_type=selection.pipeline.daemon_type,
                pid=orphan_pid,
            ),
            error.error_type,
            error.message,
        )

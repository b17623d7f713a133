"""
Base worker classes and configuration for checker daemons.
"""

from __future__ import annotations

import logging
import signal
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from apps.daemons.handshake import remove_pidfile, write_pidfile
from apps.pipelines.models import process_marker

logger = logging.getLogger(__name__)


class RunMode(Enum):
    """How long a worker keeps polling."""

    FOREVER = "forever"
    ONCE = "once"  # Exit as soon as a poll finds no work


@dataclass
class WorkerConfig:
    """
    Attributes a worker is configured with.

    Attributes:
        pipeline_name: Pipeline the worker serves (e.g., "MAGE-TAB").
        worker_type: Registered worker type name (e.g., "FileChecker").
        pidfile_path: Handshake file the worker publishes its pid to.
        polling_interval: Seconds between polls when idle.
        severity_threshold: Bitmask of severity levels the checker acts on.
        accession_prefix: Passed through from the pipeline unchanged.
        run_mode: FOREVER, or ONCE to stop when the work runs out.
        admin_email: Address of the pipeline administrator.
        work_dir: Root directory of submission files.
        termination_signal: Signal that asks the worker to stop gracefully.
        handshake_timeout: How long the orchestrator may take to read the pid.
        severity_levels: Level name to bit table of this site.
    """

    pipeline_name: str
    worker_type: str
    pidfile_path: Path
    polling_interval: float = 60.0
    severity_threshold: int = 0
    accession_prefix: str = ""
    run_mode: RunMode = RunMode.FOREVER
    admin_email: str = ""
    work_dir: Path | None = None
    termination_signal: int = signal.SIGUSR1
    handshake_timeout: float = 5.0
    severity_levels: dict[str, int] = field(default_factory=dict)

    @property
    def marker(self) -> str:
        """Command-line token identifying this worker's process."""
        return process_marker(self.pipeline_name, self.worker_type)

    @classmethod
    def from_mapping(cls, attributes: Mapping[str, Any]) -> WorkerConfig:
        values = dict(attributes)
        values["pidfile_path"] = Path(values["pidfile_path"])
        if values.get("work_dir") is not None:
            values["work_dir"] = Path(values["work_dir"])
        if "run_mode" in values:
            values["run_mode"] = RunMode(values["run_mode"])
        return cls(**values)

    def to_options(self) -> list[str]:
        """Render as run_daemon command-line options."""
        options = [
            "--worker-type", self.worker_type,
            "--pipeline", self.pipeline_name,
            "--pidfile", str(self.pidfile_path),
            "--polling-interval", f"{self.polling_interval:g}",
            "--severity-threshold", str(self.severity_threshold),
            "--accession-prefix", self.accession_prefix,
            "--run-mode", self.run_mode.value,
            "--stop-signal", str(int(self.termination_signal)),
            "--handshake-timeout", f"{self.handshake_timeout:g}",
        ]
        if self.admin_email:
            options += ["--admin-email", self.admin_email]
        if self.work_dir is not None:
            options += ["--work-dir", str(self.work_dir)]
        return options


class BaseWorker(ABC):
    """
    Abstract base class for checker daemons.

    Subclasses implement `poll()` and define a `name` attribute matching the
    type name pipelines refer to.

    Lifecycle of `run()`:
        setup() → publish pid (handshake) → poll loop → teardown()

    The loop stops when the termination signal arrives, or in ONCE mode as
    soon as a poll handles nothing.
    """

    name: str = "base"
    sleep_slice: float = 1.0
    handshake_check_interval: float = 0.25

    def __init__(self, config: WorkerConfig, sleep: Callable[[float], None] = time.sleep) -> None:
        self.config = config
        self._sleep = sleep
        self._stop_requested = False

    @classmethod
    def configure(cls, attributes: WorkerConfig | Mapping[str, Any]) -> BaseWorker:
        """
        Build a worker from a WorkerConfig or a plain attribute mapping.

        A mapping without ``worker_type`` configures a worker of this class.
        """
        if not isinstance(attributes, WorkerConfig):
            values = dict(attributes)
            values.setdefault("worker_type", cls.name)
            attributes = WorkerConfig.from_mapping(values)
        return cls(attributes)

    @abstractmethod
    def poll(self) -> int:
        """
        Handle whatever work is pending.

        Returns:
            Number of work units handled; 0 means the worker is idle.
        """
        ...

    def setup(self) -> None:
        """Prepare resources before the pid is published."""

    def teardown(self) -> None:
        """Release resources after the loop ends."""

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self, signum=None, frame=None) -> None:
        if not self._stop_requested:
            logger.info("%s: stop requested (signal %s)", self.config.marker, signum)
        self._stop_requested = True

    def run(self) -> int:
        """
        Run until stopped.

        Returns:
            Total number of work units handled.
        """
        previous_handler = signal.signal(self.config.termination_signal, self.request_stop)
        handled_total = 0
        try:
            self.setup()
            write_pidfile(self.config.pidfile_path)
            logger.info(
                "%s started (mode=%s, interval=%ss)",
                self.config.marker,
                self.config.run_mode.value,
                self.config.polling_interval,
            )

            while not self._stop_requested:
                handled = self._poll_safely()
                handled_total += handled
                if handled:
                    continue
                if self.config.run_mode is RunMode.ONCE:
                    logger.info("%s: no work left, exiting", self.config.marker)
                    break
                self._idle(self.config.polling_interval)
        finally:
            self._release_pidfile()
            self.teardown()
            signal.signal(self.config.termination_signal, previous_handler)

        logger.info("%s stopped after %d work units", self.config.marker, handled_total)
        return handled_total

    def _release_pidfile(self) -> None:
        # Leave the orchestrator time to read a pid published just before exit.
        path = Path(self.config.pidfile_path)
        waited = 0.0
        while path.exists() and waited < self.config.handshake_timeout:
            self._sleep(self.handshake_check_interval)
            waited += self.handshake_check_interval
        remove_pidfile(path)

    def _poll_safely(self) -> int:
        try:
            return self.poll()
        except Exception:
            logger.exception("%s: poll failed", self.config.marker)
            return 0

    def _idle(self, seconds: float) -> None:
        remaining = seconds
        while remaining > 0 and not self._stop_requested:
            step = min(self.sleep_slice, remaining)
            self._sleep(step)
            remaining -= step

"""
Liveness monitor.

Polls the daemons spawned by this invocation and reconciles their registry
rows when they disappear. Checking never signals or otherwise touches the
process.

Each daemon is followed through a psutil handle taken on first sight, and its
own registry row is closed by instance id, so a pid recycled by an unrelated
process (or claimed by a row of another launcher) is never mistaken for it.
"""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Callable, Iterable

import psutil

from apps.daemons.dtos import SpawnedDaemon
from apps.daemons.models import EndReason
from apps.daemons.processes import get_process, process_alive
from apps.daemons.registry import DaemonRegistry

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """
    Watch a set of spawned daemons until they exit.

    Each daemon is reconciled at most once per monitor, however many times it
    is seen dead.
    """

    def __init__(
        self,
        registry: DaemonRegistry | None = None,
        interval: float = 2.0,
        attach: Callable[[int], psutil.Process | None] = get_process,
        alive: Callable[[psutil.Process], bool] = process_alive,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.registry = registry or DaemonRegistry()
        self.interval = interval
        self.attach = attach
        self.alive = alive
        self._sleep = sleep
        self._handles: dict[int, psutil.Process | None] = {}
        self.dead: set[int] = set()

    def _handle(self, daemon: SpawnedDaemon) -> psutil.Process | None:
        if daemon.instance_id not in self._handles:
            self._handles[daemon.instance_id] = self.attach(daemon.pid)
        return self._handles[daemon.instance_id]

    def poll_once(self, daemons: Iterable[SpawnedDaemon]) -> list[SpawnedDaemon]:
        """
        Check every daemon not yet known dead.

        Returns:
            Daemons seen dead for the first time in this round.
        """
        newly_dead = []
        for daemon in daemons:
            if daemon.instance_id in self.dead:
                continue
            handle = self._handle(daemon)
            if handle is not None and self.alive(handle):
                continue
            logger.info("%s (pid %s) is dead", daemon.marker, daemon.pid)
            self.registry.reconcile_id(daemon.instance_id, EndReason.EXITED)
            self.dead.add(daemon.instance_id)
            newly_dead.append(daemon)
        return newly_dead

    def all_dead(self, daemons: Iterable[SpawnedDaemon]) -> bool:
        return all(daemon.instance_id in self.dead for daemon in daemons)

    def watch(
        self,
        daemons: Iterable[SpawnedDaemon],
        exit_when_done: bool,
        children: Iterable[subprocess.Popen] = (),
    ) -> None:
        """
        Poll until every daemon is reconciled (exit_when_done) or forever.

        Args:
            daemons: Daemons whose handshake succeeded in this invocation.
            exit_when_done: Return once all daemons are reconciled. When False
                this method never returns; the launcher keeps the foreground.
            children: Popen handles of spawned processes, reaped every round
                so exited daemons do not linger as zombies.
        """
        daemons = list(daemons)
        children = list(children)
        logger.info("Waiting for %d daemon processes...", len(daemons))
        for daemon in daemons:
            self._handle(daemon)

        while True:
            for child in children:
                child.poll()
            self.poll_once(daemons)

            if self.all_dead(daemons):
                if exit_when_done:
                    logger.info("All daemon processes have exited")
                    return
            self._sleep(self.interval)

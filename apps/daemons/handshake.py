"""
Spawn handshake.

A daemon may re-exec or detach before it is ready, so the pid returned by the
spawn call is not trusted. Instead:

1. the orchestrator allocates a unique rendezvous path before spawning;
2. the daemon, once initialised, writes its own pid as the first line;
3. the orchestrator waits a bounded time for a valid pid, then deletes the file.

A daemon removes the file itself on exit if the orchestrator has not.
"""

from __future__ import annotations

import logging
import os
import re
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from apps.daemons.exceptions import HandshakeFailed

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_filename(part: str) -> str:
    return _UNSAFE_CHARS.sub("_", part) or "_"


def write_pidfile(path: Path | str, pid: int | None = None) -> None:
    """
    Worker side of the handshake: publish ``pid`` (default: our own) at ``path``.

    Written to a sibling temp file first and renamed, so a reader never sees
    a partially written pid.
    """
    path = Path(path)
    pid = os.getpid() if pid is None else pid
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    tmp.write_text(f"{pid}\n")
    os.replace(tmp, path)


def remove_pidfile(path: Path | str) -> None:
    Path(path).unlink(missing_ok=True)


def read_pid(path: Path) -> int:
    """
    Read the pid from the first line of ``path``.

    Raises:
        HandshakeFailed: If the file is missing, empty or not a pid.
    """
    try:
        with open(path) as fh:
            first_line = fh.readline().strip()
    except OSError as exc:
        raise HandshakeFailed(path, f"could not open pid file: {exc.strerror or exc}") from exc

    if not first_line:
        raise HandshakeFailed(path, "pid file is empty")
    try:
        pid = int(first_line)
    except ValueError:
        raise HandshakeFailed(path, f"pid file does not hold a pid: {first_line!r}") from None
    if pid <= 0:
        raise HandshakeFailed(path, f"invalid pid {pid}")
    return pid


class SpawnHandshake:
    """
    Orchestrator side of the handshake.

    Args:
        base_dir: Directory shared with the daemons being spawned.
        timeout: Upper bound in seconds on waiting for a daemon's pid.
        poll_interval: Seconds between looks at the rendezvous file.
    """

    def __init__(
        self,
        base_dir: Path,
        timeout: float = 5.0,
        poll_interval: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_dir = Path(base_dir)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def allocate(self, pipeline_name: str, worker_type: str) -> Path:
        """Return a fresh rendezvous path; the file itself is not created."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        name = f"{safe_filename(pipeline_name)}.{safe_filename(worker_type)}.{uuid.uuid4().hex}.pid"
        return self.base_dir / name

    def deadline(self) -> float:
        """Clock value by which a daemon spawned now must have published its pid."""
        return self._clock() + self.timeout

    def wait_for_pid(self, path: Path, deadline: float | None = None) -> int:
        """
        Wait until ``deadline`` (default: ``timeout`` seconds from now) for a
        daemon to publish its pid.

        Callers that spawn several daemons before reading their handshakes
        pass the deadline taken when each one was spawned.

        Returns:
            The pid read from the file. The file is deleted.

        Raises:
            HandshakeFailed: If no valid pid appeared in time. The file, if
                any, is left for the daemon to clean up.
        """
        if deadline is None:
            deadline = self.deadline()
        while True:
            try:
                pid = read_pid(path)
            except HandshakeFailed:
                if self._clock() >= deadline:
                    break
                self._sleep(self.poll_interval)
                continue
            remove_pidfile(path)
            return pid

        # One last read to report the precise reason.
        pid = read_pid(path)
        remove_pidfile(path)
        return pid

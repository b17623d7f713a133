"""
Advisory supervisor lock.

Only one orchestrator invocation at a time may terminate daemons or spawn new
ones, otherwise two launchers could both read "nothing running" and
double-spawn. The lock is an exclusive flock on a file in the run directory;
the kernel drops it when the holder exits, so a crashed launcher never leaves
it stuck.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from apps.daemons.exceptions import SupervisorBusy

logger = logging.getLogger(__name__)


def _try_lock(fh) -> bool:
    try:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


def _read_holder(fh) -> str:
    fh.seek(0)
    return fh.read().strip()


@contextmanager
def supervisor_lock(
    path: Path,
    timeout: float = 30.0,
    poll_interval: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Iterator[Path]:
    """
    Hold the supervisor lock for the duration of the ``with`` block.

    Raises:
        SupervisorBusy: If the lock is still held by someone else after
            ``timeout`` seconds.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = open(path, "a+")
    try:
        deadline = clock() + timeout
        while not _try_lock(fh):
            if clock() >= deadline:
                raise SupervisorBusy(path, _read_holder(fh))
            logger.info("Waiting for supervisor lock %s", path)
            sleep(poll_interval)

        fh.seek(0)
        fh.truncate()
        fh.write(str(os.getpid()))
        fh.flush()
        logger.debug("Acquired supervisor lock %s", path)
        try:
            yield path
        finally:
            fh.seek(0)
            fh.truncate()
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
            logger.debug("Released supervisor lock %s", path)
    finally:
        fh.close()

"""
Process checks built on psutil.

- is_alive / process_alive: non-destructive existence checks used by the
  liveness monitor and the termination wait loop. Anything that cannot prove
  the process is alive (missing, zombie, access denied) counts as gone.
  process_alive works on a handle taken earlier, so a pid reused by a newer
  process also counts as gone.
- carries_marker: identity check before signalling. A pid is only ours if its
  command line contains the "<pipeline>.<daemon_type>" marker as a token.
- send_signal: delivers a signal through psutil, which refuses to signal a
  pid that was reused since the Process handle was created.
"""

from __future__ import annotations

import logging

import psutil

logger = logging.getLogger(__name__)


def process_alive(proc: psutil.Process) -> bool:
    """Return True only if the process behind ``proc`` runs and is not a zombie."""
    try:
        # is_running() also compares the create time against the handle's.
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return False
    except psutil.AccessDenied:
        logger.warning("Access denied probing pid %s; treating it as gone", proc.pid)
        return False


def is_alive(pid: int) -> bool:
    """Return True only if ``pid`` is a running, non-zombie process."""
    try:
        proc = psutil.Process(pid)
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return False
    except psutil.AccessDenied:
        logger.warning("Access denied probing pid %s; treating it as gone", pid)
        return False
    return process_alive(proc)


def get_process(pid: int) -> psutil.Process | None:
    """Return a psutil handle for a live process, or None."""
    try:
        proc = psutil.Process(pid)
        if proc.status() == psutil.STATUS_ZOMBIE:
            return None
        return proc
    except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
        return None


def carries_marker(proc: psutil.Process, marker: str) -> bool:
    """Return True if ``marker`` is one of the process's command-line tokens."""
    try:
        cmdline = proc.cmdline()
    except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
        return False
    return marker in cmdline


def send_signal(proc: psutil.Process, signal_number: int) -> bool:
    """
    Send ``signal_number`` to ``proc``.

    Returns:
        False if the process disappeared before it could be signalled.

    Raises:
        psutil.AccessDenied: If the process exists but may not be signalled.
    """
    try:
        proc.send_signal(signal_number)
    except psutil.NoSuchProcess:
        return False
    return True

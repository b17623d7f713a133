"""
Daemon orchestration settings.

Read once from Django settings at the command entry point and passed to each
component, so the supervisor, monitor and termination controller never look
settings up on their own.
"""

from __future__ import annotations

import os
import signal
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

SPAWN_MODES = ("serial", "pipelined")


def parse_signal(value: str | int) -> int:
    """Accept a signal number or a name such as 'SIGUSR1' / 'USR1'."""
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if text.isdigit():
        return int(text)
    if not text.startswith("SIG"):
        text = f"SIG{text}"
    try:
        return int(getattr(signal, text))
    except AttributeError:
        raise ValueError(f"Unknown signal: {value}") from None


@dataclass(frozen=True)
class DaemonSettings:
    """Site settings the orchestrator components need."""

    base_dir: Path
    run_dir: Path
    handshake_dir: Path
    log_dir: Path
    work_dir: Path
    handshake_timeout: float = 5.0
    handshake_poll_interval: float = 0.25
    monitor_interval: float = 2.0
    termination_interval: float = 5.0
    termination_rounds: int = 16
    termination_signal: int = signal.SIGUSR1
    spawn_mode: str = "serial"
    lock_timeout: float = 30.0
    admin_email: str = ""
    severity_levels: dict[str, int] = field(default_factory=dict)
    settings_module: str = "config.settings"
    python_executable: str = sys.executable

    def __post_init__(self):
        if self.spawn_mode not in SPAWN_MODES:
            raise ValueError(
                f"Invalid spawn mode '{self.spawn_mode}'. Use one of: {', '.join(SPAWN_MODES)}"
            )

    @property
    def lock_path(self) -> Path:
        return self.run_dir / "supervisor.lock"

    @classmethod
    def from_django(cls, **overrides: Any) -> DaemonSettings:
        """Build settings from django.conf.settings, applying ``overrides``."""
        from django.conf import settings

        base_dir = Path(settings.BASE_DIR)
        run_dir = Path(getattr(settings, "DAEMON_RUN_DIR", base_dir / "var" / "run"))
        values: dict[str, Any] = {
            "base_dir": base_dir,
            "run_dir": run_dir,
            "handshake_dir": Path(getattr(settings, "DAEMON_HANDSHAKE_DIR", run_dir / "handshake")),
            "log_dir": Path(getattr(settings, "DAEMON_LOG_DIR", base_dir / "var" / "log")),
            "work_dir": Path(getattr(settings, "DAEMON_WORK_DIR", base_dir / "var" / "submissions")),
            "handshake_timeout": float(getattr(settings, "DAEMON_HANDSHAKE_TIMEOUT", 5.0)),
            "monitor_interval": float(getattr(settings, "DAEMON_MONITOR_INTERVAL", 2.0)),
            "termination_interval": float(getattr(settings, "DAEMON_TERMINATION_INTERVAL", 5.0)),
            "termination_rounds": int(getattr(settings, "DAEMON_TERMINATION_ROUNDS", 16)),
            "termination_signal": parse_signal(
                getattr(settings, "DAEMON_TERMINATION_SIGNAL", "SIGUSR1")
            ),
            "spawn_mode": getattr(settings, "DAEMON_SPAWN_MODE", "serial"),
            "lock_timeout": float(getattr(settings, "DAEMON_LOCK_TIMEOUT", 30.0)),
            "admin_email": getattr(settings, "DAEMON_ADMIN_EMAIL", ""),
            "severity_levels": dict(getattr(settings, "CHECKER_SEVERITY_LEVELS", {})),
            "settings_module": os.environ.get("DJANGO_SETTINGS_MODULE", "config.settings"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

"""
Reference checker daemon that triages submission files.

Files dropped into <work_dir>/<pipeline>/incoming are checked and moved to
accepted/ or rejected/. A file is rejected when it has an issue whose level
is part of the pipeline's severity threshold.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from apps.daemons.workers.base import BaseWorker

logger = logging.getLogger(__name__)


@dataclass
class FileIssue:
    level: str
    message: str


class FileChecker(BaseWorker):
    """
    Check incoming submission files for basic problems.

    Issues:
        ERROR: file is empty, or is not valid UTF-8 text.
        WARN: file name does not start with the pipeline's accession prefix.
    """

    name = "FileChecker"

    def setup(self) -> None:
        if self.config.work_dir is None:
            raise ValueError("FileChecker needs a work_dir")
        root = Path(self.config.work_dir) / self.config.pipeline_name
        self.incoming = root / "incoming"
        self.accepted = root / "accepted"
        self.rejected = root / "rejected"
        for directory in (self.incoming, self.accepted, self.rejected):
            directory.mkdir(parents=True, exist_ok=True)

    def poll(self) -> int:
        handled = 0
        for path in self._pending_files():
            if self.stop_requested:
                break
            self._triage(path)
            handled += 1
        return handled

    def _pending_files(self) -> list[Path]:
        return sorted(
            p for p in self.incoming.iterdir() if p.is_file() and not p.name.startswith(".")
        )

    def check_file(self, path: Path) -> list[FileIssue]:
        issues = []
        data = path.read_bytes()
        if not data:
            issues.append(FileIssue("ERROR", "file is empty"))
        else:
            try:
                data.decode("utf-8")
            except UnicodeDecodeError as exc:
                issues.append(FileIssue("ERROR", f"not UTF-8 text ({exc.reason} at byte {exc.start})"))

        prefix = self.config.accession_prefix
        if prefix and not path.name.startswith(prefix):
            issues.append(FileIssue("WARN", f"name does not start with accession prefix {prefix}"))
        return issues

    def is_blocking(self, issue: FileIssue) -> bool:
        return bool(self.config.severity_levels.get(issue.level, 0) & self.config.severity_threshold)

    def _triage(self, path: Path) -> None:
        issues = self.check_file(path)
        blocking = [issue for issue in issues if self.is_blocking(issue)]
        destination = self.rejected if blocking else self.accepted
        os.replace(path, destination / path.name)

        if blocking:
            logger.warning(
                "%s: rejected %s: %s",
                self.config.marker,
                path.name,
                "; ".join(f"[{i.level}] {i.message}" for i in blocking),
            )
        else:
            logger.info("%s: accepted %s (%d non-blocking issues)", self.config.marker, path.name, len(issues))

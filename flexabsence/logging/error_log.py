from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Per-run error log for imports and roster operations.

Every failed report kind or aborted roster operation becomes one JSON line (fixed key
set, see ``ErrorRecord``) in ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC). The CLI runs once
a day, so old files are pruned after each flush and only the newest ``MAX_LOG_FILES``
are kept.
"""

__all__ = [
    "ErrorLogBuffer",
    "ErrorRecord",
    "MAX_LOG_FILES",
    "prune_error_logs",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
LOG_GLOB = "errors-*.log"
MAX_LOG_FILES = 30


def prune_error_logs(logs_dir: Path, keep: int = MAX_LOG_FILES) -> list[Path]:
    """Delete all but the newest ``keep`` error logs in ``logs_dir``; return what was removed.

    File names carry a sortable UTC stamp, so name order is age order.
    """
    if keep < 1:
        raise ValueError(f"keep must be at least 1, got {keep}")
    if not logs_dir.is_dir():
        return []
    files = sorted(logs_dir.glob(LOG_GLOB))
    stale = files[:-keep]
    for path in stale:
        path.unlink(missing_ok=True)
    return stale


class ErrorLogBuffer:
    """Collects the run's error records until ``flush()``.

    The file name is stamped on first flush and reused afterwards, so a run that flushes
    twice still produces one file.
    """

    def __init__(self, logs_dir: Path | None = None, keep: int = MAX_LOG_FILES) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._keep = keep

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def counts(self) -> Counter[tuple[str, str]]:
        """Buffered records grouped by ``(operation, table)``."""
        return Counter((r.operation, r.table) for r in self._records)

    def describe(self) -> str:
        """One-line breakdown, e.g. ``import[2nd period default]=1, enrich[11.3 flex absences]=1``."""
        return ", ".join(
            f"{operation}[{table or '-'}]={n}" for (operation, table), n in sorted(self.counts().items())
        )

    def flush(self) -> Path | None:
        """Write buffered records, then prune old logs. Returns the file, or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        prune_error_logs(self._logs_dir, self._keep)
        return fp

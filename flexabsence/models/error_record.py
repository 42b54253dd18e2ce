from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

Structured error record written as JSON Lines by ``ErrorLogBuffer``. ``row`` is the
1-based table row the failure relates to, or -1 for table-level / report-level errors
where no single row is at fault.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        operation: Command that failed (import / enrich / sync-comments)
        table: Table (or report kind) being processed
        row: Row number (1-based). Use -1 when the row is unknown
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human-readable description
    """
    timestamp: str  # ISO8601 UTC
    operation: str
    table: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(operation: str, table: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            operation=operation,
            table=table,
            row=row,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def error_type_for(exc: BaseException) -> str:
        """Map an exception class name to UPPER_SNAKE (``NoAttachment`` -> ``NO_ATTACHMENT``)."""
        name = type(exc).__name__
        out = []
        for i, ch in enumerate(name):
            if ch.isupper() and i > 0 and not name[i - 1].isupper():
                out.append("_")
            out.append(ch.upper())
        return "".join(out)

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .canonical_record import ValidationWarning

"""ErrorRecord model for the JSON Lines error log.

ErrorRecord is the structured form of every validation warning and file-level
failure of a run. It supports row=-1 as a sentinel value for file-level and
sheet-level entries where no specific row applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source filename being processed
        sheet: Sheet name within the file (``<FILE_LEVEL>`` for file-level errors)
        row: Row number (1-based). Use -1 when the row is unknown / not applicable
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def from_warning(file: str, warning: ValidationWarning) -> ErrorRecord:
        return ErrorRecord.create(
            file=file,
            sheet=warning.sheet_name,
            row=warning.row_index,
            error_type=warning.warning_type,
            message=warning.message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON Lines entry (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""Source file models and FileStatus enum for indicator-sync.

FileInfo is one entry of a directory listing supplied by the file-transfer
side; FileRecord is what the File Change Tracker persists about a file once it
has been processed successfully.
"""


class FileStatus(Enum):
    """Per-file outcome reported in the run summary.

    - PROCESSED: pipeline finished (normalize → match → assemble → upload → commit)
    - SKIPPED_UNCHANGED: file already committed with the same size / mtime
    - FAILED: parse, upload or unexpected error; not committed, retried next run
    """
    PROCESSED = "processed"
    SKIPPED_UNCHANGED = "skipped_unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class FileInfo:
    """One file from the current listing."""
    name: str  # File name, the tracker key
    size: int  # Bytes
    modified_time: datetime  # UTC-aware mtime
    path: Path | None = None  # Local path for reading (None in pure classification tests)


@dataclass(frozen=True)
class FileRecord:
    """Durable tracking entry for a previously processed file."""
    name: str
    size: int
    modified_time: datetime
    last_processed_at: datetime | None = None

    def matches(self, info: FileInfo) -> bool:
        """True when ``info`` has the same size and modification time."""
        return self.size == info.size and self.modified_time == info.modified_time

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "size": self.size,
            "modified_time": self.modified_time.isoformat(),
            "last_processed_at": (
                self.last_processed_at.isoformat() if self.last_processed_at else None
            ),
        }

    @staticmethod
    def from_dict(data: dict[str, object]) -> FileRecord:
        processed = data.get("last_processed_at")
        return FileRecord(
            name=str(data["name"]),
            size=int(data["size"]),  # type: ignore[arg-type]
            modified_time=datetime.fromisoformat(str(data["modified_time"])),
            last_processed_at=datetime.fromisoformat(str(processed)) if processed else None,
        )

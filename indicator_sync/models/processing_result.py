from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .match_result import MatchStats
from .payload import ImportSummary
from .source_file import FileStatus

"""Processing result models for indicator-sync.

FileOutcome is the per-file line of the run summary; RunResult aggregates the
outcomes of one run (including partial failures).
"""


@dataclass(frozen=True)
class FileOutcome:
    """Per-file processing outcome."""
    file_name: str
    status: FileStatus
    profile: str | None = None  # Sheet-parsing profile selected for the file
    records: int = 0  # Canonical records produced
    warnings: int = 0  # Validation warnings recorded
    match_stats: MatchStats | None = None
    import_summary: ImportSummary | None = None
    elapsed_seconds: float = 0.0
    error: str | None = None  # Failure reason (FAILED only)


@dataclass(frozen=True)
class RunResult:
    """Aggregated results of one sync run."""
    processed_files: int
    skipped_files: int
    failed_files: int
    total_records: int
    total_warnings: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    outcomes: list[FileOutcome] | None = None

    @property
    def total_files(self) -> int:
        return self.processed_files + self.skipped_files + self.failed_files

    @property
    def match_totals(self) -> MatchStats:
        """Sum of per-payload match statistics over processed files."""
        exact = partial = none = 0
        for o in self.outcomes or []:
            if o.match_stats is not None:
                exact += o.match_stats.exact
                partial += o.match_stats.partial
                none += o.match_stats.none
        return MatchStats(exact=exact, partial=partial, none=none)

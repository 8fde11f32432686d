from __future__ import annotations

from ..models.processing_result import FileOutcome, RunResult
from ..models.source_file import FileStatus

"""Summary line rendering.

Format of the run summary (one line, logged at SUMMARY level)::

    SUMMARY files=<n> processed=<p> skipped=<s> failed=<f> records=<r>
    warnings=<w> exact=<e> partial=<pa> unmatched=<u> elapsed_sec=<t>

plus one ``file=<name> status=<status> ...`` line per file.
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
    "render_file_line",
]


def format_seconds(value: float) -> str:
    """Render seconds without scientific notation; whole numbers without decimals.

    >>> format_seconds(2.0)
    '2'
    >>> format_seconds(0.0004)
    '0.0004'
    """
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    totals = result.match_totals
    return (
        f"SUMMARY files={result.total_files} "
        f"processed={result.processed_files} "
        f"skipped={result.skipped_files} "
        f"failed={result.failed_files} "
        f"records={result.total_records} "
        f"warnings={result.total_warnings} "
        f"exact={totals.exact} "
        f"partial={totals.partial} "
        f"unmatched={totals.none} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )


def render_file_line(outcome: FileOutcome) -> str:
    parts = [f"file={outcome.file_name}", f"status={outcome.status.value}"]
    if outcome.profile is not None:
        parts.append(f"profile={outcome.profile}")
    if outcome.status is not FileStatus.SKIPPED_UNCHANGED:
        parts.append(f"records={outcome.records}")
        parts.append(f"warnings={outcome.warnings}")
    if outcome.match_stats is not None:
        s = outcome.match_stats
        parts.append(f"exact={s.exact} partial={s.partial} unmatched={s.none}")
    if outcome.import_summary is not None:
        i = outcome.import_summary
        parts.append(
            f"imported={i.imported} updated={i.updated} ignored={i.ignored} deleted={i.deleted}"
        )
    if outcome.error is not None:
        parts.append(f"error={outcome.error!r}")
    return " ".join(parts)

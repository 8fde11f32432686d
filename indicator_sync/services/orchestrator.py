from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from pathlib import Path

from ..db.tracker_store import TrackerIOError, TrackerStore
from ..excel.normalizer import normalize
from ..excel.reader import ParseError, read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import SyncConfig
from ..models.error_record import ErrorRecord
from ..models.processing_result import FileOutcome, RunResult
from ..models.source_file import FileInfo, FileStatus
from .assembler import assemble
from .file_tracker import classify, commit
from .matcher import match
from .progress import ProgressTracker
from .summary import render_file_line
from .upload import UploadError, Uploader

"""Service orchestration for the indicator sync run.

One run:

1. list the source directory and load the tracker store
2. classify files; unchanged files are reported as skipped
3. run each new/changed file through
   read -> normalize -> match -> assemble -> upload -> commit
4. aggregate outcomes into a RunResult and flush the error log once

A file-level failure (ParseError, UploadError, anything unexpected) marks that
file FAILED and never aborts its siblings; the file is not committed and is
retried next run. TrackerIOError aborts the whole run.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessingError",
    "scan_source_files",
    "process_file",
    "run_sync",
]

FILE_LEVEL = "<FILE_LEVEL>"


class ProcessingError(Exception):
    """Fatal run-level error (source directory missing or unreadable)."""


def scan_source_files(directory: Path, extensions: tuple[str, ...]) -> list[FileInfo]:
    """List matching files in ``directory`` (non-recursive, sorted by name).

    Raises:
        ProcessingError: If the directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    wanted = {e.lower() for e in extensions}
    try:
        files = []
        for p in sorted(directory.iterdir(), key=lambda p: p.name):
            if not p.is_file() or p.suffix.lower() not in wanted or p.name.startswith("~$"):
                continue
            st = p.stat()
            files.append(
                FileInfo(
                    name=p.name,
                    size=st.st_size,
                    modified_time=datetime.fromtimestamp(st.st_mtime, UTC),
                    path=p,
                )
            )
        return files
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _failed(info: FileInfo, error_type: str, message: str, error_log: ErrorLogBuffer, started: float) -> FileOutcome:
    error_log.append(ErrorRecord.create(info.name, FILE_LEVEL, -1, error_type, message))
    return FileOutcome(
        file_name=info.name,
        status=FileStatus.FAILED,
        elapsed_seconds=time.perf_counter() - started,
        error=message,
    )


def process_file(
    info: FileInfo,
    config: SyncConfig,
    store: TrackerStore,
    uploader: Uploader | None,
    error_log: ErrorLogBuffer,
    dry_run: bool = False,
    now: datetime | None = None,
    abort: threading.Event | None = None,
) -> FileOutcome:
    """Run one file through the pipeline.

    Once ``abort`` is set the file is neither uploaded nor committed; it comes
    back FAILED and stays new/changed for the next run.

    Raises:
        TrackerIOError: the commit could not be persisted (run-level failure)
    """
    started = time.perf_counter()
    path = info.path or Path(config.source_directory) / info.name
    try:
        workbook = read_workbook(path)
        normalized = normalize(workbook, info.name, config.parsing)
        error_log.extend([ErrorRecord.from_warning(info.name, w) for w in normalized.warnings])

        report = match(config.vocabulary, normalized.records, config.matching)
        if report.stats.none:
            logger.warning(
                "file=%s unmatched indicators=%d of %d (submitted as %s)",
                info.name,
                report.stats.none,
                report.stats.total,
                "0" if config.report.submit_unmatched else "omitted",
            )
        payload = assemble(
            report.results,
            config.report,
            provenance={
                "sourceFile": info.name,
                "profile": normalized.profile,
                "recordsProcessed": len(normalized.records),
                "warnings": len(normalized.warnings),
            },
            now=now,
        )

        import_summary = None
        if not dry_run:
            if uploader is None:
                raise UploadError("no uploader configured")
            if abort is not None and abort.is_set():
                return _failed(info, "ABORTED", "run aborted before upload", error_log, started)
            import_summary = uploader.upload(payload)
            if abort is not None and abort.is_set():
                return _failed(info, "ABORTED", "run aborted before commit", error_log, started)
            commit(store, info, now or datetime.now(UTC))
    except TrackerIOError:
        if abort is not None:
            abort.set()
        raise
    except ParseError as e:
        return _failed(info, "PARSE_ERROR", str(e), error_log, started)
    except UploadError as e:
        return _failed(info, "UPLOAD_ERROR", str(e), error_log, started)
    except Exception as e:
        logger.exception("unexpected failure file=%s", info.name)
        return _failed(info, "PROCESSING_ERROR", f"{type(e).__name__}: {e}", error_log, started)

    return FileOutcome(
        file_name=info.name,
        status=FileStatus.PROCESSED,
        profile=normalized.profile,
        records=len(normalized.records),
        warnings=len(normalized.warnings),
        match_stats=payload.match_stats,
        import_summary=import_summary,
        elapsed_seconds=time.perf_counter() - started,
    )


def _run_parallel(
    files: list[FileInfo],
    config: SyncConfig,
    store: TrackerStore,
    uploader: Uploader | None,
    error_log: ErrorLogBuffer,
    dry_run: bool,
    now: datetime | None,
    progress: ProgressTracker,
) -> dict[str, FileOutcome]:
    outcomes: dict[str, FileOutcome] = {}
    abort = threading.Event()
    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        futures: dict[Future[FileOutcome], FileInfo] = {
            pool.submit(process_file, info, config, store, uploader, error_log, dry_run, now, abort): info
            for info in files
        }
        pending = set(futures)
        while pending:
            done, pending = wait(pending, return_when=FIRST_EXCEPTION)
            for fut in done:
                exc = fut.exception()
                if exc is not None:
                    abort.set()
                    for other in pending:
                        other.cancel()
                    raise exc
                outcome = fut.result()
                outcomes[outcome.file_name] = outcome
                logger.info(render_file_line(outcome))
                progress.finish_file(outcome.file_name, status=outcome.status.value)
    return outcomes


def run_sync(
    config: SyncConfig,
    store: TrackerStore,
    uploader: Uploader | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Process every new or changed file of the source directory.

    Raises:
        ProcessingError: source directory missing / unreadable
        TrackerIOError: tracker store unreadable or a commit failed
    """
    start_time = datetime.now(UTC)
    started = time.perf_counter()
    error_log = error_log if error_log is not None else ErrorLogBuffer()

    listing = scan_source_files(Path(config.source_directory), config.file_extensions)
    known = store.load()
    classification = classify(listing, known)
    logger.info(
        "files=%d new_or_changed=%d unchanged=%d",
        len(listing),
        len(classification.new_or_changed),
        len(classification.unchanged),
    )

    outcomes: dict[str, FileOutcome] = {}
    for info in classification.unchanged:
        outcomes[info.name] = FileOutcome(file_name=info.name, status=FileStatus.SKIPPED_UNCHANGED)
        logger.info(render_file_line(outcomes[info.name]))

    try:
        with ProgressTracker(len(classification.new_or_changed)) as progress:
            if config.max_workers > 1 and len(classification.new_or_changed) > 1:
                outcomes.update(
                    _run_parallel(
                        classification.new_or_changed,
                        config,
                        store,
                        uploader,
                        error_log,
                        dry_run,
                        now,
                        progress,
                    )
                )
            else:
                for info in classification.new_or_changed:
                    outcome = process_file(info, config, store, uploader, error_log, dry_run, now)
                    outcomes[info.name] = outcome
                    logger.info(render_file_line(outcome))
                    progress.finish_file(info.name, status=outcome.status.value)
    finally:
        try:
            log_path = error_log.flush()
        except OSError as e:
            logger.warning("failed to write error log: %s", e)
        else:
            if log_path is not None:
                logger.info("error log: %s", log_path)

    ordered = [outcomes[info.name] for info in listing if info.name in outcomes]
    end_time = datetime.now(UTC)
    return RunResult(
        processed_files=sum(1 for o in ordered if o.status is FileStatus.PROCESSED),
        skipped_files=sum(1 for o in ordered if o.status is FileStatus.SKIPPED_UNCHANGED),
        failed_files=sum(1 for o in ordered if o.status is FileStatus.FAILED),
        total_records=sum(o.records for o in ordered),
        total_warnings=sum(o.warnings for o in ordered),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=time.perf_counter() - started,
        outcomes=ordered,
    )

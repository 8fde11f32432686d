from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Protocol

from ..models.payload import ImportSummary, ValueSetPayload

"""Upload boundary.

The reporting backend's HTTP API is driven by a separate submitter; this side
only hands over finished value sets. OutboxUploader drops each payload as a
JSON document in the outbox directory.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "UploadError",
    "Uploader",
    "OutboxUploader",
]


class UploadError(Exception):
    pass


class Uploader(Protocol):
    def upload(self, payload: ValueSetPayload) -> ImportSummary:
        ...


def _safe_name(name: str) -> str:
    # The suffix stays in the name: report.xlsx and report.csv are distinct sources
    return re.sub(r"[^A-Za-z0-9_-]+", "_", Path(name).name).strip("_") or "payload"


class OutboxUploader:
    """Write payloads to ``output_directory/<source_name>-<period>.json``.

    ``report.xlsx`` lands in ``report_xlsx-<period>.json``. Two sources that
    still map to the same outbox file within one uploader's lifetime (e.g.
    ``a b.xlsx`` and ``a_b.xlsx``) are refused with UploadError rather than
    overwriting a payload that was already handed over.
    """

    def __init__(self, output_directory: Path, include_unmatched: bool = True) -> None:
        self.output_directory = Path(output_directory)
        self.include_unmatched = include_unmatched
        self._written: dict[Path, str] = {}  # outbox file -> source written to it
        self._lock = threading.Lock()

    def target_path(self, payload: ValueSetPayload) -> Path:
        source = str(payload.metadata.get("sourceFile") or payload.data_set)
        return self.output_directory / f"{_safe_name(source)}-{payload.period}.json"

    def _claim(self, target: Path, source: str) -> None:
        with self._lock:
            owner = self._written.setdefault(target, source)
        if owner != source:
            raise UploadError(f"outbox file {target.name} already holds the payload of {owner}")

    def upload(self, payload: ValueSetPayload) -> ImportSummary:
        body = payload.to_dict(include_unmatched=self.include_unmatched)
        target = self.target_path(payload)
        self._claim(target, str(payload.metadata.get("sourceFile") or payload.data_set))
        try:
            self.output_directory.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(body, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise UploadError(f"cannot write payload {target}: {e}") from e
        logger.debug("payload written path=%s values=%d", target, len(body["dataValues"]))
        return ImportSummary(imported=len(body["dataValues"]))

from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

One bar per run counting files through the pipeline. In non-TTY environments
(CI, cron, log capture) the bar is disabled so no ANSI control sequences end
up in the logs.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True when stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """File progress bar; a no-op when stdout is not a TTY."""

    def __init__(self, total_files: int, *, description: str = "Syncing files") -> None:
        self.total_files = total_files
        self.description = description
        self.completed = 0
        self.enabled = is_tty_enabled() and total_files > 0
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def finish_file(self, file_name: str, **stats: Any) -> None:
        """Advance the bar by one file and refresh the stats postfix."""
        self.completed += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_name})")
            if stats:
                self.pbar.set_postfix(**stats)
            self.pbar.update(1)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.set_description(self.description)
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

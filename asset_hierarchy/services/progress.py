from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for upload job polling (tqdm, TTY only).

In non-TTY environments (CI, piped output) the indicator is disabled so no
ANSI control sequences end up in logs.
"""

__all__ = [
    "PollProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class PollProgress:
    """Open-ended poll counter showing the latest job status as postfix."""

    def __init__(self, upload_id: str, *, description: str = "Waiting for import") -> None:
        self.upload_id = upload_id
        self.description = description
        self.polls = 0
        self.last_status: str | None = None

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=None,
                desc=f"{description} ({upload_id})",
                unit="poll",
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def update(self, status: str) -> None:
        """Record one poll result."""
        self.polls += 1
        self.last_status = status
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(status=status)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> PollProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

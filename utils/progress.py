"""Progress tracking module.

Wraps tqdm for progress-bar display during batch rendering.
"""

import logging
import sys

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Display and track progress for long-running operations.

    Can be used as a context manager::

        with ProgressTracker(total=len(files), description="Rendering") as p:
            for path in files:
                render(path)
                p.update()
    """

    def __init__(self, total: int, description: str = "Processing", unit: str = "file") -> None:
        """Initialise the progress tracker.

        Args:
            total: Total number of steps.
            description: Human-readable description shown alongside
                the progress bar.
            unit: Label for one step.
        """
        self.total = total
        self.description = description
        self._current = 0
        self._closed = False
        self._bar = tqdm(
            total=total,
            desc=description,
            unit=unit,
            file=sys.stderr,
        )

    @property
    def current(self) -> int:
        return self._current

    def update(self, n: int = 1) -> None:
        """Advance the progress bar by *n* steps."""
        if self._closed:
            return
        self._current += n
        self._bar.update(n)

    def set_description(self, desc: str) -> None:
        self.description = desc
        self._bar.set_description(desc)

    def close(self) -> None:
        """Close the progress bar and release resources."""
        if self._closed:
            return
        self._closed = True
        self._bar.close()
        logger.debug("%s: %d/%d step(s) done.", self.description, self._current, self.total)

    def __enter__(self) -> "ProgressTracker":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()

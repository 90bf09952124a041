"""
Progress reporting with cooperative cancellation.

Long-running loops (overlap graph construction, path extraction, contig
building, containment filtering) report progress through a
:class:`ProgressListener` and call :meth:`ProgressListener.check_canceled` at
batch boundaries. Canceling a listener makes the next check raise
:class:`~taxassemble.exceptions.CanceledError`.
"""

import logging
import threading
from typing import Optional

from tqdm import tqdm

from .exceptions import CanceledError

logger = logging.getLogger(__name__)


class ProgressListener:
    """
    Silent progress tracker; the base for visible progress reporters.

    All methods are safe to call from several worker threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._canceled = threading.Event()
        self.subtask: str = ""
        self.maximum: int = 0
        self.progress: int = 0

    def set_subtask(self, subtask: str) -> None:
        self.subtask = subtask
        logger.debug(f"Subtask: {subtask}")

    def set_maximum(self, maximum: int) -> None:
        with self._lock:
            self.maximum = maximum

    def set_progress(self, progress: int) -> None:
        """Set the absolute progress and check for cancellation."""
        self.check_canceled()
        with self._lock:
            self.progress = progress

    def increment_progress(self, amount: int = 1) -> None:
        """Advance the progress and check for cancellation."""
        self.check_canceled()
        with self._lock:
            self.progress += amount

    def cancel(self) -> None:
        """Request cancellation; running loops stop at their next check."""
        self._canceled.set()

    def is_canceled(self) -> bool:
        return self._canceled.is_set()

    def check_canceled(self) -> None:
        """
        Raises:
            CanceledError: If cancellation was requested.
        """
        if self._canceled.is_set():
            raise CanceledError(f"Canceled during: {self.subtask}" if self.subtask else "Operation canceled")

    def report_task_completed(self) -> None:
        pass

    def close(self) -> None:
        pass


class ProgressPercentage(ProgressListener):
    """Progress listener that draws a tqdm bar per subtask on stderr."""

    def __init__(self, disable: bool = False) -> None:
        super().__init__()
        self.disable = disable
        self._bar: Optional[tqdm] = None

    def set_subtask(self, subtask: str) -> None:
        super().set_subtask(subtask)
        self._close_bar()

    def set_maximum(self, maximum: int) -> None:
        super().set_maximum(maximum)
        with self._lock:
            self._close_bar()
            self._bar = tqdm(total=maximum, desc=self.subtask, disable=self.disable, leave=False)

    def set_progress(self, progress: int) -> None:
        super().set_progress(progress)
        with self._lock:
            if self._bar is not None:
                self._bar.n = progress
                self._bar.refresh()

    def increment_progress(self, amount: int = 1) -> None:
        super().increment_progress(amount)
        with self._lock:
            if self._bar is not None:
                self._bar.update(amount)

    def _close_bar(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def report_task_completed(self) -> None:
        with self._lock:
            self._close_bar()
        if self.subtask:
            logger.info(f"{self.subtask}: done")

    def close(self) -> None:
        with self._lock:
            self._close_bar()

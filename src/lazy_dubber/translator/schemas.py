"""Data structures for translation job processing."""

from typing import List

from lazy_dubber.common.schemas import BatchError, TranslationStatus
from lazy_dubber.common.utils import MathUtils


class JobQueueState:
    """Process-lifetime state of the current translation job."""

    def __init__(self):
        self.is_processing = False
        self.is_paused = False
        self.current_batch_index = 0
        self.total_batches = 0
        self.errors: List[BatchError] = []

    def start(self, total_batches: int) -> None:
        """Reset the state for a new job."""
        self.total_batches = total_batches
        self.current_batch_index = 0
        self.is_processing = True
        self.is_paused = False
        self.errors = []

    def record_error(self, batch_index: int, message: str) -> int:
        """
        Append an error record for a batch.

        Returns:
            Number of errors recorded for that batch so far
        """
        self.errors.append(BatchError(batch_index=batch_index, message=message))
        return self.error_count(batch_index)

    def error_count(self, batch_index: int) -> int:
        return sum(1 for error in self.errors if error.batch_index == batch_index)

    @property
    def progress(self) -> int:
        if self.total_batches == 0:
            return 0
        return MathUtils.calculate_rounded_progress(
            self.current_batch_index, self.total_batches
        )

    def to_status(self) -> TranslationStatus:
        return TranslationStatus(
            is_processing=self.is_processing,
            is_paused=self.is_paused,
            progress=self.progress,
            current_batch=self.current_batch_index,
            total_batches=self.total_batches,
            errors=list(self.errors),
        )

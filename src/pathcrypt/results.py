# src/pathcrypt/results.py
"""
Accumulation of per-file outcomes into the final OperationResult.
"""
import logging
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Tuple

from .models import FileOutcome, OperationResult


class ResultAggregator:
    """
    Thread-safe collector of FileOutcomes for one request.

    Entries the scan could not read never become tasks, but they are counted
    as failures in the summary: their files were left untouched.
    """

    def __init__(
        self,
        operation: str,
        total: int = 0,
        dry_run: bool = False,
        unreadable: Iterable[Tuple[Path, str]] = (),
    ):
        self.operation = operation
        self.total = total
        self.dry_run = dry_run
        self.unreadable: Tuple[Tuple[Path, str], ...] = tuple(unreadable)
        self.success_count = 0
        self.failed_count = 0
        self._outcomes: List[FileOutcome] = []
        self._lock = Lock()

    @property
    def completed(self) -> int:
        """Number of tasks processed so far (unreadable entries excluded)."""
        return self.success_count + self.failed_count

    def add(self, outcome: FileOutcome) -> int:
        """Records one outcome and returns the number of completed tasks."""
        with self._lock:
            self._outcomes.append(outcome)
            if outcome.success:
                self.success_count += 1
            else:
                self.failed_count += 1
            return self.completed

    def summarize(self, cancelled: bool = False) -> OperationResult:
        with self._lock:
            success_count, task_failures = self.success_count, self.failed_count
            outcomes = tuple(self._outcomes)

        unreadable_count = len(self.unreadable)
        failed_count = task_failures + unreadable_count
        if cancelled:
            skipped = max(self.total - success_count - task_failures, 0)
            message = (
                f"Cancelled: {success_count} succeeded, {failed_count} failed, "
                f"{skipped} not processed"
            )
        elif failed_count:
            message = f"Completed with warnings: {success_count} succeeded, {failed_count} failed"
        elif self.dry_run:
            message = f"Dry run: {success_count} file(s) would be {self.operation}ed"
        else:
            message = f"Successfully {self.operation}ed {success_count} file(s)"
        if unreadable_count:
            message += f" ({unreadable_count} unreadable)"

        logging.info(message)
        return OperationResult(
            success=failed_count == 0 and not cancelled,
            message=message,
            success_count=success_count,
            failed_count=failed_count,
            cancelled=cancelled,
            outcomes=outcomes,
            unreadable=self.unreadable,
        )

    @staticmethod
    def failed_to_start(reason: str) -> OperationResult:
        """Result for a request rejected before any file was touched."""
        return OperationResult(success=False, message=f"Failed to start: {reason}")

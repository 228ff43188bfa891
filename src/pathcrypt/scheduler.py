# src/pathcrypt/scheduler.py
"""
Concurrent dispatch of FileTasks over a bounded thread pool, with ordered
progress reporting and best-effort cancellation.
"""
import concurrent.futures
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from . import file_ops
from .constants import DEFAULT_THREADS
from .events import EventChannel
from .key_derivation import DerivedKeyMaterial
from .models import FileOutcome, FileTask, OperationRequest, OperationResult
from .results import ResultAggregator


class CancelToken:
    """
    Cancellation flag checked before each task starts. Tasks already running
    finish normally; tasks not yet started are dropped.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class WorkScheduler:
    def __init__(
        self,
        threads: int = DEFAULT_THREADS,
        events: Optional[EventChannel] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.threads = max(1, threads)
        self.events = events if events is not None else EventChannel()
        self.cancel_token = cancel_token if cancel_token is not None else CancelToken()
        self._progress_lock = threading.Lock()

    def _record(self, aggregator: ResultAggregator, outcome: FileOutcome) -> None:
        # Counting and publishing under one lock keeps published percentages ordered
        with self._progress_lock:
            completed = aggregator.add(outcome)
            self._report(outcome, aggregator.operation)
            self.events.progress(
                completed, aggregator.total, f"Processing file {completed} of {aggregator.total}"
            )

    def _report(self, outcome: FileOutcome, operation: str) -> None:
        source = outcome.task.source
        if not outcome.success:
            self.events.error(f"Failed to {operation} '{source}': {outcome.reason}")
        elif outcome.reason:
            self.events.warn(f"{operation.capitalize()}ed '{source}' with warning: {outcome.reason}")
        elif outcome.simulated:
            self.events.info(f"Dry run: would {operation} '{source}' -> '{outcome.output_path}'")
        else:
            self.events.info(f"{operation.capitalize()}ed file :: {outcome.output_path}")

    def _run_task(
        self,
        task: FileTask,
        material: DerivedKeyMaterial,
        request: OperationRequest,
        aggregator: ResultAggregator,
    ) -> Optional[FileOutcome]:
        if self.cancel_token.cancelled:
            logging.debug(f"Cancelled before start: {task.source}")
            return None
        outcome = file_ops.process(task, material, request)
        self._record(aggregator, outcome)
        return outcome

    def run(
        self,
        tasks: List[FileTask],
        material: DerivedKeyMaterial,
        request: OperationRequest,
        unreadable: Iterable[Tuple[Path, str]] = (),
    ) -> OperationResult:
        """
        Processes every task and returns the aggregated result. Failures never
        stop the batch. `unreadable` entries from the scan count as failures.
        """
        total = len(tasks)
        aggregator = ResultAggregator(
            request.operation, total=total, dry_run=request.dry_run, unreadable=unreadable
        )
        self.events.progress(0, total, f"Starting {request.operation} of {total} file(s)")

        if total <= 1 or self.threads == 1:
            # No pooling overhead for single-file runs
            for task in tasks:
                self._run_task(task, material, request, aggregator)
        else:
            workers = min(self.threads, total)
            logging.info(f"Using {workers} worker threads for {total} files.")
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="pathcrypt"
            ) as executor:
                futures_map: Dict[concurrent.futures.Future, FileTask] = {
                    executor.submit(self._run_task, task, material, request, aggregator): task
                    for task in tasks
                }
                for future in concurrent.futures.as_completed(futures_map):
                    future.result()

        cancelled = self.cancel_token.cancelled and aggregator.completed < total
        result = aggregator.summarize(cancelled=cancelled)
        with self._progress_lock:
            if cancelled:
                self.events.progress(aggregator.completed, total, result.message)
            else:
                self.events.complete(aggregator.completed, total, result.message)
        return result

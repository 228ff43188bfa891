# src/pathcrypt/events.py
"""
Progress and verbose-log events, and the channel the engine publishes them on.

The engine is the only producer. A presentation layer consumes the channel
either by iterating it (blocking until the run closes it) or by registering a
listener that is called for every published event.
"""
import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, List, Optional, Union


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    current: int
    total: int
    percentage: float
    message: str

    @classmethod
    def of(cls, current: int, total: int, message: str) -> "ProgressEvent":
        percentage = (current / total) * 100.0 if total > 0 else 0.0
        return cls(current, total, min(percentage, 100.0), message)


@dataclass(frozen=True, slots=True)
class VerboseLogEntry:
    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


Event = Union[ProgressEvent, VerboseLogEntry]

_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

_CLOSED = object()


class EventChannel:
    """Thread-safe producer/consumer channel for engine events."""

    def __init__(
        self,
        verbose: bool = False,
        listener: Optional[Callable[[Event], None]] = None,
    ):
        self.verbose = verbose
        self._listener = listener
        self._queue: "queue.Queue" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, event: Event) -> None:
        if self.closed:
            logging.debug(f"Dropping event published after close: {event}")
            return
        self._queue.put(event)
        if self._listener is not None:
            self._listener(event)

    def progress(self, current: int, total: int, message: str) -> ProgressEvent:
        event = ProgressEvent.of(current, total, message)
        logging.debug(f"Progress {current}/{total} ({event.percentage:.1f}%): {message}")
        self.publish(event)
        return event

    def complete(self, current: int, total: int, message: str) -> ProgressEvent:
        """Publishes the terminal progress event of a run."""
        event = ProgressEvent(current, total, 100.0, message)
        logging.debug(f"Progress complete {current}/{total}: {message}")
        self.publish(event)
        return event

    def log(self, level: LogLevel, message: str) -> None:
        """
        Mirrors the message to `logging` and publishes it as a VerboseLogEntry.
        Info and warn entries are published only in verbose mode; errors always are.
        """
        logging.log(_LOGGING_LEVELS[level], message)
        if level is LogLevel.ERROR or self.verbose:
            self.publish(VerboseLogEntry(level, message))

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARN, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Event]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any other consumer
                self._queue.put(_CLOSED)
                return
            yield item

    def drain(self) -> List[Event]:
        """Returns every queued event without blocking."""
        drained: List[Event] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return drained
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return drained
            drained.append(item)

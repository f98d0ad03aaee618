"""Progress events emitted by acquisition workers.

Workers never touch shared progress state; they push events into an
``EventStream`` and a single ``LoggingReporter`` thread drains it.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Pipeline stage an event reports on."""
    INDEX_UPDATE = "index_update"
    SELECTING = "selecting"
    CHECKING_CACHE = "checking_cache"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    WRITING = "writing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class AcquisitionEvent:
    subject: str
    kind: EventKind
    message: str
    timestamp: float = field(default_factory=time.time)


Emit = Callable[[AcquisitionEvent], None]


def discard(event: AcquisitionEvent) -> None:  # pylint: disable=unused-argument
    """Emit target used when no reporter is attached."""


_STOP = object()


class EventStream:
    """Thread-safe queue of events with one consumer."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()

    def emit(self, event: AcquisitionEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(_STOP)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            yield item


class LoggingReporter(threading.Thread):
    """Drains an EventStream and logs each event; keeps a history for callers."""

    _LEVELS = {
        EventKind.SUCCEEDED: logging.INFO,
        EventKind.FAILED: logging.ERROR,
    }

    def __init__(self, stream: EventStream, sink: Optional[logging.Logger] = None):
        super().__init__(name="cratedl-reporter", daemon=True)
        self._stream = stream
        self._sink = sink or logger
        self.history: List[AcquisitionEvent] = []

    def run(self) -> None:
        for event in self._stream:
            self.history.append(event)
            level = self._LEVELS.get(event.kind, logging.DEBUG)
            self._sink.log(level, "%s: %s", event.subject, event.message)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Close the stream and wait for queued events to be logged."""
        self._stream.close()
        self.join(timeout=timeout)

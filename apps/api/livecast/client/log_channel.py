"""Structured diagnostic channel shown to the user alongside the session."""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, List, Literal, Optional

LogLevel = Literal["log", "warn", "error"]
Listener = Callable[[List["LogEntry"]], None]

_STDLIB_LEVELS = {"log": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LogEntry:
    message: str
    timestamp: str
    level: LogLevel


class LogChannel:
    """Bounded log buffer with subscribers.

    Entries are mirrored to stdlib logging so operators see the same trail the
    user does.
    """

    def __init__(self, capacity: int = 100, logger: Optional[logging.Logger] = None) -> None:
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._logger = logger or module_logger

    def log(self, message: str) -> None:
        self._publish(message, "log")

    def warn(self, message: str) -> None:
        self._publish(message, "warn")

    def error(self, message: str) -> None:
        self._publish(message, "error")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; the returned callable unsubscribes it."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def tail(self, count: int) -> list[LogEntry]:
        if count <= 0:
            return []
        with self._lock:
            return list(self._entries)[-count:]

    def _publish(self, message: str, level: LogLevel) -> None:
        entry = LogEntry(message=message, timestamp=datetime.now().strftime("%H:%M:%S"), level=level)
        self._logger.log(_STDLIB_LEVELS[level], message)
        with self._lock:
            self._entries.append(entry)
            snapshot = list(self._entries)
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)

"""
Execution Log for FlowBoard.

An append-only record of what the engine reported during runs. The
engine treats it as a fire-and-forget side channel: writing to the log
never raises and never affects control flow.
"""

from typing import Any, Callable, Deque, Dict, List
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging


logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    INFO = "info"
    ALERT = "alert"


@dataclass
class LogEntry:
    """A single line in the execution log."""
    source: str
    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "message": self.message,
            "level": self.level.value,
        }


class ExecutionLog:
    """
    Bounded, append-only execution log with observers.

    Usage:
        log = ExecutionLog()
        log.subscribe(lambda entry: print(entry.message))
        log.log("Task", "Hello")
        log.alert("Something needs attention")
    """

    def __init__(self, max_entries: int = 500):
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self._listeners: List[Callable[[LogEntry], None]] = []

    @property
    def entries(self) -> List[LogEntry]:
        """Get all retained entries, oldest first."""
        return list(self._entries)

    def log(self, source: str, message: str) -> None:
        """Record an informational entry."""
        self._append(LogEntry(source=source, message=message))

    def alert(self, message: str, source: str = "Alert") -> None:
        """Record a user-facing notification."""
        self._append(LogEntry(source=source, message=message, level=LogLevel.ALERT))

    def clear(self) -> None:
        self._entries.clear()

    def subscribe(self, listener: Callable[[LogEntry], None]) -> Callable[[], None]:
        """Register a listener for new entries. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

        if entry.level == LogLevel.ALERT:
            logger.warning(f"[{entry.source}] {entry.message}")
        else:
            logger.info(f"[{entry.source}] {entry.message}")

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                logger.warning(f"Log listener failed: {e}")

    def __len__(self) -> int:
        return len(self._entries)

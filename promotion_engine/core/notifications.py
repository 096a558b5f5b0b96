"""Notification sinks for promotion progress and failures."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, List, Tuple

logger = logging.getLogger(__name__)


class Severity(Enum):
    """Notification severity (values double as Slack attachment colors)."""

    NORMAL = "normal"
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


class NotificationSink(ABC):
    """Abstract notification sink."""

    @abstractmethod
    def notify(self, message: str, severity: Severity = Severity.NORMAL) -> None:
        """Deliver one human-readable message."""
        pass


class LogNotificationSink(NotificationSink):
    """Writes notifications to the application log."""

    _LEVELS = {
        Severity.NORMAL: logging.INFO,
        Severity.GOOD: logging.INFO,
        Severity.WARNING: logging.WARNING,
        Severity.DANGER: logging.ERROR,
    }

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("promotion_engine.notifications")

    def notify(self, message: str, severity: Severity = Severity.NORMAL) -> None:
        self._logger.log(self._LEVELS[severity], message.rstrip("\n"))


class RecordingNotificationSink(NotificationSink):
    """Keeps notifications in memory (manual verification and tests)."""

    def __init__(self):
        self.messages: List[Tuple[Severity, str]] = []

    def notify(self, message: str, severity: Severity = Severity.NORMAL) -> None:
        self.messages.append((severity, message))


class MultiNotificationSink(NotificationSink):
    """Fan-out to multiple sinks; one failing sink never starves the others."""

    def __init__(self, sinks: Iterable[NotificationSink]):
        self._sinks = list(sinks)

    def notify(self, message: str, severity: Severity = Severity.NORMAL) -> None:
        for sink in self._sinks:
            try:
                sink.notify(message, severity)
            except Exception as e:
                logger.warning(f"{type(sink).__name__} failed to deliver notification: {e}")


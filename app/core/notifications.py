# app/core/notifications.py
"""
User-facing notices ("toasts").

Services and the sync layer describe outcomes as `Notice` values and hand
them to a `Notifier`. The HTTP layer returns them in response bodies; the
sync layer pushes them to whatever front end embeds it.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Variant = Literal["default", "destructive"]


@dataclass(frozen=True)
class Notice:
    title: str
    description: str
    variant: Variant = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the log."""

    def notify(self, notice: Notice) -> None:
        level = logging.WARNING if notice.is_error else logging.INFO
        logger.log(level, f"{notice.title}: {notice.description}")


class NoticeLog(LoggingNotifier):
    """Keeps every notice in order, for front ends that poll and for tests."""

    def __init__(self) -> None:
        self.notices: list[Notice] = []

    def notify(self, notice: Notice) -> None:
        super().notify(notice)
        self.notices.append(notice)

    @property
    def last(self) -> Notice | None:
        return self.notices[-1] if self.notices else None

    def titles(self) -> list[str]:
        return [n.title for n in self.notices]

    def clear(self) -> None:
        self.notices.clear()

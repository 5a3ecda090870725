# Overview: User-facing notifications (toasts) queued per workspace and drained into responses.

from __future__ import annotations

import threading
from dataclasses import dataclass

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    variant: str = DEFAULT

    @property
    def is_destructive(self) -> bool:
        return self.variant == DESTRUCTIVE

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "variant": self.variant}


class Notifier:
    """
    Pending notifications for one workspace.

    Routes drain the queue into every response, so each notification is
    delivered to the presentation layer exactly once.
    """

    def __init__(self):
        self._pending: list[Notification] = []
        self._lock = threading.Lock()

    def notify(self, title: str, description: str = "", *, destructive: bool = False) -> Notification:
        note = Notification(title, description, DESTRUCTIVE if destructive else DEFAULT)
        with self._lock:
            self._pending.append(note)
        return note

    def success(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description)

    def failure(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, destructive=True)

    @property
    def pending(self) -> list[Notification]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> list[dict]:
        with self._lock:
            notes, self._pending = self._pending, []
        return [n.to_dict() for n in notes]

# catalog_sdk/notify.py
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List


DEFAULT = "default"
DESTRUCTIVE = "destructive"
HISTORY_SIZE = 50


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = DEFAULT

    @property
    def is_error(self) -> bool:
        return self.variant == DESTRUCTIVE


class Notifier:
    """Transient user-facing messages (toasts)."""

    def __init__(self):
        self.history: Deque[Notification] = deque(maxlen=HISTORY_SIZE)
        self._listeners: List[Callable[[Notification], None]] = []

    def add_listener(self, listener: Callable[[Notification], None]):
        self._listeners.append(listener)

    def notify(self, title: str, description: str, variant: str = DEFAULT) -> Notification:
        n = Notification(title, description, variant)
        self.history.append(n)
        for listener in self._listeners:
            listener(n)
        return n

    def success(self, description: str) -> Notification:
        return self.notify("Success", description)

    def error(self, description: str) -> Notification:
        return self.notify("Error", description, DESTRUCTIVE)

    def validation_error(self, description: str) -> Notification:
        return self.notify("Validation Error", description, DESTRUCTIVE)

    @property
    def last(self):
        return self.history[-1] if self.history else None

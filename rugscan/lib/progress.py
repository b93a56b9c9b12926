"""
Progress reporting and cooperative cancellation for scans.
"""

import threading
from typing import Callable, List

ProgressListener = Callable[[str], None]


class ProgressReporter:
    """
    Holds the current human-readable scan status.

    Each update overwrites the previous message. Listeners are called with
    every message, so a consumer that needs the history must record it.
    """

    def __init__(self):
        self.message = ""
        self._listeners: List[ProgressListener] = []

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def update(self, message: str) -> None:
        self.message = message
        for listener in self._listeners:
            listener(message)


class CancellationToken:
    """
    Cancellation flag shared by the stages of one scan.

    Stages poll `cancelled` at their checkpoints; nothing in flight is
    interrupted.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

# Change broadcast shared by the registry and the supervisor
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

# ABOUTME: Listeners take no arguments, the event carries no payload
Listener = Callable[[], None]


class Notifier:
    """Single-slot "data changed" broadcast.

    ABOUTME: Pure invalidation signal, listeners re-fetch the full view
    ABOUTME: A failing listener is logged and does not stop delivery
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Change listener %r failed", listener)

    def __len__(self) -> int:
        return len(self._listeners)

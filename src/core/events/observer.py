from loguru import logger
from typing import Callable, List


class Signal:
    """
    Minimal synchronous observer.

    Subscribers are plain callables; an exception raised by one subscriber is
    logged and does not stop delivery to the others.
    """
    def __init__(self, name: str = "Signal"):
        self.name = name
        self._subscribers: List[Callable] = []

    def connect(self, callback: Callable) -> Callable:
        """Connect a callback. Returns it so the method works as a decorator."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def disconnect(self, callback: Callable):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, *args, **kwargs) -> int:
        """Broadcast to all subscribers. Returns the number that succeeded."""
        delivered = 0
        for sub in list(self._subscribers):
            try:
                sub(*args, **kwargs)
                delivered += 1
            except Exception as e:
                logger.error(f"Signal '{self.name}' error in subscriber '{sub}': {e}")
        return delivered

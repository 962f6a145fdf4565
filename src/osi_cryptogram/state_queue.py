import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class SingleSlotQueue(Generic[T]):
    """Thread-safe, size=1, latest-wins queue for session snapshots.

    The session publishes after every action; a renderer takes whatever is
    newest with poll().
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._has_value = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, item: T) -> None:
        """Replace any unread item. Ignored once closed."""
        with self._lock:
            if self._closed:
                return
            self._value = item
            self._has_value = True

    def poll(self) -> Optional[T]:
        """Take the newest item without blocking, or None if nothing new."""
        with self._lock:
            return self._take()

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def _take(self) -> Optional[T]:
        if not self._has_value:
            return None
        value = self._value
        self._value = None
        self._has_value = False
        return value

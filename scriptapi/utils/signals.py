"""Thread-safe callback registry used for completion notifications.

Network requests finish on the reactor thread while the script that
issued them runs on a worker thread, so connecting, disconnecting and
emitting may all happen concurrently.  Callbacks are always invoked
outside the registry lock, which lets a callback re-enter the emitting
component (or connect further callbacks) without deadlocking.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from scriptapi.utils import errors, logger

log = logger.create_logger("Signal")


class Signal:
    """A named list of callbacks that are invoked on :meth:`emit`."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._callbacks: list[Callable[..., object]] = []

    def connect(self, callback: Callable[..., object]) -> None:
        """Register *callback*; connecting the same callable twice is a no-op."""
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., object]) -> bool:
        """Remove *callback*, returning whether it was connected."""
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                return False
            return True

    def disconnect_all(self) -> None:
        with self._lock:
            self._callbacks.clear()

    def receiver_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def emit(self, *args: object) -> None:
        """Invoke every connected callback with *args*.

        A callback that raises is logged and skipped; the remaining
        callbacks still run.
        """
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(*args)
            except Exception as exc:
                log.error(
                    "Signal handler raised",
                    {"signal": self.name, "handler": getattr(callback, "__qualname__", repr(callback)), "error": errors.get_error_message(exc)},
                )

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, receivers={self.receiver_count()})"

"""A value shared between threads, guarded by a lock and a condition."""

from __future__ import annotations

import threading
import time
from typing import Generic, TypeVar

T = TypeVar("T")


class MutexValue(Generic[T]):
    """Hold one value that several threads read, write and wait on."""

    def __init__(self, initial: T = None) -> None:
        self._value = initial
        self._condition = threading.Condition()

    @property
    def lock(self) -> threading.Condition:
        """The condition guarding the value; usable as a context manager."""
        return self._condition

    def assign(self, value: T) -> None:
        """Replace the value."""
        with self._condition:
            self._value = value

    def get(self) -> T:
        """Return the current value."""
        with self._condition:
            return self._value

    def increment(self) -> None:
        """Add one to the value atomically."""
        with self._condition:
            self._value += 1

    def assign_and_notify_all(self, value: T) -> None:
        """Replace the value and wake every thread waiting for a signal."""
        with self._condition:
            self._value = value
            self._condition.notify_all()

    def notify_all(self) -> None:
        """Wake every thread waiting for a signal."""
        with self._condition:
            self._condition.notify_all()

    def wait_for_signal(self, timeout: float | None = None) -> T:
        """Block until notified, then return the value.

        Raises TimeoutError if ``timeout`` seconds pass without a signal.
        """
        with self._condition:
            if not self._condition.wait(timeout):
                raise TimeoutError("no signal received")
            return self._value

    def get_wait(self, wait: int = 33000) -> T:
        """Sleep ``wait`` microseconds, then return the value."""
        time.sleep(wait / 1_000_000)
        return self.get()
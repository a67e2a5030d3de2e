"""Generation tokens and cooperative cancellation checkpoints."""

import threading
import time
from collections.abc import Callable


class ComputationCancelled(Exception):
    """Raised at a checkpoint when the owning computation has been superseded."""


class Generation:
    """Monotonic counter identifying the latest submitted computation.

    Read from worker threads, advanced only by the coordinating loop.
    """

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    def advance(self) -> int:
        """Invalidate every outstanding token and return the new one."""
        with self._lock:
            self._value += 1
            return self._value

    def is_current(self, token: int) -> bool:
        return self.current == token

    def checkpoint(self, token: int, every: int = 2048) -> "Checkpoint":
        """Build a checkpoint that cancels once *token* is no longer current."""
        return Checkpoint(lambda: not self.is_current(token), every=every)


class Checkpoint:
    """Yield point for long CPU-bound loops.

    Every *every* ticks the checkpoint gives up the GIL and raises
    ComputationCancelled if *is_cancelled* reports true.
    """

    def __init__(self, is_cancelled: Callable[[], bool] | None = None, every: int = 2048) -> None:
        self._is_cancelled = is_cancelled
        self._every = max(1, every)
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    def tick(self) -> None:
        self._ticks += 1
        if self._ticks % self._every:
            return
        self.check()
        time.sleep(0)

    def check(self) -> None:
        if self._is_cancelled is not None and self._is_cancelled():
            raise ComputationCancelled

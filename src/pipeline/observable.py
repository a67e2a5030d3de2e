"""Single-writer observable values for the presentation layer."""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """Holds a value and notifies subscribers when it is published.

    Only the owner publishes, and only from the coordinating event loop.
    Publish immutable values (tuples, frozen models) so subscribers always
    see a complete snapshot.

    Usage::

        flights = Observable[tuple[FlightRecord, ...]](())
        unsubscribe = flights.subscribe(lambda rows: print(len(rows)))
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.warning("Observable subscriber %r failed", callback, exc_info=True)

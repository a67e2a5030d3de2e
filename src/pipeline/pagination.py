"""Pagination controller: offset/has-more state and background page loads.

Only one page fetch is outstanding at a time; extra requests while a fetch
is in flight are no-ops. A store failure stops pagination for the session
but keeps everything already loaded.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from src.core.schemas import FlightRecord
from src.store.gateway import RecordStore, StoreError, fetch_page

logger = logging.getLogger(__name__)


def _idle_event() -> asyncio.Event:
    event = asyncio.Event()
    event.set()
    return event


@dataclass
class PaginationState:
    """Mutable paging state for one session, owned by PaginationController.

    fetch_done is clear exactly while this session has a fetch in flight.
    """

    next_offset: int = 0
    has_more: bool = True
    in_flight: bool = False
    records: list[FlightRecord] = field(default_factory=list)
    fetch_done: asyncio.Event = field(default_factory=_idle_event)


class PaginationController:
    """Pulls pages from a RecordStore into an accumulating record list.

    Usage::

        pager = PaginationController(store, page_size=500, on_page=recompute)
        await pager.load_next_page()
        snapshot = pager.records
    """

    def __init__(
        self,
        store: RecordStore,
        page_size: int = 500,
        on_page: Callable[[int], None] | None = None,
    ) -> None:
        self._store = store
        self._page_size = page_size
        self._on_page = on_page
        self._state = PaginationState()
        self._session = 0

    @property
    def records(self) -> tuple[FlightRecord, ...]:
        """Immutable snapshot of every record loaded so far."""
        return tuple(self._state.records)

    @property
    def record_count(self) -> int:
        return len(self._state.records)

    @property
    def has_more(self) -> bool:
        return self._state.has_more

    @property
    def in_flight(self) -> bool:
        return self._state.in_flight

    @property
    def next_offset(self) -> int:
        return self._state.next_offset

    def reset(self) -> None:
        """Drop everything loaded and start again from offset zero.

        A fetch still in flight from before the reset is discarded when it lands.
        """
        self._session += 1
        self._state = PaginationState()

    async def load_next_page(self, *, notify: bool = True) -> bool:
        """Fetch and commit the next page.

        Returns True if records were appended. No-op when a fetch is already
        in flight or no more pages exist.
        """
        state = self._state
        if not state.has_more or state.in_flight:
            return False

        session = self._session
        offset = state.next_offset
        state.in_flight = True
        state.fetch_done.clear()
        try:
            page = await fetch_page(self._store, offset, self._page_size)
        except StoreError:
            logger.warning("Page load failed at offset %d — stopping pagination", offset, exc_info=True)
            state.has_more = False
            return False
        finally:
            state.in_flight = False
            state.fetch_done.set()

        if session != self._session:
            logger.debug("Discarding page at offset %d from a reset session", offset)
            return False

        if len(page.ids) < self._page_size:
            state.has_more = False
        if not page.ids:
            logger.debug("Empty page at offset %d — no more records", offset)
            return False

        state.records.extend(page.records)
        state.next_offset += len(page.ids)
        logger.info(
            "Loaded %d records at offset %d (total %d, has_more=%s)",
            len(page.records), offset, len(state.records), state.has_more,
        )
        if notify and self._on_page is not None:
            self._on_page(len(page.records))
        return bool(page.records)

    async def load_all(self, progress: Callable[[float], None] | None = None) -> int:
        """Load every remaining page, reporting the loaded fraction.

        Returns the number of records loaded by this call. A reset while the
        bulk load runs abandons it and returns 0.
        """
        session = self._session
        try:
            total = await self._store.fetch_count()
        except StoreError:
            logger.warning("Count query failed — bulk load continues without progress", exc_info=True)
            total = 0

        before = self.record_count
        if progress is not None:
            progress(_fraction(before, total))

        while self._state.has_more:
            if session != self._session:
                logger.info("Bulk load abandoned: pagination was reset")
                return 0
            state = self._state
            if state.in_flight:
                logger.debug("Bulk load waiting: a page fetch is already in flight")
                await state.fetch_done.wait()
                continue
            await self.load_next_page(notify=False)
            if progress is not None:
                progress(_fraction(self.record_count, total))

        if session != self._session:
            logger.info("Bulk load abandoned: pagination was reset")
            return 0

        if progress is not None:
            progress(1.0)
        if self._on_page is not None and self.record_count > before:
            self._on_page(self.record_count - before)
        return self.record_count - before


def _fraction(loaded: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(1.0, loaded / total)

"""Record store gateway: the only persistence surface the pipeline needs."""

import asyncio
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import NamedTuple, TypeVar

from src.core.db import count_flights, fetch_flights_by_ids, fetch_page_ids
from src.core.schemas import FlightRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """A page fetch, count, or rehydration against the store failed."""


class RecordStore(ABC):
    """Base class that every record store must implement."""

    @abstractmethod
    async def fetch_page_ids(self, offset: int, limit: int) -> list[int]:
        """Return up to *limit* ids starting at *offset*, in a fixed total order."""

    @abstractmethod
    async def fetch_count(self) -> int:
        """Return the total number of records in the store."""

    @abstractmethod
    async def fetch_by_ids(self, ids: list[int]) -> list[FlightRecord]:
        """Return the records for *ids*. Order is not guaranteed."""


class SqliteRecordStore(RecordStore):
    """RecordStore over the SQLite flights table.

    Blocking queries run in a worker thread; a lock keeps one query on the
    shared connection at a time.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    async def fetch_page_ids(self, offset: int, limit: int) -> list[int]:
        return await self._run(lambda: fetch_page_ids(self._conn, offset, limit))

    async def fetch_count(self) -> int:
        return await self._run(lambda: count_flights(self._conn))

    async def fetch_by_ids(self, ids: list[int]) -> list[FlightRecord]:
        return await self._run(lambda: fetch_flights_by_ids(self._conn, ids))

    async def _run(self, query: Callable[[], T]) -> T:
        def locked() -> T:
            with self._lock:
                return query()

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            msg = f"SQLite query failed: {e}"
            raise StoreError(msg) from e


def restore_order(ids: list[int], records: list[FlightRecord]) -> list[FlightRecord]:
    """Sort rehydrated records back into the order implied by *ids*.

    Records whose id is not in *ids* are dropped.
    """
    rank = {record_id: i for i, record_id in enumerate(ids)}
    kept = [r for r in records if r.id in rank]
    if len(kept) != len(records):
        logger.debug("restore_order: dropped %d unexpected records", len(records) - len(kept))
    kept.sort(key=lambda r: rank[r.id])
    return kept


class FetchedPage(NamedTuple):
    """One page: the ids the store listed and the records rehydrated for them."""

    ids: list[int]
    records: list[FlightRecord]


async def fetch_page(store: RecordStore, offset: int, limit: int) -> FetchedPage:
    """Fetch one page of records in the store's natural order.

    Raises StoreError for any failure, including unexpected store exceptions.
    """
    try:
        ids = await store.fetch_page_ids(offset, limit)
        if not ids:
            return FetchedPage(ids=[], records=[])
        records = await store.fetch_by_ids(ids)
    except StoreError:
        raise
    except Exception as e:
        msg = f"Page fetch at offset {offset} failed: {e}"
        raise StoreError(msg) from e

    page = restore_order(ids, records)
    if len(page) < len(ids):
        logger.warning(
            "Page at offset %d: %d ids but only %d records rehydrated",
            offset, len(ids), len(page),
        )
    return FetchedPage(ids=ids, records=page)

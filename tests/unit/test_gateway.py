"""Tests for the record store gateway and page fetching."""

import sqlite3

import pytest

from src.core.db import init_db, insert_flights
from src.core.schemas import FlightRecord
from src.store.gateway import (
    RecordStore,
    SqliteRecordStore,
    StoreError,
    fetch_page,
    restore_order,
)


def _flight(id: int, depdate: str = "2025-01-01") -> FlightRecord:
    return FlightRecord(id=id, depdate=depdate, origin="JFK", destination="LAX")


class _ShufflingStore(RecordStore):
    """Returns rehydrated records in reverse and can drop or fail on demand."""

    def __init__(
        self,
        records: list[FlightRecord],
        *,
        missing: set[int] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self._records = records
        self._missing = missing or set()
        self._fail_with = fail_with

    async def fetch_page_ids(self, offset: int, limit: int) -> list[int]:
        if self._fail_with is not None:
            raise self._fail_with
        return [r.id for r in self._records[offset:offset + limit]]

    async def fetch_count(self) -> int:
        return len(self._records)

    async def fetch_by_ids(self, ids: list[int]) -> list[FlightRecord]:
        wanted = set(ids) - self._missing
        return [r for r in reversed(self._records) if r.id in wanted]


class TestRestoreOrder:
    def test_restores_id_order(self) -> None:
        records = [_flight(3), _flight(1), _flight(2)]
        assert [r.id for r in restore_order([1, 2, 3], records)] == [1, 2, 3]

    def test_drops_unrequested(self) -> None:
        records = [_flight(1), _flight(9)]
        assert [r.id for r in restore_order([1], records)] == [1]

    def test_missing_records_leave_gaps(self) -> None:
        assert [r.id for r in restore_order([1, 2, 3], [_flight(3), _flight(1)])] == [1, 3]


class TestFetchPage:
    async def test_page_in_store_order(self) -> None:
        store = _ShufflingStore([_flight(i) for i in range(1, 11)])
        page = await fetch_page(store, 2, 3)
        assert page.ids == [3, 4, 5]
        assert [r.id for r in page.records] == [3, 4, 5]

    async def test_empty_page(self) -> None:
        store = _ShufflingStore([_flight(1)])
        page = await fetch_page(store, 5, 3)
        assert page.ids == []
        assert page.records == []

    async def test_partial_rehydration_keeps_all_ids(self) -> None:
        store = _ShufflingStore([_flight(i) for i in range(1, 6)], missing={2})
        page = await fetch_page(store, 0, 5)
        assert len(page.ids) == 5
        assert [r.id for r in page.records] == [1, 3, 4, 5]

    async def test_unexpected_error_wrapped(self) -> None:
        store = _ShufflingStore([], fail_with=RuntimeError("boom"))
        with pytest.raises(StoreError, match="offset 0 failed: boom"):
            await fetch_page(store, 0, 10)

    async def test_store_error_propagates(self) -> None:
        original = StoreError("disk gone")
        store = _ShufflingStore([], fail_with=original)
        with pytest.raises(StoreError) as exc_info:
            await fetch_page(store, 0, 10)
        assert exc_info.value is original


class TestSqliteRecordStore:
    @pytest.fixture()
    def store(self, tmp_path) -> SqliteRecordStore:  # type: ignore[no-untyped-def]
        conn = init_db(tmp_path / "test.db")
        insert_flights(conn, [_flight(i, depdate=f"2025-01-{i:02d}") for i in range(1, 6)])
        return SqliteRecordStore(conn)

    async def test_count(self, store: SqliteRecordStore) -> None:
        assert await store.fetch_count() == 5

    async def test_page_ids(self, store: SqliteRecordStore) -> None:
        assert await store.fetch_page_ids(1, 2) == [2, 3]

    async def test_fetch_by_ids(self, store: SqliteRecordStore) -> None:
        records = await store.fetch_by_ids([4, 2])
        assert sorted(r.id for r in records) == [2, 4]

    async def test_fetch_page_round_trip(self, store: SqliteRecordStore) -> None:
        page = await fetch_page(store, 0, 10)
        assert [r.id for r in page.records] == [1, 2, 3, 4, 5]

    async def test_sqlite_error_wrapped(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        conn = init_db(tmp_path / "closed.db")
        conn.close()
        store = SqliteRecordStore(conn)
        with pytest.raises(StoreError, match="SQLite query failed"):
            await store.fetch_count()

    async def test_missing_table(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        conn = sqlite3.connect(str(tmp_path / "empty.db"), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        store = SqliteRecordStore(conn)
        with pytest.raises(StoreError):
            await fetch_page(store, 0, 10)

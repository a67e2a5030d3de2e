"""SQLite layer for the flights table."""

import sqlite3
from collections.abc import Iterable
from pathlib import Path

from src.core.schemas import FlightRecord

_FLIGHTS_TABLE = """
CREATE TABLE IF NOT EXISTS flights (
    id              INTEGER PRIMARY KEY,
    csv_id          INTEGER NOT NULL DEFAULT 0,
    depdate         TEXT    NOT NULL DEFAULT '',
    origin          TEXT    NOT NULL,
    destination     TEXT    NOT NULL,
    duration        REAL    NOT NULL DEFAULT 0.0,
    price_eco       REAL    NOT NULL DEFAULT 0.0,
    price_exec      REAL,
    price_premium   REAL,
    demand          TEXT    NOT NULL DEFAULT '',
    early           INTEGER NOT NULL DEFAULT 0,
    population      INTEGER NOT NULL DEFAULT 0,
    airline         TEXT    NOT NULL DEFAULT ''
);
"""

_FETCH_ORDER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_flights_fetch_order
    ON flights (depdate, origin, id);
"""

_COLUMNS = (
    "id, csv_id, depdate, origin, destination, duration, price_eco, "
    "price_exec, price_premium, demand, early, population, airline"
)

# SQLite's default host parameter limit is 999 on older builds.
_MAX_PARAMS = 900


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and flights table, returning a connection.

    The connection may be used from worker threads; callers serialize access.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_FLIGHTS_TABLE)
    conn.execute(_FETCH_ORDER_INDEX)
    conn.commit()
    return conn


def insert_flights(conn: sqlite3.Connection, flights: Iterable[FlightRecord]) -> int:
    """Insert flights, ignoring rows whose id already exists.

    Returns the number of rows actually inserted.
    """
    before = conn.total_changes
    conn.executemany(
        f"""
        INSERT OR IGNORE INTO flights ({_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                f.id,
                f.csv_id,
                f.depdate,
                f.origin,
                f.destination,
                f.duration,
                f.price_eco,
                f.price_exec,
                f.price_premium,
                f.demand,
                f.early,
                f.population,
                f.airline,
            )
            for f in flights
        ],
    )
    conn.commit()
    return conn.total_changes - before


def fetch_page_ids(conn: sqlite3.Connection, offset: int, limit: int) -> list[int]:
    """Return one page of ids in the store's natural order (date, origin, id)."""
    rows = conn.execute(
        """
        SELECT id FROM flights
        ORDER BY depdate ASC, origin ASC, id ASC
        LIMIT ? OFFSET ?
        """,
        (limit, offset),
    ).fetchall()
    return [row["id"] for row in rows]


def count_flights(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) AS n FROM flights").fetchone()
    return int(row["n"])


def fetch_flights_by_ids(conn: sqlite3.Connection, ids: Iterable[int]) -> list[FlightRecord]:
    """Return the flights for the given ids. Row order is unspecified."""
    id_list = list(ids)
    result: list[FlightRecord] = []
    for start in range(0, len(id_list), _MAX_PARAMS):
        chunk = id_list[start:start + _MAX_PARAMS]
        placeholders = ", ".join("?" for _ in chunk)
        rows = conn.execute(
            f"SELECT {_COLUMNS} FROM flights WHERE id IN ({placeholders})",
            chunk,
        ).fetchall()
        result.extend(_row_to_record(row) for row in rows)
    return result


def _row_to_record(row: sqlite3.Row) -> FlightRecord:
    return FlightRecord(
        id=row["id"],
        csv_id=row["csv_id"],
        depdate=row["depdate"],
        origin=row["origin"],
        destination=row["destination"],
        duration=row["duration"],
        price_eco=row["price_eco"],
        price_exec=row["price_exec"],
        price_premium=row["price_premium"],
        demand=row["demand"],
        early=row["early"],
        population=row["population"],
        airline=row["airline"],
    )

#!/usr/bin/env python3
"""Benchmark the sort and search algorithms against the same flight snapshot.

Loads flights from the SQLite store, times all five sort algorithms for one
sort key/order and all three search algorithms for one query, and prints a
comparison table. Sort results are checked for key-order agreement.

Usage:
    python scripts/benchmark_algorithms.py
    python scripts/benchmark_algorithms.py --db data/flights.db --limit 2000
    python scripts/benchmark_algorithms.py --sort-key price --skip-quadratic
    python scripts/benchmark_algorithms.py --query JFK --field origin
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Ensure project root is on the path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.db import fetch_flights_by_ids, fetch_page_ids, init_db
from src.core.schemas import (
    FlightRecord,
    SearchAlgorithm,
    SearchField,
    SortAlgorithm,
    SortKey,
    SortOrder,
)
from src.pipeline.dates import DateCache
from src.pipeline.recompute import build_comparator
from src.pipeline.searching import timed_search
from src.pipeline.sorting import sort_items
from src.store.gateway import restore_order

logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

_QUADRATIC = {SortAlgorithm.BUBBLE, SortAlgorithm.SELECTION, SortAlgorithm.INSERTION}


def _load_flights(db_path: str, limit: int) -> list[FlightRecord]:
    """Load the first *limit* flights in store order."""
    conn = init_db(db_path)
    try:
        ids = fetch_page_ids(conn, 0, limit)
        return restore_order(ids, fetch_flights_by_ids(conn, ids))
    finally:
        conn.close()


def _sort_signature(records: list[FlightRecord], sort_key: SortKey) -> list[object]:
    if sort_key is SortKey.PRICE:
        return [r.price_eco for r in records]
    if sort_key is SortKey.DURATION:
        return [r.duration for r in records]
    return [r.depdate for r in records]


def benchmark_sorts(
    flights: list[FlightRecord],
    sort_key: SortKey,
    sort_order: SortOrder,
    skip_quadratic: bool,
) -> list[tuple[str, float | None, bool | None]]:
    """Return (algorithm, seconds, agrees_with_merge) rows."""
    cache = DateCache()
    compare = build_comparator(sort_key, sort_order, cache)
    reference = _sort_signature(sort_items(flights, compare, SortAlgorithm.MERGE), sort_key)

    rows: list[tuple[str, float | None, bool | None]] = []
    for algorithm in SortAlgorithm:
        if skip_quadratic and algorithm in _QUADRATIC:
            rows.append((algorithm.value, None, None))
            continue
        started = time.perf_counter()
        result = sort_items(flights, compare, algorithm)
        elapsed = time.perf_counter() - started
        rows.append((algorithm.value, elapsed, _sort_signature(result, sort_key) == reference))
    return rows


def benchmark_searches(
    flights: list[FlightRecord], query: str, field: SearchField,
) -> list[tuple[str, float, int]]:
    """Return (algorithm, seconds, matches) rows."""
    rows: list[tuple[str, float, int]] = []
    for algorithm in SearchAlgorithm:
        matches, elapsed = timed_search(flights, query, field, algorithm)
        rows.append((algorithm.value, elapsed, len(matches)))
    return rows


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark sort and search algorithms")
    parser.add_argument("--db", default="data/flights.db", help="SQLite database path")
    parser.add_argument("--limit", type=int, default=1000, help="Number of flights to load")
    parser.add_argument(
        "--sort-key", default=SortKey.PRICE.value, choices=[k.value for k in SortKey],
    )
    parser.add_argument(
        "--order", default=SortOrder.ASCENDING.value, choices=[o.value for o in SortOrder],
    )
    parser.add_argument(
        "--skip-quadratic", action="store_true", help="Skip bubble, selection and insertion",
    )
    parser.add_argument("--query", default="JFK", help="Search query")
    parser.add_argument(
        "--field", default=SearchField.ORIGIN.value, choices=[f.value for f in SearchField],
    )
    args = parser.parse_args()

    if not Path(args.db).exists():
        print(f"Error: database not found: {args.db}", file=sys.stderr)
        sys.exit(1)

    flights = _load_flights(args.db, args.limit)
    if not flights:
        print("No flights found in the database.", file=sys.stderr)
        sys.exit(1)
    print(f"Loaded {len(flights)} flights\n")

    sort_key = SortKey(args.sort_key)
    sort_order = SortOrder(args.order)
    print(f"Sort: key={sort_key.value}, order={sort_order.value}")
    print(f"{'algorithm':<12} {'seconds':>10}  agrees")
    print("-" * 32)
    for name, elapsed, agrees in benchmark_sorts(flights, sort_key, sort_order, args.skip_quadratic):
        if elapsed is None:
            print(f"{name:<12} {'skipped':>10}")
        else:
            print(f"{name:<12} {elapsed:>10.5f}  {'yes' if agrees else 'NO'}")

    field = SearchField(args.field)
    print(f"\nSearch: query={args.query!r}, field={field.value}")
    print(f"{'algorithm':<12} {'seconds':>10} {'matches':>8}")
    print("-" * 32)
    for name, elapsed, count in benchmark_searches(flights, args.query, field):
        print(f"{name:<12} {elapsed:>10.5f} {count:>8}")


if __name__ == "__main__":
    main()

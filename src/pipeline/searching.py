"""Three interchangeable keyed search algorithms over flight records.

The binary variant is an approximation: it assumes the records containing
the query form one contiguous run in sorted order, which holds for prefix
and exact matches but not for substring matches in general. Records that
contain the query but sort outside that run are missed.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Sequence

from src.core.schemas import FlightRecord, SearchAlgorithm, SearchField
from src.pipeline.cancellation import Checkpoint

logger = logging.getLogger(__name__)

_EXACT_FIELDS = frozenset({SearchField.ID, SearchField.PRICE})


def field_value(record: FlightRecord, field: SearchField) -> str:
    """Map a record to the comparable string for *field*."""
    if field is SearchField.ID:
        return str(record.id)
    if field is SearchField.ORIGIN:
        return record.origin
    if field is SearchField.DESTINATION:
        return record.destination
    if field is SearchField.AIRLINE:
        return record.airline
    if field is SearchField.PRICE:
        return f"{record.price_eco:.2f}"
    msg = f"Unknown search field: {field!r}"
    raise ValueError(msg)


def _hash_key(value: str, field: SearchField) -> str:
    if field in _EXACT_FIELDS:
        return value.strip()
    return value.strip().lower()


def linear_search(
    records: Sequence[FlightRecord],
    query: str,
    field: SearchField,
    checkpoint: Checkpoint | None = None,
) -> list[FlightRecord]:
    """Case-insensitive substring match against every record."""
    needle = query.lower()
    matches: list[FlightRecord] = []
    for record in records:
        if checkpoint is not None:
            checkpoint.tick()
        if needle in field_value(record, field).lower():
            matches.append(record)
    return matches


def binary_search(
    records: Sequence[FlightRecord],
    query: str,
    field: SearchField,
    checkpoint: Checkpoint | None = None,
) -> list[FlightRecord]:
    """Binary search over sorted values, then expand around the first hit.

    A value that equals or contains the query is a hit; a smaller value
    narrows right, a larger one narrows left.
    """
    needle = query.lower()
    pairs = sorted(
        ((i, field_value(r, field).lower()) for i, r in enumerate(records)),
        key=lambda pair: pair[1],
    )

    low, high = 0, len(pairs) - 1
    hit: int | None = None
    while low <= high:
        if checkpoint is not None:
            checkpoint.tick()
        middle = low + (high - low) // 2
        value = pairs[middle][1]
        if needle in value:
            hit = middle
            break
        if value < needle:
            low = middle + 1
        else:
            high = middle - 1

    if hit is None:
        return []

    first = hit
    while first > 0 and needle in pairs[first - 1][1]:
        first -= 1
    last = hit
    while last < len(pairs) - 1 and needle in pairs[last + 1][1]:
        last += 1
    return [records[index] for index, _ in pairs[first:last + 1]]


def hash_search(
    records: Sequence[FlightRecord],
    query: str,
    field: SearchField,
    checkpoint: Checkpoint | None = None,
) -> list[FlightRecord]:
    """Group records by normalized value and return the query's bucket."""
    buckets: dict[str, list[FlightRecord]] = defaultdict(list)
    for record in records:
        if checkpoint is not None:
            checkpoint.tick()
        buckets[_hash_key(field_value(record, field), field)].append(record)
    return list(buckets.get(_hash_key(query, field), []))


_ALGORITHMS: dict[SearchAlgorithm, Callable[..., list[FlightRecord]]] = {
    SearchAlgorithm.LINEAR: linear_search,
    SearchAlgorithm.BINARY: binary_search,
    SearchAlgorithm.HASH: hash_search,
}


def search_records(
    records: Sequence[FlightRecord],
    query: str,
    field: SearchField,
    algorithm: SearchAlgorithm,
    checkpoint: Checkpoint | None = None,
) -> list[FlightRecord]:
    """Run the selected search algorithm. Read-only over *records*."""
    func = _ALGORITHMS[SearchAlgorithm(algorithm)]
    return func(records, query, SearchField(field), checkpoint)


def timed_search(
    records: Sequence[FlightRecord],
    query: str,
    field: SearchField,
    algorithm: SearchAlgorithm,
    checkpoint: Checkpoint | None = None,
) -> tuple[list[FlightRecord], float]:
    """Run a search and return (matches, elapsed wall-clock seconds)."""
    started = time.perf_counter()
    matches = search_records(records, query, field, algorithm, checkpoint)
    elapsed = time.perf_counter() - started
    logger.debug(
        "%s search on %s for %r: %d matches in %.5fs",
        SearchAlgorithm(algorithm).value, SearchField(field).value, query, len(matches), elapsed,
    )
    return matches, elapsed

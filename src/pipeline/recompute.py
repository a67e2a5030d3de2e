"""Filter and sort one immutable snapshot into the visible flight list.

Everything here is synchronous and side-effect free so it can run in a
worker thread; the coordinating loop decides whether the result is still
wanted.
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.schemas import FlightRecord, QueryCriteria, SortAlgorithm, SortKey, SortOrder
from src.pipeline.cancellation import Checkpoint
from src.pipeline.dates import DateCache
from src.pipeline.filters import build_filters, run_filter_chain
from src.pipeline.sorting import Comparator, sort_items

logger = logging.getLogger(__name__)

# Equal keys keep fetch order, so an already ordered snapshot sorts to itself.
STABLE_ALGORITHMS = frozenset({SortAlgorithm.BUBBLE, SortAlgorithm.INSERTION, SortAlgorithm.MERGE})


@dataclass(frozen=True)
class RecomputeResult:
    """Output of one pipeline run.

    sort_seconds is None when the fast path skipped sorting.
    """

    records: tuple[FlightRecord, ...]
    sort_seconds: float | None
    input_count: int


def _three_way(a: float, b: float) -> int:
    return (a > b) - (a < b)


def build_comparator(
    sort_key: SortKey, sort_order: SortOrder, cache: DateCache,
) -> Comparator[FlightRecord]:
    """Return a three-way comparator for (sort_key, sort_order).

    For dates, an unparseable value counts as later than any parsed one
    before the order flip: last when ascending, first when descending.
    Two unparseable dates compare equal.
    """
    sign = -1 if sort_order is SortOrder.DESCENDING else 1

    if sort_key is SortKey.PRICE:
        def compare(a: FlightRecord, b: FlightRecord) -> int:
            return sign * _three_way(a.price_eco, b.price_eco)
    elif sort_key is SortKey.DURATION:
        def compare(a: FlightRecord, b: FlightRecord) -> int:
            return sign * _three_way(a.duration, b.duration)
    else:
        def compare(a: FlightRecord, b: FlightRecord) -> int:
            da = cache.get(a.depdate)
            db = cache.get(b.depdate)
            if da is None and db is None:
                return 0
            if da is None:
                return sign
            if db is None:
                return -sign
            return sign * ((da > db) - (da < db))

    return compare


def _already_ordered(
    records: Sequence[FlightRecord],
    compare: Comparator[FlightRecord],
    checkpoint: Checkpoint | None,
) -> bool:
    """True when *records* is non-decreasing under *compare*.

    The store orders by the raw depdate text, which only agrees with parsed
    date order when every row shares a sortable format.
    """
    for previous, current in zip(records, records[1:]):
        if checkpoint is not None:
            checkpoint.tick()
        if compare(previous, current) > 0:
            return False
    return True


def compute_visible(
    records: Sequence[FlightRecord],
    criteria: QueryCriteria,
    *,
    checkpoint: Checkpoint | None = None,
    fast_path: bool = True,
) -> RecomputeResult:
    """Run the free-text, field filter and sort steps over a snapshot."""
    snapshot = list(records)
    cache = DateCache()
    compare = build_comparator(criteria.sort_key, criteria.sort_order, cache)

    if (
        fast_path
        and not criteria.normalized_text
        and not criteria.has_active_filters
        and criteria.is_natural_order
        and criteria.sort_algorithm in STABLE_ALGORITHMS
        and _already_ordered(snapshot, compare, checkpoint)
    ):
        logger.debug("Fast path: publishing %d records in fetch order", len(snapshot))
        return RecomputeResult(records=tuple(snapshot), sort_seconds=None, input_count=len(snapshot))

    filtered = run_filter_chain(snapshot, build_filters(criteria, cache), checkpoint)

    started = time.perf_counter()
    ordered = sort_items(filtered, compare, criteria.sort_algorithm, checkpoint)
    elapsed = time.perf_counter() - started

    logger.debug(
        "Recompute: %d -> %d records, %s sort in %.5fs (%d dates cached)",
        len(snapshot), len(ordered), criteria.sort_algorithm.value, elapsed, len(cache),
    )
    return RecomputeResult(records=tuple(ordered), sort_seconds=elapsed, input_count=len(filtered))

"""Filter chain for the visible flight list.

Filter order:
  1. TextQueryFilter: free text over origin, destination, airline
  2. PriceRangeFilter: inclusive economy price bounds
  3. AirportFilter: origin, then destination; code set or substring
  4. DateRangeFilter: inclusive calendar date bounds, unparseable dropped
"""

import logging
from collections.abc import Callable
from datetime import date

from src.core.schemas import FlightRecord, QueryCriteria
from src.pipeline.cancellation import Checkpoint
from src.pipeline.dates import DateCache

logger = logging.getLogger(__name__)

# A filter is a callable that takes records and returns a subset.
Filter = Callable[[list[FlightRecord]], list[FlightRecord]]


class TextQueryFilter:
    """Keep records whose origin, destination or airline contains the query."""

    def __init__(self, query: str) -> None:
        self._query = query.strip().lower()

    def __call__(self, records: list[FlightRecord]) -> list[FlightRecord]:
        if not self._query:
            return records
        result = [r for r in records if self._matches(r)]
        logger.debug("TextQueryFilter: removed %d records", len(records) - len(result))
        return result

    def _matches(self, record: FlightRecord) -> bool:
        return (
            self._query in record.origin.lower()
            or self._query in record.destination.lower()
            or self._query in record.airline.lower()
        )


class PriceRangeFilter:
    """Keep records with min_price <= price_eco <= max_price. Either bound may be None."""

    def __init__(self, min_price: float | None, max_price: float | None) -> None:
        self._min = min_price
        self._max = max_price

    def __call__(self, records: list[FlightRecord]) -> list[FlightRecord]:
        if self._min is None and self._max is None:
            return records
        result = [
            r for r in records
            if (self._min is None or r.price_eco >= self._min)
            and (self._max is None or r.price_eco <= self._max)
        ]
        logger.debug("PriceRangeFilter: removed %d records", len(records) - len(result))
        return result


class AirportFilter:
    """Match one airport field against an exact code set or a substring.

    "JFK, ord" becomes the code set {JFK, ORD}. A string with no 3-character
    token, like "new", is a case-insensitive substring match instead.
    """

    def __init__(self, field: str, text: str) -> None:
        self._field = field
        self._text = text.strip().lower()
        tokens = [t.strip() for t in self._text.split(",")]
        self._codes = frozenset(t for t in tokens if len(t) == 3)

    @property
    def codes(self) -> frozenset[str]:
        return self._codes

    def __call__(self, records: list[FlightRecord]) -> list[FlightRecord]:
        if not self._text:
            return records
        result = [r for r in records if self._matches(getattr(r, self._field).lower())]
        logger.debug(
            "AirportFilter(%s): removed %d records", self._field, len(records) - len(result),
        )
        return result

    def _matches(self, value: str) -> bool:
        if self._codes:
            return value in self._codes
        return self._text in value


class DateRangeFilter:
    """Keep records whose parsed departure date falls within the bounds.

    Records with unparseable dates never match while a bound is set.
    """

    def __init__(self, start: date | None, end: date | None, cache: DateCache) -> None:
        self._start = start
        self._end = end
        self._cache = cache

    def __call__(self, records: list[FlightRecord]) -> list[FlightRecord]:
        if self._start is None and self._end is None:
            return records
        result = [r for r in records if self._matches(r)]
        logger.debug("DateRangeFilter: removed %d records", len(records) - len(result))
        return result

    def _matches(self, record: FlightRecord) -> bool:
        parsed = self._cache.get(record.depdate)
        if parsed is None:
            return False
        day = parsed.date()
        return (self._start is None or day >= self._start) and (
            self._end is None or day <= self._end
        )


def build_filters(criteria: QueryCriteria, cache: DateCache) -> list[Filter]:
    """Build the filter chain for one criteria snapshot."""
    return [
        TextQueryFilter(criteria.search_text),
        PriceRangeFilter(criteria.min_price, criteria.max_price),
        AirportFilter("origin", criteria.origin_filter),
        AirportFilter("destination", criteria.destination_filter),
        DateRangeFilter(criteria.date_start, criteria.date_end, cache),
    ]


def run_filter_chain(
    records: list[FlightRecord],
    filters: list[Filter],
    checkpoint: Checkpoint | None = None,
) -> list[FlightRecord]:
    """Apply filters in order, returning the surviving records."""
    result = records
    for f in filters:
        if checkpoint is not None:
            checkpoint.check()
        result = f(result)
    return result

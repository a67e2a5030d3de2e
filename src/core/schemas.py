"""Core data models for the flight browser pipeline."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SortKey(str, Enum):
    PRICE = "price"
    DATE = "date"
    DURATION = "duration"


class SortOrder(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class SortAlgorithm(str, Enum):
    BUBBLE = "bubble"
    SELECTION = "selection"
    INSERTION = "insertion"
    QUICK = "quick"
    MERGE = "merge"


class SearchField(str, Enum):
    ID = "id"
    ORIGIN = "origin"
    DESTINATION = "destination"
    AIRLINE = "airline"
    PRICE = "price"


class SearchAlgorithm(str, Enum):
    LINEAR = "linear"
    BINARY = "binary"
    HASH = "hash"


class FlightRecord(BaseModel):
    """A single flight row as stored upstream.

    Frozen: records are shared between the coordinating loop and worker
    threads, so nothing may mutate them after loading.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    csv_id: int = 0
    depdate: str = ""
    origin: str
    destination: str
    airline: str = ""
    duration: float = 0.0
    price_eco: float = 0.0
    price_exec: float | None = None
    price_premium: float | None = None
    demand: str = ""
    early: int = 0
    population: int = 0


class QueryCriteria(BaseModel):
    """Every active search/filter/sort selection at one point in time."""

    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    min_price: float | None = None
    max_price: float | None = None
    origin_filter: str = ""
    destination_filter: str = ""
    date_start: date | None = None
    date_end: date | None = None
    sort_key: SortKey = SortKey.DATE
    sort_order: SortOrder = SortOrder.ASCENDING
    sort_algorithm: SortAlgorithm = SortAlgorithm.MERGE

    @property
    def normalized_text(self) -> str:
        return self.search_text.strip().lower()

    @property
    def has_active_filters(self) -> bool:
        """True when any field filter (not the free-text query) is set."""
        return (
            self.min_price is not None
            or self.max_price is not None
            or bool(self.origin_filter.strip())
            or bool(self.destination_filter.strip())
            or self.date_start is not None
            or self.date_end is not None
        )

    @property
    def is_natural_order(self) -> bool:
        """True when the requested sort matches the store's fetch order."""
        return self.sort_key is SortKey.DATE and self.sort_order is SortOrder.ASCENDING


class ParsedCriteria(BaseModel):
    """Criteria extracted from a natural-language request. Every field is optional."""

    origin: str | None = None
    destination: str | None = None
    min_price: float | None = Field(default=None, ge=0.0, le=100_000.0)
    max_price: float | None = Field(default=None, ge=0.0, le=100_000.0)
    date_start: str | None = None
    date_end: str | None = None
    airline: str | None = None
    sort_key: SortKey | None = None
    sort_order: SortOrder | None = None


class RunRecord(BaseModel):
    """Log entry for one completed sort run."""

    model_config = ConfigDict(frozen=True)

    id: int
    sort_key: SortKey
    sort_order: SortOrder
    algorithm: SortAlgorithm
    record_count: int
    duration_seconds: float


class SearchRunRecord(BaseModel):
    """Log entry for one completed search run."""

    model_config = ConfigDict(frozen=True)

    id: int
    query: str
    field: SearchField
    algorithm: SearchAlgorithm
    matches: int
    duration_seconds: float

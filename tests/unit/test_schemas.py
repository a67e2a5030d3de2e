"""Tests for core schemas: FlightRecord, QueryCriteria, run records."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.core.schemas import (
    FlightRecord,
    ParsedCriteria,
    QueryCriteria,
    RunRecord,
    SearchAlgorithm,
    SearchField,
    SearchRunRecord,
    SortAlgorithm,
    SortKey,
    SortOrder,
)


def _make_flight(**overrides: object) -> FlightRecord:
    defaults: dict[str, object] = {
        "id": 101,
        "depdate": "2025-12-01",
        "origin": "YYZ",
        "destination": "LAX",
        "airline": "Air Canada",
        "duration": 310,
        "price_eco": 199,
    }
    defaults.update(overrides)
    return FlightRecord(**defaults)  # type: ignore[arg-type]


class TestFlightRecord:
    def test_create_with_required_fields(self) -> None:
        f = FlightRecord(id=1, origin="JFK", destination="SFO")
        assert f.depdate == ""
        assert f.price_exec is None
        assert f.price_premium is None
        assert f.population == 0

    def test_numeric_coercion(self) -> None:
        f = _make_flight(duration=310, price_eco=199)
        assert f.duration == 310.0
        assert isinstance(f.price_eco, float)

    def test_frozen_model(self) -> None:
        f = _make_flight()
        with pytest.raises(ValidationError):
            f.origin = "JFK"  # type: ignore[misc]

    def test_equality(self) -> None:
        assert _make_flight() == _make_flight()
        assert _make_flight(id=1) != _make_flight(id=2)


class TestQueryCriteria:
    def test_defaults(self) -> None:
        c = QueryCriteria()
        assert c.search_text == ""
        assert c.sort_key is SortKey.DATE
        assert c.sort_order is SortOrder.ASCENDING
        assert c.sort_algorithm is SortAlgorithm.MERGE
        assert c.has_active_filters is False
        assert c.is_natural_order is True

    def test_normalized_text(self) -> None:
        assert QueryCriteria(search_text="  Delta ").normalized_text == "delta"

    @pytest.mark.parametrize(
        "changes",
        [
            {"min_price": 0.0},
            {"max_price": 300.0},
            {"origin_filter": "JFK"},
            {"destination_filter": "lax"},
            {"date_start": date(2025, 1, 1)},
            {"date_end": date(2025, 1, 31)},
        ],
    )
    def test_has_active_filters(self, changes: dict[str, object]) -> None:
        assert QueryCriteria(**changes).has_active_filters is True  # type: ignore[arg-type]

    def test_whitespace_filters_inactive(self) -> None:
        assert QueryCriteria(origin_filter="   ").has_active_filters is False

    def test_text_is_not_a_field_filter(self) -> None:
        assert QueryCriteria(search_text="JFK").has_active_filters is False

    def test_not_natural_order(self) -> None:
        assert QueryCriteria(sort_order=SortOrder.DESCENDING).is_natural_order is False
        assert QueryCriteria(sort_key=SortKey.PRICE).is_natural_order is False

    def test_enum_from_string(self) -> None:
        c = QueryCriteria(sort_key="price", sort_algorithm="quick")  # type: ignore[arg-type]
        assert c.sort_key is SortKey.PRICE
        assert c.sort_algorithm is SortAlgorithm.QUICK

    def test_invalid_enum_rejected(self) -> None:
        with pytest.raises(ValidationError):
            QueryCriteria(sort_algorithm="bogo")  # type: ignore[arg-type]


class TestParsedCriteria:
    def test_all_optional(self) -> None:
        assert ParsedCriteria().model_dump(exclude_none=True) == {}

    def test_price_range_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ParsedCriteria(max_price=-1)
        with pytest.raises(ValidationError):
            ParsedCriteria(min_price=100_001)


class TestRunRecords:
    def test_run_record(self) -> None:
        r = RunRecord(
            id=1,
            sort_key=SortKey.PRICE,
            sort_order=SortOrder.ASCENDING,
            algorithm=SortAlgorithm.QUICK,
            record_count=10,
            duration_seconds=0.01,
        )
        assert r.algorithm is SortAlgorithm.QUICK
        with pytest.raises(ValidationError):
            r.id = 2  # type: ignore[misc]

    def test_search_run_record(self) -> None:
        r = SearchRunRecord(
            id=3,
            query="JFK",
            field=SearchField.ORIGIN,
            algorithm=SearchAlgorithm.HASH,
            matches=2,
            duration_seconds=0.001,
        )
        assert r.matches == 2
        assert r.field is SearchField.ORIGIN

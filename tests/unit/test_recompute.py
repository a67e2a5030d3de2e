"""Tests for the filter-then-sort recompute over a snapshot."""

import pytest

from src.core.schemas import FlightRecord, QueryCriteria, SortAlgorithm, SortKey, SortOrder
from src.pipeline.cancellation import Checkpoint, ComputationCancelled
from src.pipeline.dates import DateCache
from src.pipeline.recompute import build_comparator, compute_visible


def _record(id: int, price: float = 100.0, duration: float = 120.0, depdate: str = "2025-01-01", origin: str = "JFK") -> FlightRecord:
    return FlightRecord(
        id=id,
        origin=origin,
        destination="LAX",
        price_eco=price,
        duration=duration,
        depdate=depdate,
    )


class TestBuildComparator:
    def test_price_ascending_and_descending(self) -> None:
        cache = DateCache()
        cheap, dear = _record(1, price=50), _record(2, price=500)
        asc = build_comparator(SortKey.PRICE, SortOrder.ASCENDING, cache)
        desc = build_comparator(SortKey.PRICE, SortOrder.DESCENDING, cache)
        assert asc(cheap, dear) < 0
        assert desc(cheap, dear) > 0
        assert asc(cheap, cheap) == 0

    def test_duration(self) -> None:
        compare = build_comparator(SortKey.DURATION, SortOrder.ASCENDING, DateCache())
        assert compare(_record(1, duration=90), _record(2, duration=60)) > 0

    def test_dates_across_formats(self) -> None:
        compare = build_comparator(SortKey.DATE, SortOrder.ASCENDING, DateCache())
        assert compare(_record(1, depdate="31/12/2024"), _record(2, depdate="2025-01-01")) < 0

    def test_unparseable_date_is_latest(self) -> None:
        cache = DateCache()
        bad, good = _record(1, depdate="TBD"), _record(2, depdate="2025-01-01")
        asc = build_comparator(SortKey.DATE, SortOrder.ASCENDING, cache)
        desc = build_comparator(SortKey.DATE, SortOrder.DESCENDING, cache)
        assert asc(bad, good) > 0
        assert asc(good, bad) < 0
        assert desc(bad, good) < 0
        assert asc(bad, _record(3, depdate="??")) == 0


class TestComputeVisible:
    def test_fast_path_returns_snapshot(self) -> None:
        records = [_record(3, depdate="2025-01-01"), _record(1, depdate="2025-03-01")]
        result = compute_visible(records, QueryCriteria())
        assert [r.id for r in result.records] == [3, 1]
        assert result.sort_seconds is None
        assert result.input_count == 2

    def test_fast_path_skipped_for_out_of_order_snapshot(self) -> None:
        records = [_record(3, depdate="2025-03-01"), _record(1, depdate="2025-01-01")]
        result = compute_visible(records, QueryCriteria())
        assert [r.id for r in result.records] == [1, 3]
        assert result.sort_seconds is not None

    def test_fast_path_matches_full_path_for_mixed_formats(self) -> None:
        # Text order of the depdate column: "01/06/2024" < "2024-03-01".
        records = [_record(1, depdate="01/06/2024"), _record(2, depdate="2024-03-01")]
        fast = compute_visible(records, QueryCriteria())
        full = compute_visible(records, QueryCriteria(), fast_path=False)
        assert [r.id for r in fast.records] == [r.id for r in full.records] == [2, 1]

    def test_fast_path_needs_stable_algorithm(self) -> None:
        records = [_record(i, depdate="2025-01-01") for i in range(1, 6)]
        result = compute_visible(records, QueryCriteria(sort_algorithm=SortAlgorithm.QUICK))
        assert result.sort_seconds is not None

    def test_fast_path_disabled_sorts(self) -> None:
        records = [_record(3, depdate="2025-03-01"), _record(1, depdate="2025-01-01")]
        result = compute_visible(records, QueryCriteria(), fast_path=False)
        assert [r.id for r in result.records] == [1, 3]
        assert result.sort_seconds is not None

    def test_price_filter_then_sort(self) -> None:
        records = [_record(i, price=p) for i, p in enumerate([400, 50, 150, 300, 100])]
        criteria = QueryCriteria(
            min_price=100, max_price=300,
            sort_key=SortKey.PRICE, sort_order=SortOrder.ASCENDING,
        )
        result = compute_visible(records, criteria)
        assert [r.price_eco for r in result.records] == [100, 150, 300]
        assert result.input_count == 3

    def test_unparseable_dates_sort_last_ascending(self) -> None:
        records = [
            _record(1, depdate="not-a-date"),
            _record(2, depdate="2025-02-01"),
            _record(3, depdate="2025-01-01"),
        ]
        criteria = QueryCriteria(search_text="jfk")
        assert [r.id for r in compute_visible(records, criteria).records] == [3, 2, 1]

    def test_unparseable_dates_sort_first_descending(self) -> None:
        records = [
            _record(1, depdate="2025-01-01"),
            _record(2, depdate="not-a-date"),
            _record(3, depdate="2025-02-01"),
        ]
        criteria = QueryCriteria(sort_order=SortOrder.DESCENDING)
        assert [r.id for r in compute_visible(records, criteria).records] == [2, 3, 1]

    @pytest.mark.parametrize("algorithm", list(SortAlgorithm))
    def test_algorithms_agree(self, algorithm: SortAlgorithm) -> None:
        records = [_record(i, price=(i * 37) % 11) for i in range(40)]
        base = QueryCriteria(sort_key=SortKey.PRICE, sort_order=SortOrder.DESCENDING)
        reference = compute_visible(records, base)
        result = compute_visible(records, base.model_copy(update={"sort_algorithm": algorithm}))
        assert [r.price_eco for r in result.records] == [r.price_eco for r in reference.records]

    def test_text_query_filters(self) -> None:
        records = [_record(1, origin="JFK"), _record(2, origin="ORD")]
        result = compute_visible(records, QueryCriteria(search_text=" ord "))
        assert [r.id for r in result.records] == [2]

    def test_empty_result(self) -> None:
        result = compute_visible([_record(1)], QueryCriteria(search_text="zzz"))
        assert result.records == ()
        assert result.input_count == 0

    def test_snapshot_not_mutated(self) -> None:
        records = [_record(2, price=9), _record(1, price=1)]
        compute_visible(records, QueryCriteria(sort_key=SortKey.PRICE))
        assert [r.id for r in records] == [2, 1]

    def test_cancelled(self) -> None:
        records = [_record(i, price=i) for i in range(100)]
        with pytest.raises(ComputationCancelled):
            compute_visible(
                records,
                QueryCriteria(sort_key=SortKey.PRICE, sort_order=SortOrder.DESCENDING),
                checkpoint=Checkpoint(lambda: True, every=16),
            )

    def test_unparseable_date_scenario(self) -> None:
        records = [
            _record(1, depdate="2025-01-01"),
            _record(2, depdate="not-a-date"),
            _record(3, depdate="2024-01-01"),
        ]
        result = compute_visible(records, QueryCriteria(), fast_path=False)
        assert [r.depdate for r in result.records] == ["2024-01-01", "2025-01-01", "not-a-date"]

    def test_exact_code_filter_ignores_case(self) -> None:
        records = [
            _record(1, origin="JFK"),
            _record(2, origin="lax"),
            _record(3, origin="ord"),
            _record(4, origin="Jfk"),
        ]
        result = compute_visible(records, QueryCriteria(origin_filter="JFK, ORD"))
        assert sorted(r.id for r in result.records) == [1, 3, 4]

    def test_fast_path_matches_full_path_for_iso_dates(self) -> None:
        records = [_record(i, depdate=f"2025-01-{(i // 3) + 1:02d}") for i in range(1, 20)]
        fast = compute_visible(records, QueryCriteria())
        full = compute_visible(records, QueryCriteria(), fast_path=False)
        assert fast.records == full.records

"""FlightsViewModel: the coordinating context of the browsing pipeline.

Data flow:
  1. PaginationController pulls pages from the RecordStore
  2. Each committed page triggers a recompute
  3. Recompute snapshots (records, criteria) and runs filter + sort in a
     worker thread
  4. The latest generation publishes the visible list
  5. Publish may trigger another page load (empty result or idle prefetch)

Every mutation of shared state happens on the event loop that owns this
object. Worker threads only ever see immutable snapshots.
"""

import asyncio
import itertools
import logging
from collections.abc import Coroutine
from datetime import date
from typing import Any

from src.core.config import Settings
from src.core.schemas import (
    FlightRecord,
    QueryCriteria,
    RunRecord,
    SearchAlgorithm,
    SearchField,
    SearchRunRecord,
    SortAlgorithm,
    SortKey,
    SortOrder,
)
from src.criteria.parser import CriteriaParseError, CriteriaParser, merge_parsed_criteria
from src.pipeline.cancellation import ComputationCancelled, Generation
from src.pipeline.observable import Observable
from src.pipeline.pagination import PaginationController
from src.pipeline.recompute import RecomputeResult, compute_visible
from src.pipeline.searching import timed_search
from src.store.gateway import RecordStore

logger = logging.getLogger(__name__)


class FlightsViewModel:
    """Owns pagination, criteria, the visible list and run histories.

    Setters must be called from the event loop; they schedule background
    work and return immediately. Use ``await wait_idle()`` to let scheduled
    work settle.

    Usage::

        vm = FlightsViewModel(store, settings)
        await vm.load()
        vm.set_sort_key(SortKey.PRICE)
        await vm.wait_idle()
        rows = vm.flights.value
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Settings | None = None,
        criteria_parser: CriteriaParser | None = None,
    ) -> None:
        settings = settings or Settings()
        self._pagination_config = settings.pagination
        self._pipeline_config = settings.pipeline
        self._criteria_parser = criteria_parser

        self._pager = PaginationController(
            store,
            page_size=self._pagination_config.page_size,
            on_page=self._on_page_loaded,
        )
        self._criteria = QueryCriteria(
            sort_key=self._pipeline_config.sort_key,
            sort_order=self._pipeline_config.sort_order,
            sort_algorithm=self._pipeline_config.sort_algorithm,
        )
        self._previous_criteria: QueryCriteria | None = None
        self._search_field = SearchField.ORIGIN
        self._search_algorithm = SearchAlgorithm.LINEAR

        self._generation = Generation()
        self._debounce_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._run_ids = itertools.count(1)
        self._search_run_ids = itertools.count(1)

        self.flights: Observable[tuple[FlightRecord, ...]] = Observable(())
        self.is_loading: Observable[bool] = Observable(False)
        self.bulk_progress: Observable[float | None] = Observable(None)
        self.run_history: Observable[tuple[RunRecord, ...]] = Observable(())
        self.search_run_history: Observable[tuple[SearchRunRecord, ...]] = Observable(())
        self.search_results: Observable[tuple[FlightRecord, ...]] = Observable(())
        self.criteria_error: Observable[str | None] = Observable(None)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def criteria(self) -> QueryCriteria:
        return self._criteria

    @property
    def all_records(self) -> tuple[FlightRecord, ...]:
        return self._pager.records

    @property
    def has_more(self) -> bool:
        return self._pager.has_more

    @property
    def search_field(self) -> SearchField:
        return self._search_field

    @property
    def search_algorithm(self) -> SearchAlgorithm:
        return self._search_algorithm

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Reset everything and fetch the first page."""
        self._cancel_pending()
        self._pager.reset()
        self.flights.publish(())
        self.is_loading.publish(True)
        try:
            await self._pager.load_next_page()
        finally:
            self.is_loading.publish(False)

    async def load_more_if_needed(self, anchor: FlightRecord | None = None) -> bool:
        """Load the next page when *anchor* is near the end of the visible list.

        A None anchor always requests the next page.
        """
        if anchor is None:
            return await self._pager.load_next_page()

        visible = self.flights.value
        threshold = max(0, len(visible) - self._pagination_config.load_more_margin)
        for index, record in enumerate(visible):
            if record.id == anchor.id:
                if index >= threshold:
                    return await self._pager.load_next_page()
                return False
        return False

    async def load_everything(self) -> int:
        """Bulk-load every remaining page, publishing progress as it goes."""
        try:
            return await self._pager.load_all(progress=self.bulk_progress.publish)
        finally:
            self.bulk_progress.publish(None)

    def _on_page_loaded(self, count: int) -> None:
        logger.debug("Page committed with %d records — recomputing", count)
        self.request_recompute()

    def _request_more(self) -> None:
        if self._pager.has_more and not self._pager.in_flight:
            self._schedule(self._pager.load_next_page())

    # ------------------------------------------------------------------
    # Criteria setters
    # ------------------------------------------------------------------

    def set_search_text(self, text: str) -> None:
        """Update the free-text query; recompute after the debounce window."""
        self._criteria = self._criteria.model_copy(update={"search_text": text})
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = self._schedule(self._debounced_recompute())

    def set_min_price(self, value: float | None) -> None:
        self._update_criteria(min_price=value)

    def set_max_price(self, value: float | None) -> None:
        self._update_criteria(max_price=value)

    def set_origin_filter(self, value: str) -> None:
        self._update_criteria(origin_filter=value)

    def set_destination_filter(self, value: str) -> None:
        self._update_criteria(destination_filter=value)

    def set_date_start(self, value: date | None) -> None:
        self._update_criteria(date_start=value)

    def set_date_end(self, value: date | None) -> None:
        self._update_criteria(date_end=value)

    def set_sort_key(self, value: SortKey | str) -> None:
        self._update_criteria(sort_key=SortKey(value))

    def set_sort_order(self, value: SortOrder | str) -> None:
        self._update_criteria(sort_order=SortOrder(value))

    def set_sort_algorithm(self, value: SortAlgorithm | str) -> None:
        self._update_criteria(sort_algorithm=SortAlgorithm(value))

    def reset_filters(self) -> None:
        """Clear every field filter in one recompute. Text and sort are kept."""
        self._update_criteria(
            min_price=None,
            max_price=None,
            origin_filter="",
            destination_filter="",
            date_start=None,
            date_end=None,
        )

    def set_search_field(self, value: SearchField | str) -> None:
        self._search_field = SearchField(value)

    def set_search_algorithm(self, value: SearchAlgorithm | str) -> None:
        self._search_algorithm = SearchAlgorithm(value)

    def _update_criteria(self, **changes: Any) -> None:
        data = self._criteria.model_dump()
        data.update(changes)
        self._criteria = QueryCriteria.model_validate(data)
        self.request_recompute()

    # ------------------------------------------------------------------
    # Natural-language criteria
    # ------------------------------------------------------------------

    async def apply_natural_query(self, text: str) -> bool:
        """Parse *text* into criteria and apply them.

        On failure the current criteria stay untouched and criteria_error is
        published. Returns True if new criteria were applied.
        """
        if self._criteria_parser is None:
            self.criteria_error.publish("No criteria parser configured")
            return False
        try:
            parsed = await self._criteria_parser.parse(text)
        except CriteriaParseError as e:
            logger.warning("Criteria parse failed for %r: %s", text, e)
            self.criteria_error.publish(str(e))
            return False

        self._previous_criteria = self._criteria
        self._criteria = merge_parsed_criteria(self._criteria, parsed)
        self.criteria_error.publish(None)
        logger.info("Applied parsed criteria: %s", parsed.model_dump(exclude_none=True))
        self.request_recompute()
        return True

    def restore_previous_criteria(self) -> bool:
        """Roll back to the criteria in effect before the last natural query."""
        if self._previous_criteria is None:
            return False
        self._criteria = self._previous_criteria
        self._previous_criteria = None
        self.criteria_error.publish(None)
        self.request_recompute()
        return True

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def request_recompute(self) -> None:
        """Start a recompute now, superseding any in-flight one.

        A superseded run is not cancelled from here: its worker stops at the
        next checkpoint, and a result that still lands is dropped.
        """
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None

        token = self._generation.advance()
        snapshot = self._pager.records
        criteria = self._criteria
        self._schedule(self._recompute(token, snapshot, criteria))

    async def _debounced_recompute(self) -> None:
        await asyncio.sleep(self._pipeline_config.debounce_seconds)
        self._debounce_task = None
        self.request_recompute()

    async def _recompute(
        self,
        token: int,
        snapshot: tuple[FlightRecord, ...],
        criteria: QueryCriteria,
    ) -> None:
        checkpoint = self._generation.checkpoint(token, every=self._pipeline_config.yield_every)
        try:
            result = await asyncio.to_thread(
                compute_visible,
                snapshot,
                criteria,
                checkpoint=checkpoint,
                fast_path=self._pipeline_config.fast_path,
            )
        except ComputationCancelled:
            logger.debug("Recompute %d superseded mid-run", token)
            return
        except Exception:
            logger.warning("Recompute %d failed — visible list unchanged", token, exc_info=True)
            return

        if not self._generation.is_current(token):
            logger.debug("Recompute %d finished after being superseded — dropped", token)
            return
        self._publish(result, criteria)

    def _publish(self, result: RecomputeResult, criteria: QueryCriteria) -> None:
        self.flights.publish(result.records)

        if result.sort_seconds is not None:
            record = RunRecord(
                id=next(self._run_ids),
                sort_key=criteria.sort_key,
                sort_order=criteria.sort_order,
                algorithm=criteria.sort_algorithm,
                record_count=result.input_count,
                duration_seconds=result.sort_seconds,
            )
            self.run_history.publish(self.run_history.value + (record,))
            logger.info(
                "run%d: key=%s, order=%s, algo=%s, n=%d, time=%.5fs",
                record.id, record.sort_key.value, record.sort_order.value,
                record.algorithm.value, record.record_count, record.duration_seconds,
            )

        if not result.records and self._pager.has_more:
            logger.debug("Empty result with more pages upstream — fetching next page")
            self._request_more()
        elif (
            not criteria.normalized_text
            and self._pager.record_count < self._pagination_config.prefetch_threshold
        ):
            self._request_more()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def execute_search(self, query: str) -> tuple[FlightRecord, ...]:
        """Search all loaded records with the selected field and algorithm."""
        query = query.strip()
        if not query:
            self.search_results.publish(())
            return ()
        matches = await self._run_search(query, self._search_field, self._search_algorithm)
        self.search_results.publish(matches)
        return matches

    async def run_all_search_benchmarks(self, query: str) -> dict[SearchAlgorithm, int]:
        """Run every search algorithm on the same snapshot. Returns match counts."""
        query = query.strip()
        counts: dict[SearchAlgorithm, int] = {}
        if not query:
            return counts
        for algorithm in SearchAlgorithm:
            matches = await self._run_search(query, self._search_field, algorithm)
            counts[algorithm] = len(matches)
        return counts

    async def _run_search(
        self, query: str, field: SearchField, algorithm: SearchAlgorithm,
    ) -> tuple[FlightRecord, ...]:
        snapshot = self._pager.records
        matches, elapsed = await asyncio.to_thread(timed_search, snapshot, query, field, algorithm)
        record = SearchRunRecord(
            id=next(self._search_run_ids),
            query=query,
            field=field,
            algorithm=algorithm,
            matches=len(matches),
            duration_seconds=elapsed,
        )
        self.search_run_history.publish(self.search_run_history.value + (record,))
        logger.info(
            "run%d: key=%s, algo=%s, query=%s, matches=%d, time=%.5fs",
            record.id, field.value, algorithm.value, query, record.matches, elapsed,
        )
        return tuple(matches)

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_pending(self) -> None:
        self._generation.advance()
        for task in list(self._tasks):
            task.cancel()
        self._debounce_task = None

    async def wait_idle(self) -> None:
        """Wait until no background page load, debounce or recompute remains."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel all background work."""
        self._cancel_pending()
        await self.wait_idle()

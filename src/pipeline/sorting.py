"""Five interchangeable sorting algorithms behind one comparator contract.

A comparator returns a negative number, zero, or a positive number when its
first argument orders before, equal to, or after its second. Every algorithm
returns a new list and leaves the input untouched.

Stability: bubble, insertion and merge keep equal elements in input order;
selection and quick do not.
"""

import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from src.core.schemas import SortAlgorithm
from src.pipeline.cancellation import Checkpoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

Comparator = Callable[[T, T], int]


def bubble_sort(
    items: Sequence[T], compare: Comparator[T], checkpoint: Checkpoint | None = None,
) -> list[T]:
    """Adjacent-pair passes until a pass performs no swap. O(n^2)."""
    result = list(items)
    end = len(result) - 1
    swapped = True
    while swapped and end > 0:
        swapped = False
        for i in range(end):
            if checkpoint is not None:
                checkpoint.tick()
            if compare(result[i], result[i + 1]) > 0:
                result[i], result[i + 1] = result[i + 1], result[i]
                swapped = True
        end -= 1
    return result


def selection_sort(
    items: Sequence[T], compare: Comparator[T], checkpoint: Checkpoint | None = None,
) -> list[T]:
    """Swap the minimum of the unsorted remainder into each position. O(n^2)."""
    result = list(items)
    n = len(result)
    for i in range(n - 1):
        smallest = i
        for j in range(i + 1, n):
            if checkpoint is not None:
                checkpoint.tick()
            if compare(result[j], result[smallest]) < 0:
                smallest = j
        if smallest != i:
            result[i], result[smallest] = result[smallest], result[i]
    return result


def insertion_sort(
    items: Sequence[T], compare: Comparator[T], checkpoint: Checkpoint | None = None,
) -> list[T]:
    """Shift each element left past strictly greater predecessors. O(n^2)."""
    result = list(items)
    for i in range(1, len(result)):
        current = result[i]
        j = i - 1
        if checkpoint is not None:
            checkpoint.tick()
        while j >= 0 and compare(result[j], current) > 0:
            if checkpoint is not None:
                checkpoint.tick()
            result[j + 1] = result[j]
            j -= 1
        result[j + 1] = current
    return result


def quick_sort(
    items: Sequence[T], compare: Comparator[T], checkpoint: Checkpoint | None = None,
) -> list[T]:
    """Lomuto partition around the last element. Average O(n log n).

    Recurses into the smaller partition and loops on the larger one, so
    already-sorted input cannot exhaust the interpreter's recursion limit.
    """
    result = list(items)
    _quick_sort_range(result, 0, len(result) - 1, compare, checkpoint)
    return result


def _quick_sort_range(
    items: list[T],
    low: int,
    high: int,
    compare: Comparator[T],
    checkpoint: Checkpoint | None,
) -> None:
    while low < high:
        pivot_index = _partition(items, low, high, compare, checkpoint)
        if pivot_index - low < high - pivot_index:
            _quick_sort_range(items, low, pivot_index - 1, compare, checkpoint)
            low = pivot_index + 1
        else:
            _quick_sort_range(items, pivot_index + 1, high, compare, checkpoint)
            high = pivot_index - 1


def _partition(
    items: list[T],
    low: int,
    high: int,
    compare: Comparator[T],
    checkpoint: Checkpoint | None,
) -> int:
    pivot = items[high]
    boundary = low
    for j in range(low, high):
        if checkpoint is not None:
            checkpoint.tick()
        if compare(items[j], pivot) < 0:
            items[boundary], items[j] = items[j], items[boundary]
            boundary += 1
    items[boundary], items[high] = items[high], items[boundary]
    return boundary


def merge_sort(
    items: Sequence[T], compare: Comparator[T], checkpoint: Checkpoint | None = None,
) -> list[T]:
    """Top-down merge sort. O(n log n) worst case, stable."""
    if len(items) <= 1:
        return list(items)
    middle = len(items) // 2
    left = merge_sort(items[:middle], compare, checkpoint)
    right = merge_sort(items[middle:], compare, checkpoint)
    return _merge(left, right, compare, checkpoint)


def _merge(
    left: list[T], right: list[T], compare: Comparator[T], checkpoint: Checkpoint | None,
) -> list[T]:
    merged: list[T] = []
    i = j = 0
    while i < len(left) and j < len(right):
        if checkpoint is not None:
            checkpoint.tick()
        # Ties take the left head to stay stable.
        if compare(left[i], right[j]) <= 0:
            merged.append(left[i])
            i += 1
        else:
            merged.append(right[j])
            j += 1
    merged.extend(left[i:])
    merged.extend(right[j:])
    return merged


_ALGORITHMS: dict[SortAlgorithm, Callable[..., list]] = {
    SortAlgorithm.BUBBLE: bubble_sort,
    SortAlgorithm.SELECTION: selection_sort,
    SortAlgorithm.INSERTION: insertion_sort,
    SortAlgorithm.QUICK: quick_sort,
    SortAlgorithm.MERGE: merge_sort,
}


def sort_items(
    items: Sequence[T],
    compare: Comparator[T],
    algorithm: SortAlgorithm,
    checkpoint: Checkpoint | None = None,
) -> list[T]:
    """Sort *items* with the selected algorithm."""
    func = _ALGORITHMS[SortAlgorithm(algorithm)]
    logger.debug("Sorting %d items with %s sort", len(items), func.__name__)
    return func(items, compare, checkpoint)

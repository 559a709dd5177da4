"""
Summary statistics over a partition of rows.

Numeric functions skip null / non-numeric cells instead of failing; ``sum``
of nothing is 0 while ``avg``, ``min``, ``max`` and ``median`` of nothing are
``None``.  ``distinct_count`` ignores nulls.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from src.reports.cells import is_empty, to_number, to_text
from src.reports.definition import Aggregation


def _numbers(values: Sequence[Any]) -> list[float]:
    return [n for n in (to_number(v) for v in values) if n is not None]


def _sum(values: Sequence[Any]) -> float:
    return sum(_numbers(values))


def _avg(values: Sequence[Any]) -> float | None:
    nums = _numbers(values)
    return sum(nums) / len(nums) if nums else None


def _min(values: Sequence[Any]) -> float | None:
    nums = _numbers(values)
    return min(nums) if nums else None


def _max(values: Sequence[Any]) -> float | None:
    nums = _numbers(values)
    return max(nums) if nums else None


def median(values: Sequence[Any]) -> float | None:
    """Median of the numeric cells; even-sized inputs average the two middle values."""
    nums = sorted(_numbers(values))
    if not nums:
        return None
    mid = len(nums) // 2
    if len(nums) % 2 == 0:
        return (nums[mid - 1] + nums[mid]) / 2
    return nums[mid]


def _count(values: Sequence[Any]) -> int:
    return len(values)


def _distinct_count(values: Sequence[Any]) -> int:
    return len({to_text(v) for v in values if not is_empty(v)})


_FUNCTIONS: dict[str, Callable[[Sequence[Any]], Any]] = {
    "sum": _sum,
    "avg": _avg,
    "min": _min,
    "max": _max,
    "median": median,
    "count": _count,
    "distinct_count": _distinct_count,
}


def compute(aggregation: Aggregation, rows: Sequence[Mapping[str, Any]]) -> Any:
    """Compute one aggregation over *rows*."""
    func = _FUNCTIONS.get(aggregation.function)
    if func is None:
        raise ValueError(f"Unsupported aggregation function '{aggregation.function}'")
    return func([row.get(aggregation.field) for row in rows])

from __future__ import annotations

from fractions import Fraction
import heapq
import logging

import numpy as np

from fair_ordering import order_by_splittable_ascending, order_by_unsplittable_descending
from random_stream import RandomSource
from splitting_ranges import RangePosition, SplittingRange


logger = logging.getLogger(__name__)


def count_cut_capacity(
    candidates: np.ndarray,
    lo: int,
    hi: int,
    min_instances_per_bin: int,
    limit: int,
) -> int:
    """Most cuts that fit in ``[lo, hi]`` at least ``min_instances_per_bin`` apart.

    Taking the leftmost candidate each time is optimal. Counting stops at
    ``limit`` since no range can be given more than the whole budget.
    """
    capacity = 0
    position = lo
    while capacity < limit:
        idx = int(np.searchsorted(candidates, position, side="left"))
        if idx >= candidates.size or candidates[idx] > hi:
            break
        capacity += 1
        position = int(candidates[idx]) + min_instances_per_bin
    return capacity


def _check_quota_invariants(
    ranges: list[SplittingRange],
    capacities: list[int],
    budget: int,
) -> None:
    total = sum(r.assigned_cut_count for r in ranges)
    assert total <= budget, "assigned more cuts than the budget allows"
    for splitting_range, capacity in zip(ranges, capacities):
        assert 0 <= splitting_range.assigned_cut_count <= capacity
        if len(ranges) <= budget:
            assert splitting_range.assigned_cut_count >= 1


def assign_cut_quotas(
    ranges: list[SplittingRange],
    candidates: np.ndarray,
    max_bins: int,
    min_instances_per_bin: int,
    rng: RandomSource,
) -> int:
    """Populate ``assigned_cut_count`` on every range and return the total.

    Each range first gets one cut. When there are more ranges than the budget
    of ``max_bins - 1`` cuts, the ranges flanked by the longest unsplittable
    runs win. Leftover cuts go one at a time to the range whose splittable
    values would form the largest pieces (``count / (cuts + 1)``), never past
    what the range can hold with ``min_instances_per_bin`` per bin.
    """
    budget = max_bins - 1
    capacities = [
        count_cut_capacity(
            candidates,
            *r.cut_window(min_instances_per_bin),
            min_instances_per_bin,
            budget,
        )
        for r in ranges
    ]
    assert all(capacity >= 1 for capacity in capacities)

    by_splittable = order_by_splittable_ascending(ranges, rng)
    by_unsplittable = order_by_unsplittable_descending(ranges, rng)

    if len(ranges) <= budget:
        for splitting_range in ranges:
            splitting_range.assigned_cut_count = 1
    else:
        for splitting_range in ranges:
            splitting_range.assigned_cut_count = 0
        for i in by_unsplittable[:budget]:
            ranges[i].assigned_cut_count = 1

    remaining = budget - sum(r.assigned_cut_count for r in ranges)

    splittable_rank = [0] * len(ranges)
    for rank, i in enumerate(by_splittable):
        splittable_rank[i] = rank

    heap = [
        (-Fraction(r.splittable_count, r.assigned_cut_count + 1), splittable_rank[i], i)
        for i, r in enumerate(ranges)
        if 1 <= r.assigned_cut_count < capacities[i]
    ]
    heapq.heapify(heap)
    while remaining > 0 and heap:
        _, rank, i = heapq.heappop(heap)
        splitting_range = ranges[i]
        splitting_range.assigned_cut_count += 1
        remaining -= 1
        if splitting_range.assigned_cut_count < capacities[i]:
            heapq.heappush(
                heap,
                (
                    -Fraction(
                        splitting_range.splittable_count,
                        splitting_range.assigned_cut_count + 1,
                    ),
                    rank,
                    i,
                ),
            )

    _check_quota_invariants(ranges, capacities, budget)
    assigned = budget - remaining
    logger.debug(
        f"assigned {assigned} of {budget} cuts across {len(ranges)} splitting ranges"
    )
    return assigned


def _nearest_candidate(
    candidates: np.ndarray,
    target: float,
    earliest: int,
    latest: int,
    rng: RandomSource,
) -> int:
    first = int(np.searchsorted(candidates, earliest, side="left"))
    last = int(np.searchsorted(candidates, latest, side="right")) - 1
    assert first <= last

    idx = int(np.searchsorted(candidates, target, side="left"))
    idx = min(max(idx, first), last)
    below = idx - 1
    if below >= first:
        gap_below = abs(target - candidates[below])
        gap_above = abs(candidates[idx] - target)
        if gap_below < gap_above or (gap_below == gap_above and rng.next(2) == 0):
            idx = below
    return int(candidates[idx])


def _cut_targets(
    splitting_range: SplittingRange,
    count: int,
    min_instances_per_bin: int,
) -> list[float]:
    """Ideal positions for the range's cuts, in ascending order.

    A run shared with a neighbouring range counts half towards the span. A run
    at the edge of the data belongs to this range alone, so the span reaches
    the edge. Targets that would fall outside the cut window are pinned to its
    edge and the remaining cuts are spread over what is left.
    """
    flags = splitting_range.flags
    lo, hi = splitting_range.cut_window(min_instances_per_bin)

    if flags & RangePosition.FIRST:
        span_start = 0.0
    else:
        span_start = splitting_range.start - splitting_range.prior_unsplittable_count / 2.0
    if flags & RangePosition.LAST:
        span_end = float(count)
    else:
        span_end = splitting_range.end + splitting_range.subsequent_unsplittable_count / 2.0

    left: list[float] = []
    right: list[float] = []
    free = splitting_range.assigned_cut_count
    while free > 0:
        step = (span_end - span_start) / (free + 1)
        if span_start + step < lo:
            left.append(float(lo))
            span_start = float(lo)
            lo += min_instances_per_bin
        elif span_end - step > hi:
            right.append(float(hi))
            span_end = float(hi)
            hi -= min_instances_per_bin
        else:
            break
        free -= 1

    step = (span_end - span_start) / (free + 1)
    middle = [span_start + step * (i + 1) for i in range(free)]
    return left + middle + right[::-1]


def place_cuts(
    splitting_range: SplittingRange,
    candidates: np.ndarray,
    count: int,
    min_instances_per_bin: int,
    rng: RandomSource,
) -> list[int]:
    """Positions for the range's assigned cuts, spread as evenly as allowed.

    Each cut takes the candidate nearest its target that still leaves room for
    the cuts after it.
    """
    cut_count = splitting_range.assigned_cut_count
    if cut_count == 0:
        return []

    lo, hi = splitting_range.cut_window(min_instances_per_bin)

    latest = [0] * cut_count
    bound = hi
    for i in range(cut_count - 1, -1, -1):
        idx = int(np.searchsorted(candidates, bound, side="right")) - 1
        assert idx >= 0 and candidates[idx] >= lo, "quota exceeds range capacity"
        latest[i] = int(candidates[idx])
        bound = latest[i] - min_instances_per_bin

    targets = _cut_targets(splitting_range, count, min_instances_per_bin)

    positions: list[int] = []
    earliest = lo
    for target, last in zip(targets, latest):
        position = _nearest_candidate(candidates, target, earliest, last, rng)
        positions.append(position)
        earliest = position + min_instances_per_bin
    return positions


def cut_value(below: float, above: float) -> float:
    """Boundary strictly above ``below`` and no higher than ``above``."""
    below = float(below)
    above = float(above)
    mid = below * 0.5 + above * 0.5
    if below < mid <= above:
        return mid
    return above


def finalize_cut_values(
    values: np.ndarray,
    ranges: list[SplittingRange],
    candidates: np.ndarray,
    min_instances_per_bin: int,
    rng: RandomSource,
) -> np.ndarray:
    # ranges are in start order, so concatenating keeps the cuts ascending
    cut_points: list[float] = []
    for splitting_range in ranges:
        for position in place_cuts(
            splitting_range, candidates, int(values.size), min_instances_per_bin, rng
        ):
            cut_points.append(cut_value(values[position - 1], values[position]))
    return np.asarray(cut_points, dtype=np.float64)

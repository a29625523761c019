from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
import logging
import sys

import numpy as np


logger = logging.getLogger(__name__)

# One record holds eight native-size fields and the ordering tables hold one
# index per record.
_RANGE_RECORD_BYTES = 9 * np.dtype(np.intp).itemsize


class RangePosition(IntFlag):
    MIDDLE = 0x0
    FIRST = 0x1
    LAST = 0x2


@dataclass
class SplittingRange:
    """Stretch of the sorted values where cut points may be placed.

    A range sits between two unsplittable runs (or a run and the edge of the
    data). ``splittable_count`` can be zero when two runs abut; the boundary
    between them is still a valid cut.
    """

    start: int
    splittable_count: int
    prior_unsplittable_count: int
    subsequent_unsplittable_count: int
    assigned_cut_count: int = 1
    flags: RangePosition = RangePosition.MIDDLE
    unsplittable_either_side_max: int = field(init=False)
    unsplittable_either_side_min: int = field(init=False)

    def __post_init__(self) -> None:
        self.unsplittable_either_side_max = max(
            self.prior_unsplittable_count, self.subsequent_unsplittable_count
        )
        self.unsplittable_either_side_min = min(
            self.prior_unsplittable_count, self.subsequent_unsplittable_count
        )

    @property
    def end(self) -> int:
        return self.start + self.splittable_count

    def cut_window(self, min_instances_per_bin: int) -> tuple[int, int]:
        """Inclusive bounds on cut positions that keep both outer bins large enough.

        A neighbouring run already holds at least ``min_instances_per_bin``
        items, so only an open edge of the data needs the margin.
        """
        lo = self.start
        if self.prior_unsplittable_count == 0:
            lo += min_instances_per_bin
        hi = self.end
        if self.subsequent_unsplittable_count == 0:
            hi -= min_instances_per_bin
        return lo, hi


def remove_missing_values(values: np.ndarray) -> int:
    """Compact the non-NaN entries to the front of ``values`` in place.

    Returns the number of non-missing values; entries past that count are
    left unspecified.
    """
    missing = np.isnan(values)
    if not np.any(missing):
        return int(values.size)

    kept = values[~missing]
    values[: kept.size] = kept
    return int(kept.size)


def sort_values(values: np.ndarray, count: int) -> tuple[float, float]:
    """Sort the first ``count`` values in place and return their min and max."""
    head = values[:count]
    head.sort()
    return float(head[0]), float(head[-1])


def get_count_bins_max(had_missing: bool, max_bins: int) -> int:
    if max_bins < 2:
        raise ValueError("max_bins must be at least 2")
    # Missing values take bin 0, so a power of two like 256 would need one more
    # index than its storage allows. Below 16 a lost bin costs too much.
    if had_missing and max_bins >= 16 and (max_bins & (max_bins - 1)) == 0:
        return max_bins - 1
    return max_bins


def get_avg_length(count: int, max_bins: int, min_instances_per_bin: int) -> int:
    """Minimum run length that makes a run of equal values unsplittable.

    The ceiling guarantees every splitting range can hold at least one cut.
    """
    if max_bins < 2:
        raise ValueError("max_bins must be at least 2")
    if min_instances_per_bin < 1:
        raise ValueError("min_instances_per_bin must be at least 1")

    avg_length = -(-count // max_bins)
    return max(avg_length, min_instances_per_bin)


def candidate_cut_positions(values: np.ndarray) -> np.ndarray:
    """Indices ``j`` where ``values[j - 1] != values[j]`` in sorted ``values``."""
    return np.flatnonzero(values[1:] != values[:-1]) + 1


def has_viable_split(
    candidates: np.ndarray,
    count: int,
    min_instances_per_bin: int,
) -> bool:
    lo = np.searchsorted(candidates, min_instances_per_bin, side="left")
    return bool(lo < candidates.size and candidates[lo] <= count - min_instances_per_bin)


def check_table_size(count_ranges: int) -> None:
    if count_ranges > sys.maxsize // _RANGE_RECORD_BYTES:
        raise OverflowError(
            f"splitting range table for {count_ranges} ranges exceeds addressable memory"
        )


def segment_splitting_ranges(
    values: np.ndarray,
    avg_length: int,
    min_instances_per_bin: int,
    candidates: np.ndarray | None = None,
) -> list[SplittingRange]:
    """Split sorted ``values`` into splitting ranges bounded by long equal runs.

    Runs of at least ``avg_length`` equal values separate the ranges. Stretches
    at either edge of the data with fewer than ``min_instances_per_bin`` items
    cannot anchor a cut and are folded into the neighbouring run. An empty
    list means no cut point can be placed anywhere.
    """
    count = int(values.size)
    if candidates is None:
        candidates = candidate_cut_positions(values)

    run_starts = np.concatenate(([0], candidates))
    run_lengths = np.diff(np.concatenate((run_starts, [count])))
    long_runs = np.flatnonzero(run_lengths >= avg_length)

    if long_runs.size == 0:
        if not has_viable_split(candidates, count, min_instances_per_bin):
            logger.debug("no position leaves enough values on both sides; no ranges")
            return []
        check_table_size(1)
        return [
            SplittingRange(
                start=0,
                splittable_count=count,
                prior_unsplittable_count=0,
                subsequent_unsplittable_count=0,
                flags=RangePosition.FIRST | RangePosition.LAST,
            )
        ]

    check_table_size(int(long_runs.size) + 1)

    ranges: list[SplittingRange] = []
    splittable_start = 0
    prior_run_length = 0
    for run_idx in long_runs:
        run_start = int(run_starts[run_idx])
        run_length = int(run_lengths[run_idx])
        splittable_count = run_start - splittable_start
        if splittable_start != 0 or min_instances_per_bin <= splittable_count:
            ranges.append(
                SplittingRange(
                    start=splittable_start,
                    splittable_count=splittable_count,
                    prior_unsplittable_count=prior_run_length,
                    subsequent_unsplittable_count=run_length,
                )
            )
        prior_run_length = run_length
        splittable_start = run_start + run_length

    trailing_count = count - splittable_start
    if min_instances_per_bin <= trailing_count:
        ranges.append(
            SplittingRange(
                start=splittable_start,
                splittable_count=trailing_count,
                prior_unsplittable_count=prior_run_length,
                subsequent_unsplittable_count=0,
            )
        )

    if ranges:
        ranges[0].flags |= RangePosition.FIRST
        ranges[-1].flags |= RangePosition.LAST

    logger.debug(
        f"segmented {count} values into {len(ranges)} splitting ranges "
        f"around {long_runs.size} unsplittable runs (avg_length={avg_length})"
    )
    return ranges

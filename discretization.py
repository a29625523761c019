from __future__ import annotations

from dataclasses import dataclass, field
import logging
import operator

import numpy as np

from cut_assignment import assign_cut_quotas, finalize_cut_values
from random_stream import RandomStream
from splitting_ranges import (
    candidate_cut_positions,
    get_avg_length,
    get_count_bins_max,
    remove_missing_values,
    segment_splitting_ranges,
    sort_values,
)


logger = logging.getLogger(__name__)

STATUS_SUCCESS = 0
STATUS_FAILURE = 1

_MAX_NATIVE_SIZE = int(np.iinfo(np.intp).max)


@dataclass
class QuantileCutResult:
    status: int
    cut_points: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    had_missing: bool = False
    min_value: float = 0.0
    max_value: float = 0.0
    count_non_missing: int = 0

    @property
    def count_cut_points(self) -> int:
        return int(self.cut_points.size)

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


def _native_int(name: str, value) -> int | None:
    try:
        converted = operator.index(value)
    except TypeError:
        logger.warning(f"generate_quantile_cut_points: {name}={value!r} is not an integer")
        return None
    if converted > _MAX_NATIVE_SIZE:
        logger.warning(f"generate_quantile_cut_points: {name}={converted} exceeds the native size range")
        return None
    return converted


def generate_quantile_cut_points(
    random_seed: int,
    values: np.ndarray,
    max_bins: int,
    min_instances_per_bin: int = 1,
) -> QuantileCutResult:
    """Choose quantile cut points for one feature's values.

    A float64 ``values`` array is modified in place: NaNs are dropped, and the
    remaining ``count_non_missing`` values are moved to the front and sorted.
    Runs of equal values are never split, every bin gets at least
    ``min_instances_per_bin`` values, and ties are broken by a stream seeded
    with ``random_seed``, so equal inputs and seeds give equal cut points.

    Bad arguments and internal failures do not raise; they return a result
    with ``status == STATUS_FAILURE`` and zeroed outputs.
    """
    seed = _native_int("random_seed", random_seed)
    bins = _native_int("max_bins", max_bins)
    min_instances = _native_int("min_instances_per_bin", min_instances_per_bin)
    if seed is None or bins is None or min_instances is None:
        return QuantileCutResult(status=STATUS_FAILURE)
    if bins < 0:
        logger.warning(f"generate_quantile_cut_points: max_bins={bins} is negative")
        return QuantileCutResult(status=STATUS_FAILURE)
    min_instances = max(min_instances, 1)

    try:
        values = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        logger.warning(f"generate_quantile_cut_points: values are not numeric: {exc}")
        return QuantileCutResult(status=STATUS_FAILURE)
    if values.ndim != 1:
        logger.warning(f"generate_quantile_cut_points: values must be 1D, got shape {values.shape}")
        return QuantileCutResult(status=STATUS_FAILURE)

    logger.debug(
        f"generate_quantile_cut_points: random_seed={seed}, count={values.size}, "
        f"max_bins={bins}, min_instances_per_bin={min_instances}"
    )

    if values.size == 0:
        return QuantileCutResult(status=STATUS_SUCCESS)

    count = remove_missing_values(values)
    had_missing = count != values.size
    if count == 0:
        return QuantileCutResult(status=STATUS_SUCCESS, had_missing=had_missing)

    min_value, max_value = sort_values(values, count)
    result = QuantileCutResult(
        status=STATUS_SUCCESS,
        had_missing=had_missing,
        min_value=min_value,
        max_value=max_value,
        count_non_missing=count,
    )

    if bins <= 1:
        if bins == 0:
            logger.warning("generate_quantile_cut_points: max_bins=0 with values; no cut points")
        return result
    # one cut needs min_instances on each side
    if count < 2 * min_instances:
        return result

    sorted_values = values[:count]
    try:
        effective_bins = get_count_bins_max(had_missing, bins)
        avg_length = get_avg_length(count, effective_bins, min_instances)
        candidates = candidate_cut_positions(sorted_values)
        ranges = segment_splitting_ranges(sorted_values, avg_length, min_instances, candidates)
        if ranges:
            rng = RandomStream(seed)
            assign_cut_quotas(ranges, candidates, effective_bins, min_instances, rng)
            result.cut_points = finalize_cut_values(
                sorted_values, ranges, candidates, min_instances, rng
            )
    except (MemoryError, OverflowError) as exc:
        logger.warning(f"generate_quantile_cut_points: splitting range table unavailable: {exc}")
        return QuantileCutResult(status=STATUS_FAILURE)
    except Exception:
        logger.warning("generate_quantile_cut_points: unexpected failure", exc_info=True)
        return QuantileCutResult(status=STATUS_FAILURE)

    logger.debug(
        f"generate_quantile_cut_points: count_cut_points={result.count_cut_points}, "
        f"had_missing={had_missing}"
    )
    return result


def discretize(
    had_missing: bool,
    cut_points: np.ndarray,
    values: np.ndarray,
    out: np.ndarray | None = None,
) -> np.ndarray:
    """Map values to bin indices using ascending, lower-bound-inclusive cut points.

    A value lands in bin ``i`` when ``cut_points[i - 1] <= value < cut_points[i]``.
    With ``had_missing`` set, bin 0 is reserved for NaN and the other indices
    move up by one; otherwise NaN maps to -1.
    """
    cut_points = np.asarray(cut_points, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    assert np.all(cut_points[1:] > cut_points[:-1]), "cut points must be strictly increasing"

    bins = np.searchsorted(cut_points, values, side="right").astype(np.int64)
    missing = np.isnan(values)
    if had_missing:
        bins += 1
        bins[missing] = 0
    else:
        bins[missing] = -1

    if out is None:
        return bins
    out[...] = bins
    return out

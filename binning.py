from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from discretization import discretize, generate_quantile_cut_points


@dataclass
class FeatureBins:
    cut_points: np.ndarray
    had_missing: bool = False
    min_value: float = 0.0
    max_value: float = 0.0

    @property
    def n_bins(self) -> int:
        # bin 0 is reserved for missing values when the feature had any
        return int(self.cut_points.size) + 1 + int(self.had_missing)


def build_bins(
    X: np.ndarray,
    max_bins: int = 32,
    min_samples_per_bin: int = 1,
    random_state: int = 0,
) -> list[FeatureBins]:
    """Build per-feature quantile cut points used to map values to integer bins."""
    if max_bins < 2:
        raise ValueError("max_bins must be at least 2")

    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError("X must be a 2D array")

    rng = np.random.default_rng(random_state)
    feature_bins: list[FeatureBins] = []
    for feature_idx in range(X.shape[1]):
        # the cut point search compacts and sorts its input in place
        column = np.array(X[:, feature_idx], dtype=np.float64)
        result = generate_quantile_cut_points(
            random_seed=int(rng.integers(1, 2**31 - 1)),
            values=column,
            max_bins=max_bins,
            min_instances_per_bin=min_samples_per_bin,
        )
        if not result.succeeded:
            raise RuntimeError(f"Failed to build bins for feature {feature_idx}")

        feature_bins.append(
            FeatureBins(
                cut_points=result.cut_points,
                had_missing=result.had_missing,
                min_value=result.min_value,
                max_value=result.max_value,
            )
        )

    return feature_bins


def apply_bins(X: np.ndarray, feature_bins: list[FeatureBins]) -> np.ndarray:
    """Apply previously built cut points to produce an int32 binned matrix.

    Missing values go to bin 0 for features that had missing values when the
    bins were built, and to -1 otherwise.
    """
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError("X must be a 2D array")
    if X.shape[1] != len(feature_bins):
        raise ValueError("feature_bins length must match number of features")

    n_samples, n_features = X.shape
    X_bin = np.empty((n_samples, n_features), dtype=np.int32)

    for feature_idx, bins in enumerate(feature_bins):
        X_bin[:, feature_idx] = discretize(
            bins.had_missing,
            bins.cut_points,
            X[:, feature_idx],
        )

    return np.ascontiguousarray(X_bin)


@dataclass
class QuantileBinnerParams:
    max_bins: int = 256
    min_samples_per_bin: int = 1
    random_state: int = 0

    def __post_init__(self) -> None:
        if self.max_bins < 2:
            raise ValueError("max_bins must be at least 2")
        if self.min_samples_per_bin < 1:
            raise ValueError("min_samples_per_bin must be positive")


class QuantileBinner:
    """Fit per-feature quantile cut points once and bin any matrix with them."""

    def __init__(self, params: QuantileBinnerParams | None = None) -> None:
        self.params = params or QuantileBinnerParams()
        self.feature_bins_: list[FeatureBins] | None = None

    @property
    def n_bins_per_feature(self) -> list[int]:
        if self.feature_bins_ is None:
            raise RuntimeError("QuantileBinner must be fitted first")
        return [bins.n_bins for bins in self.feature_bins_]

    def fit(self, X: np.ndarray) -> "QuantileBinner":
        self.feature_bins_ = build_bins(
            X,
            max_bins=self.params.max_bins,
            min_samples_per_bin=self.params.min_samples_per_bin,
            random_state=self.params.random_state,
        )
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        if self.feature_bins_ is None:
            raise RuntimeError("QuantileBinner must be fitted before transform")
        return apply_bins(X, self.feature_bins_)

    def fit_transform(self, X: np.ndarray) -> np.ndarray:
        return self.fit(X).transform(X)

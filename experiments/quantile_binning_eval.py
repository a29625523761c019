import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np

# Allow running as: python experiments/quantile_binning_eval.py
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from binning import FeatureBins, apply_bins, build_bins


def synthetic_features(n_samples: int, random_state: int):
    rng = np.random.default_rng(random_state)

    normal = rng.normal(size=n_samples)

    # Long runs of a few repeated values mixed with continuous noise.
    heavy_duplicates = rng.choice([0.0, 1.0, 5.0], size=n_samples, p=[0.4, 0.3, 0.3])
    noisy = rng.uniform(size=n_samples) < 0.2
    heavy_duplicates[noisy] = rng.normal(loc=2.5, size=int(noisy.sum()))

    with_missing = rng.exponential(size=n_samples)
    with_missing[rng.uniform(size=n_samples) < 0.1] = np.nan

    constant = np.full(n_samples, 3.0)

    X = np.column_stack([normal, heavy_duplicates, with_missing, constant])
    names = ["normal", "heavy_duplicates", "with_missing", "constant"]
    return X.astype(np.float64), names


def load_csv(path: str, max_rows: int | None):
    import pandas as pd

    dataset_path = Path(path)
    if not dataset_path.exists():
        raise FileNotFoundError(f"Dataset not found: {dataset_path}")

    df = pd.read_csv(dataset_path, low_memory=False, nrows=max_rows)
    numeric = df.select_dtypes(include=[np.number])
    if numeric.shape[1] == 0:
        raise ValueError(f"No numeric columns in {dataset_path}")
    return numeric.to_numpy(dtype=np.float64), list(numeric.columns)


def summarize_feature(column_bins: np.ndarray, bins: FeatureBins) -> dict:
    counts = np.bincount(column_bins[column_bins >= 0], minlength=bins.n_bins)
    if bins.had_missing:
        # bin 0 holds the missing values
        counts = counts[1:]
    occupied = counts[counts > 0]
    return {
        "cuts": int(bins.cut_points.size),
        "missing": bins.had_missing,
        "min_bin": int(occupied.min()) if occupied.size else 0,
        "max_bin": int(occupied.max()) if occupied.size else 0,
        "range": (bins.min_value, bins.max_value),
    }


def main():
    parser = argparse.ArgumentParser(description="Quantile cut point checks on synthetic or CSV data")
    parser.add_argument("--csv", type=str, default=None, help="CSV file; numeric columns are binned")
    parser.add_argument("--max-rows", type=int, default=None)
    parser.add_argument("--n-samples", type=int, default=5000)
    parser.add_argument("--max-bins", type=int, default=32)
    parser.add_argument("--min-samples-per-bin", type=int, default=1)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", type=str, default="WARNING")

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())

    if args.csv:
        X, names = load_csv(args.csv, args.max_rows)
    else:
        X, names = synthetic_features(args.n_samples, args.seed)

    print(f"Binning n={X.shape[0]} d={X.shape[1]} max_bins={args.max_bins}")

    start = time.perf_counter()
    feature_bins = build_bins(
        X,
        max_bins=args.max_bins,
        min_samples_per_bin=args.min_samples_per_bin,
        random_state=args.seed,
    )
    X_bin = apply_bins(X, feature_bins)
    elapsed = time.perf_counter() - start

    for feature_idx, name in enumerate(names):
        summary = summarize_feature(X_bin[:, feature_idx], feature_bins[feature_idx])
        print(
            f"{name}"
            f" cuts={summary['cuts']}"
            f" missing={summary['missing']}"
            f" min_bin={summary['min_bin']}"
            f" max_bin={summary['max_bin']}"
            f" range=[{summary['range'][0]:.4g}, {summary['range'][1]:.4g}]"
        )
    print(f"time={elapsed:.3f}s")


if __name__ == "__main__":
    main()

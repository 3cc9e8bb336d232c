"""
features.py - Two interchangeable feature sets for GRF classification.

  1. "stats": mean / std / max of each 101-sample direction block
             → 9 features per trial
  2. "pca"  : principal-component projection of the 303 force samples,
             keeping the shortest prefix of components that explains at
             least 95 % of the training variance (≈48 on GaitRec)

PCA axes are fitted on the training matrix only; the test matrix is
projected onto those same axes.

Usage:
    python -m gaitrec.features       # from project root
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA

from gaitrec.load_data import (
    DIRECTIONS,
    FORCE_COLUMNS,
    LABEL_COL,
    N_SAMPLES,
    force_matrix,
    load_gaitrec,
)
from gaitrec.partition import split_train_test

# ---------------------------------------------------------------------------
# Feature names / parameters
# ---------------------------------------------------------------------------
STAT_NAMES = ["mean", "std", "max"]

STATS_FEATURE_COLUMNS = [
    f"{d}_{stat}" for d in DIRECTIONS for stat in STAT_NAMES
]                                                     # 3 × 3 = 9

VARIANCE_THRESHOLD = 0.95
FEATURE_SETS = ("pca", "stats")

# Guards the threshold comparison against float round-off in the
# cumulative sum (e.g. 0.9499999999999).
_VARIANCE_EPS = 1e-10


def _check_force_matrix(X: np.ndarray) -> np.ndarray:
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2 or X.shape[1] != len(FORCE_COLUMNS):
        raise ValueError(
            f"Expected a (N, {len(FORCE_COLUMNS)}) force matrix, "
            f"got shape {X.shape}"
        )
    return X


# ---------------------------------------------------------------------------
# Strategy 1: summary statistics
# ---------------------------------------------------------------------------

def extract_stats_features(X: np.ndarray) -> np.ndarray:
    """Compute mean, std and max for each of the 3 direction blocks.

    Parameters
    ----------
    X : (N, 303) - force samples, direction-major (F_V, F_AP, F_ML).

    Returns
    -------
    feats : (N, 9) - columns in ``STATS_FEATURE_COLUMNS`` order.
    """
    X = _check_force_matrix(X)
    blocks = X.reshape(X.shape[0], len(DIRECTIONS), N_SAMPLES)   # (N, 3, 101)

    means = blocks.mean(axis=2)                       # (N, 3)
    stds = blocks.std(axis=2, ddof=1)                 # (N, 3)
    maxs = blocks.max(axis=2)                         # (N, 3)

    # Interleave so each direction's stats stay contiguous.
    return np.stack([means, stds, maxs], axis=2).reshape(X.shape[0], -1)


# ---------------------------------------------------------------------------
# Strategy 2: principal components
# ---------------------------------------------------------------------------

@dataclass
class PCAFeatures:
    """Result of fitting PCA on the training matrix."""

    pca: PCA
    n_components: int
    cumulative_variance: np.ndarray
    train: np.ndarray
    test: np.ndarray

    @property
    def columns(self) -> list[str]:
        return [f"PC{i}" for i in range(1, self.n_components + 1)]

    @property
    def retained_variance(self) -> float:
        return float(self.cumulative_variance[self.n_components - 1])


def explained_variance_curve(pca: PCA) -> np.ndarray:
    """Cumulative explained-variance ratio of a fitted PCA."""
    return np.cumsum(pca.explained_variance_ratio_)


def n_components_for_variance(
    cumulative: np.ndarray,
    threshold: float = VARIANCE_THRESHOLD,
) -> int:
    """Smallest k such that cumulative[k - 1] >= threshold.

    Falls back to all components if the curve never reaches the threshold.
    """
    cumulative = np.asarray(cumulative, dtype=np.float64)
    if cumulative.size == 0:
        raise ValueError("Empty explained-variance curve")
    if not 0.0 < threshold <= 1.0:
        raise ValueError(f"Variance threshold must be in (0, 1], got {threshold}")
    k = int(np.searchsorted(cumulative, threshold - _VARIANCE_EPS, side="left")) + 1
    return min(k, cumulative.size)


def fit_pca_features(
    X_train: np.ndarray,
    X_test: np.ndarray,
    variance_threshold: float = VARIANCE_THRESHOLD,
) -> PCAFeatures:
    """Fit PCA on *X_train* and project both matrices onto the retained
    leading components.
    """
    X_train = _check_force_matrix(X_train)
    X_test = _check_force_matrix(X_test)

    pca = PCA()
    train_scores = pca.fit_transform(X_train)
    cumulative = explained_variance_curve(pca)
    k = n_components_for_variance(cumulative, variance_threshold)

    test_scores = pca.transform(X_test)
    return PCAFeatures(
        pca=pca,
        n_components=k,
        cumulative_variance=cumulative,
        train=train_scores[:, :k],
        test=test_scores[:, :k],
    )


# ---------------------------------------------------------------------------
# DataFrame helpers
# ---------------------------------------------------------------------------

def _labelled_frame(
    feats: np.ndarray,
    columns: list[str],
    source: pd.DataFrame,
) -> pd.DataFrame:
    df = pd.DataFrame(feats, columns=columns, index=source.index)
    df[LABEL_COL] = source[LABEL_COL].to_numpy()
    return df


def build_feature_frames(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    feature_set: str,
    variance_threshold: float = VARIANCE_THRESHOLD,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Return (train_feats, test_feats) DataFrames: feature columns plus
    CLASS_LABEL, indexed like the input trials.
    """
    X_train = force_matrix(train_df)
    X_test = force_matrix(test_df)

    if feature_set == "stats":
        return (
            _labelled_frame(extract_stats_features(X_train),
                            STATS_FEATURE_COLUMNS, train_df),
            _labelled_frame(extract_stats_features(X_test),
                            STATS_FEATURE_COLUMNS, test_df),
        )
    if feature_set == "pca":
        result = fit_pca_features(X_train, X_test, variance_threshold)
        print(f"  PCA: {result.n_components} components explain "
              f"{100 * result.retained_variance:.2f} % of training variance")
        return (
            _labelled_frame(result.train, result.columns, train_df),
            _labelled_frame(result.test, result.columns, test_df),
        )
    raise ValueError(f"Unknown feature set {feature_set!r}; "
                     f"expected one of {FEATURE_SETS}")


def feature_cols(df: pd.DataFrame) -> list[str]:
    """Return the feature column names (everything except the label)."""
    return [c for c in df.columns if c != LABEL_COL]


# ---------------------------------------------------------------------------
# Summary printing
# ---------------------------------------------------------------------------

def print_variance_table(result: PCAFeatures, top_n: int = 10) -> None:
    print("=" * 50)
    print("PCA explained variance (training set)")
    print("=" * 50)
    print(f"{'PC':<6} {'Ratio':>10} {'Cumulative':>12}")
    print("-" * 30)
    ratios = result.pca.explained_variance_ratio_
    for i in range(min(top_n, len(ratios))):
        print(f"{i + 1:<6} {ratios[i]:>10.4f} {result.cumulative_variance[i]:>12.4f}")
    print("-" * 30)
    print(f"Components for ≥{100 * VARIANCE_THRESHOLD:.0f} % variance: "
          f"{result.n_components}")


def main() -> None:
    df = load_gaitrec()
    train_df, test_df = split_train_test(df)

    result = fit_pca_features(force_matrix(train_df), force_matrix(test_df))
    print_variance_table(result)

    stats = pd.DataFrame(
        extract_stats_features(force_matrix(train_df)),
        columns=STATS_FEATURE_COLUMNS,
    )
    print("\nSummary-statistics features (training set):")
    print(stats.describe().T[["mean", "std", "min", "max"]].round(3))


if __name__ == "__main__":
    main()

"""
models.py - kNN and Random Forest classifiers for GaitRec class labels.

Models
------
1. k-Nearest Neighbours - sklearn, k chosen from {5, 10, …, 70} by
                           stratified 10-fold CV on the training set
2. Random Forest         - sklearn, default ensemble settings

Evaluation produces a multi-class confusion matrix (rows = actual,
columns = predicted) plus accuracy, Cohen's kappa and per-class
one-vs-rest sensitivity / specificity.

Usage:
    python -m gaitrec.models         # from project root (stats features)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.neighbors import KNeighborsClassifier

from gaitrec.features import build_feature_frames, feature_cols
from gaitrec.load_data import CLASS_LABELS, LABEL_COL, load_gaitrec
from gaitrec.partition import split_train_test

# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------
KNN_K_GRID = list(range(5, 75, 5))      # 5, 10, …, 70
CV_FOLDS = 10
RANDOM_STATE = 42

KNN_NAME = "kNN"
RF_NAME = "Random Forest"
MODEL_NAMES = [KNN_NAME, RF_NAME]


# ---------------------------------------------------------------------------
# Model fitting
# ---------------------------------------------------------------------------

def feasible_k_grid(k_grid: list[int], smallest_fit: int) -> list[int]:
    """Keep the k values that a training fold of *smallest_fit* samples
    can support; raise ValueError if none remain.
    """
    grid = [k for k in k_grid if 1 <= k <= smallest_fit]
    if not grid:
        raise ValueError(
            f"No k in {list(k_grid)} fits a CV training fold of "
            f"{smallest_fit} samples"
        )
    dropped = sorted(set(k_grid) - set(grid))
    if dropped:
        print(f"[WARNING] k values {dropped} exceed the smallest CV training "
              f"fold ({smallest_fit} samples) and were skipped")
    return grid


def fit_knn(
    X: pd.DataFrame,
    y: np.ndarray,
    k_grid: list[int] = KNN_K_GRID,
    cv_folds: int = CV_FOLDS,
) -> GridSearchCV:
    """Grid-search ``n_neighbors`` by CV accuracy, refit the best k on all
    of (X, y) and return the fitted search object.
    """
    cv = StratifiedKFold(n_splits=cv_folds, shuffle=True,
                         random_state=RANDOM_STATE)
    smallest_fit = min(len(tr) for tr, _ in cv.split(X, y))
    grid = feasible_k_grid(k_grid, smallest_fit)
    search = GridSearchCV(
        estimator=KNeighborsClassifier(),
        param_grid={"n_neighbors": grid},
        cv=cv,
        scoring="accuracy",
        refit=True,
    )
    search.fit(X, y)
    return search


def cv_results_table(search: GridSearchCV) -> pd.DataFrame:
    """Mean/std CV accuracy per k, sorted by k."""
    res = pd.DataFrame(search.cv_results_)
    return (
        res[["param_n_neighbors", "mean_test_score", "std_test_score"]]
        .rename(columns={
            "param_n_neighbors": "k",
            "mean_test_score": "cv_accuracy",
            "std_test_score": "cv_accuracy_std",
        })
        .astype({"k": int})
        .sort_values("k")
        .reset_index(drop=True)
    )


def fit_random_forest(X: pd.DataFrame, y: np.ndarray) -> RandomForestClassifier:
    rf = RandomForestClassifier(random_state=RANDOM_STATE)
    rf.fit(X, y)
    return rf


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

@dataclass
class EvaluationResult:
    model: str
    feature_set: str
    confusion: pd.DataFrame        # rows = actual, columns = predicted
    accuracy: float
    kappa: float
    per_class: pd.DataFrame
    params: dict


def confusion_table(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    labels: list[str],
) -> pd.DataFrame:
    """Confusion matrix as a labelled DataFrame (rows actual, cols predicted)."""
    cm = confusion_matrix(y_true, y_pred, labels=labels)
    return pd.DataFrame(
        cm,
        index=pd.Index(labels, name="actual"),
        columns=pd.Index(labels, name="predicted"),
    )


def _ratio(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    num = num.astype(np.float64)
    den = den.astype(np.float64)
    out = np.full_like(num, np.nan)
    np.divide(num, den, out=out, where=den > 0)
    return out


def per_class_metrics(confusion: pd.DataFrame) -> pd.DataFrame:
    """One-vs-rest metrics for every class of *confusion*.

    Columns: support, sensitivity, specificity, precision, balanced_accuracy.
    NaN where a denominator is zero.
    """
    cm = confusion.to_numpy()
    total = cm.sum()
    tp = np.diag(cm)
    fn = cm.sum(axis=1) - tp
    fp = cm.sum(axis=0) - tp
    tn = total - tp - fn - fp

    sensitivity = _ratio(tp, tp + fn)
    specificity = _ratio(tn, tn + fp)
    return pd.DataFrame(
        {
            "support": tp + fn,
            "sensitivity": sensitivity,
            "specificity": specificity,
            "precision": _ratio(tp, tp + fp),
            "balanced_accuracy": (sensitivity + specificity) / 2,
        },
        index=confusion.index.rename("class"),
    )


def ordered_labels(*label_arrays: np.ndarray) -> list[str]:
    """Labels present in any array: GaitRec classes first in their usual
    order, then anything else sorted. Missing values are ignored.
    """
    present: set = set()
    for arr in label_arrays:
        present |= set(pd.Series(arr).dropna())
    labels = [c for c in CLASS_LABELS if c in present]
    return labels + sorted(present - set(labels))


def evaluate(
    model: str,
    feature_set: str,
    y_true: np.ndarray,
    y_pred: np.ndarray,
    labels: list[str] | None = None,
    params: dict | None = None,
) -> EvaluationResult:
    if labels is None:
        labels = ordered_labels(y_true, y_pred)
    confusion = confusion_table(y_true, y_pred, labels)
    return EvaluationResult(
        model=model,
        feature_set=feature_set,
        confusion=confusion,
        accuracy=float(accuracy_score(y_true, y_pred)),
        kappa=float(cohen_kappa_score(y_true, y_pred, labels=labels)),
        per_class=per_class_metrics(confusion),
        params=dict(params or {}),
    )


def print_evaluation(result: EvaluationResult) -> None:
    """Print confusion matrix + per-class metrics for one model."""
    title = f"{result.model} ({result.feature_set} features)"
    print(f"\n{'— ' + title + ' —':^60}")
    if result.params:
        print("  " + ", ".join(f"{k}={v}" for k, v in result.params.items()))

    print("\nConfusion matrix (rows = actual, columns = predicted):")
    print(result.confusion.to_string())

    print(f"\n  Accuracy : {result.accuracy:.3f}")
    print(f"  Kappa    : {result.kappa:.3f}")

    print(f"\n{'Class':<8} {'Support':>8} {'Sens':>8} {'Spec':>8} "
          f"{'Prec':>8} {'BalAcc':>8}")
    print("-" * 52)
    for label, r in result.per_class.iterrows():
        print(f"{label:<8} {int(r.support):>8} {r.sensitivity:>8.3f} "
              f"{r.specificity:>8.3f} {r.precision:>8.3f} "
              f"{r.balanced_accuracy:>8.3f}")


# ---------------------------------------------------------------------------
# Main sanity test
# ---------------------------------------------------------------------------

def main() -> None:
    df = load_gaitrec()
    train_df, test_df = split_train_test(df)
    train_feats, test_feats = build_feature_frames(train_df, test_df, "stats")
    cols = feature_cols(train_feats)

    X_train, y_train = train_feats[cols], train_feats[LABEL_COL].to_numpy()
    X_test, y_test = test_feats[cols], test_feats[LABEL_COL].to_numpy()
    print(f"Train set : {len(y_train):,} trials × {len(cols)} features")
    print(f"Test  set : {len(y_test):,} trials")

    search = fit_knn(X_train, y_train)
    print("\nkNN cross-validation:")
    print(cv_results_table(search).to_string(index=False))
    knn_result = evaluate(KNN_NAME, "stats", y_test,
                          search.predict(X_test), params=search.best_params_)
    print_evaluation(knn_result)

    rf = fit_random_forest(X_train, y_train)
    print_evaluation(evaluate(RF_NAME, "stats", y_test,
                              rf.predict(X_test)))


if __name__ == "__main__":
    main()

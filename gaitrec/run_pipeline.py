"""
run_pipeline.py - End-to-end GaitRec classification run.

For each feature set (PCA, summary statistics) fits a kNN model (k chosen
by CV on the training set) and a Random Forest, predicts the canonical
GaitRec test set and prints confusion matrices plus an aggregate table.

Nothing is written to disk.

Usage:
    python -m gaitrec.run_pipeline   # from project root
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from gaitrec.features import (
    FEATURE_SETS,
    VARIANCE_THRESHOLD,
    build_feature_frames,
    feature_cols,
)
from gaitrec.load_data import LABEL_COL, _DATA_DIR, load_gaitrec, print_summary
from gaitrec.models import (
    CV_FOLDS,
    KNN_K_GRID,
    KNN_NAME,
    RF_NAME,
    EvaluationResult,
    cv_results_table,
    evaluate,
    fit_knn,
    fit_random_forest,
    print_evaluation,
)
from gaitrec.partition import (
    TEST_FLAG,
    TRAIN_FLAG,
    print_partition,
    split_train_test,
)


def run_feature_set(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    feature_set: str,
    k_grid: list[int] = KNN_K_GRID,
    cv_folds: int = CV_FOLDS,
    variance_threshold: float = VARIANCE_THRESHOLD,
) -> list[EvaluationResult]:
    """Fit and evaluate kNN then Random Forest on one feature set."""
    print(f"\n[{feature_set}] Extracting features …")
    train_feats, test_feats = build_feature_frames(
        train_df, test_df, feature_set, variance_threshold,
    )
    cols = feature_cols(train_feats)
    X_train, y_train = train_feats[cols], train_feats[LABEL_COL].to_numpy()
    X_test, y_test = test_feats[cols], test_feats[LABEL_COL].to_numpy()
    print(f"[{feature_set}] {len(cols)} features, "
          f"{len(y_train):,} train / {len(y_test):,} test trials")

    # ---------- kNN ----------
    search = fit_knn(X_train, y_train, k_grid, cv_folds)
    cv_table = cv_results_table(search)
    best_k = search.best_params_["n_neighbors"]
    print(f"[{feature_set}] kNN: best k = {best_k} "
          f"(CV accuracy {search.best_score_:.3f}, "
          f"{len(cv_table)} values of k tried)")
    knn_result = evaluate(
        KNN_NAME, feature_set, y_test, search.predict(X_test),
        params={"k": best_k},
    )

    # ---------- Random Forest ----------
    rf = fit_random_forest(X_train, y_train)
    print(f"[{feature_set}] Random Forest: {rf.n_estimators} trees")
    rf_result = evaluate(
        RF_NAME, feature_set, y_test, rf.predict(X_test),
        params={"n_estimators": rf.n_estimators},
    )

    return [knn_result, rf_result]


def run_pipeline(
    df: pd.DataFrame,
    feature_sets: tuple[str, ...] = FEATURE_SETS,
    train_flag: str = TRAIN_FLAG,
    test_flag: str = TEST_FLAG,
    k_grid: list[int] = KNN_K_GRID,
    cv_folds: int = CV_FOLDS,
    variance_threshold: float = VARIANCE_THRESHOLD,
) -> list[EvaluationResult]:
    """Partition *df* by its flags and evaluate every (feature set, model)."""
    unknown = [f for f in feature_sets if f not in FEATURE_SETS]
    if unknown:
        raise ValueError(f"Unknown feature sets {unknown}; "
                         f"expected a subset of {FEATURE_SETS}")

    train_df, test_df = split_train_test(df, train_flag, test_flag)
    print_partition(train_df, test_df)

    results: list[EvaluationResult] = []
    for feature_set in feature_sets:
        results.extend(run_feature_set(
            train_df, test_df, feature_set, k_grid, cv_folds,
            variance_threshold,
        ))
    return results


def summary_table(results: list[EvaluationResult]) -> pd.DataFrame:
    """One row per evaluated model with headline metrics."""
    rows = []
    for r in results:
        rows.append({
            "feature_set": r.feature_set,
            "model": r.model,
            "accuracy": r.accuracy,
            "kappa": r.kappa,
            "mean_sensitivity": float(np.nanmean(r.per_class["sensitivity"])),
            "mean_specificity": float(np.nanmean(r.per_class["specificity"])),
        })
    return pd.DataFrame(rows)


def print_summary_table(results: list[EvaluationResult]) -> None:
    table = summary_table(results)
    print("\n" + "=" * 78)
    print("Aggregate Summary (canonical GaitRec test set)")
    print("=" * 78)
    print(f"{'Features':<10} {'Model':<16} {'Accuracy':>10} {'Kappa':>8} "
          f"{'Mean Sens':>10} {'Mean Spec':>10}")
    print("-" * 78)
    for _, r in table.iterrows():
        print(f"{r.feature_set:<10} {r.model:<16} {r.accuracy:>10.3f} "
              f"{r.kappa:>8.3f} {r.mean_sensitivity:>10.3f} "
              f"{r.mean_specificity:>10.3f}")

    best = table.loc[table["accuracy"].idxmax()]
    print(f"\nBest model by accuracy: {best.model} on {best.feature_set} "
          f"features ({best.accuracy:.3f})")


def main() -> None:
    print(f"Loading data from: {_DATA_DIR}\n")
    df = load_gaitrec()
    print_summary(df)

    results = run_pipeline(df)
    for result in results:
        print_evaluation(result)
    print_summary_table(results)
    print("\nDone.")


if __name__ == "__main__":
    main()

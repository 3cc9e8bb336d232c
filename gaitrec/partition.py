"""
partition.py - Train/test split using GaitRec's own membership flags.

GaitRec ships a canonical partition in GRF_metadata.csv:
    TRAIN           all sessions usable for training
    TRAIN_BALANCED  age/sex/class balanced training subset
    TEST            held-out test sessions

The split is *read*, never recomputed, so results stay comparable with
other studies on the same dataset.

Usage:
    python -m gaitrec.partition      # from project root
"""

from __future__ import annotations

import pandas as pd

from gaitrec.load_data import CLASS_LABELS, LABEL_COL, load_gaitrec

TRAIN_FLAG = "TRAIN_BALANCED"
TEST_FLAG = "TEST"


def split_train_test(
    df: pd.DataFrame,
    train_flag: str = TRAIN_FLAG,
    test_flag: str = TEST_FLAG,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Return (train_df, test_df) selected by the 0/1 flag columns.

    Raises ValueError if a flag column is missing, if any trial is flagged
    for both subsets, or if either subset comes out empty.
    """
    missing = [c for c in (train_flag, test_flag) if c not in df.columns]
    if missing:
        raise ValueError(f"Partition flag columns not found: {missing}")

    train_mask = df[train_flag] == 1
    test_mask = df[test_flag] == 1

    overlap = train_mask & test_mask
    if overlap.any():
        raise ValueError(
            f"{int(overlap.sum())} trials are flagged both {train_flag} "
            f"and {test_flag}"
        )
    if not train_mask.any():
        raise ValueError(f"No trials flagged {train_flag}")
    if not test_mask.any():
        raise ValueError(f"No trials flagged {test_flag}")

    return df.loc[train_mask], df.loc[test_mask]


def partition_summary(train_df: pd.DataFrame, test_df: pd.DataFrame) -> pd.DataFrame:
    """Trials per class in each subset (index: class label)."""
    labels = list(CLASS_LABELS)
    extra = sorted(
        (set(train_df[LABEL_COL].dropna()) | set(test_df[LABEL_COL].dropna()))
        - set(labels)
    )
    index = labels + extra
    return pd.DataFrame({
        "train": train_df[LABEL_COL].value_counts().reindex(index, fill_value=0),
        "test": test_df[LABEL_COL].value_counts().reindex(index, fill_value=0),
    })


def print_partition(train_df: pd.DataFrame, test_df: pd.DataFrame) -> None:
    counts = partition_summary(train_df, test_df)
    print(f"\n{'Class':<8} {'Train':>8} {'Test':>8}")
    print("-" * 26)
    for label, row in counts.iterrows():
        print(f"{label:<8} {int(row['train']):>8} {int(row['test']):>8}")
    print("-" * 26)
    print(f"{'TOTAL':<8} {int(counts['train'].sum()):>8} "
          f"{int(counts['test'].sum()):>8}")


def main() -> None:
    df = load_gaitrec()
    train_df, test_df = split_train_test(df)
    print(f"Partition flags: train={TRAIN_FLAG}, test={TEST_FLAG}")
    print_partition(train_df, test_df)


if __name__ == "__main__":
    main()

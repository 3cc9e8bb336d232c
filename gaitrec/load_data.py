"""
load_data.py - Load and join the GaitRec ground reaction force tables.

Reads the three processed (time-normalised, 101 samples per stance phase)
force-direction tables for one body side plus the session metadata table,
joins them into one row per trial, and prints a summary of the dataset.

Files expected under Data/gaitrec/ (or $GAITREC_DATA_DIR):
    GRF_F_V_PRO_<side>.csv    vertical force
    GRF_F_AP_PRO_<side>.csv   anterior-posterior force
    GRF_F_ML_PRO_<side>.csv   medio-lateral force
    GRF_metadata.csv          one row per session (label, flags, ...)

Usage:
    python -m gaitrec.load_data      # from project root
"""

from __future__ import annotations

import os
from pathlib import Path

import numpy as np
import pandas as pd

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _SCRIPT_DIR.parent
_DATA_DIR = Path(
    os.environ.get("GAITREC_DATA_DIR", _PROJECT_ROOT / "Data" / "gaitrec")
)

METADATA_FILE = "GRF_metadata.csv"

# ---------------------------------------------------------------------------
# Column layout
# ---------------------------------------------------------------------------
SUBJECT_COL = "SUBJECT_ID"
SESSION_COL = "SESSION_ID"
TRIAL_COL = "TRIAL_ID"
LABEL_COL = "CLASS_LABEL"
FLAG_COLS = ["TRAIN", "TRAIN_BALANCED", "TEST"]     # 0/1 partition membership

KEY_COLS = [SUBJECT_COL, SESSION_COL, TRIAL_COL]
SESSION_KEY_COLS = [SUBJECT_COL, SESSION_COL]
METADATA_REQUIRED_COLS = SESSION_KEY_COLS + [LABEL_COL] + FLAG_COLS

DIRECTIONS = ("F_V", "F_AP", "F_ML")
DIRECTION_NAMES = {
    "F_V": "vertical",
    "F_AP": "anterior-posterior",
    "F_ML": "medio-lateral",
}
SIDES = ("left", "right")
N_SAMPLES = 101                     # samples per direction (0-100 % stance)

CLASS_LABELS = {
    "HC": "Healthy control",
    "H": "Hip",
    "K": "Knee",
    "A": "Ankle",
    "C": "Calcaneus",
}


def sample_columns(direction: str) -> list[str]:
    """Return the 101 sample column names for *direction*, e.g. F_V_PRO_1."""
    return [f"{direction}_PRO_{i}" for i in range(1, N_SAMPLES + 1)]


FORCE_COLUMNS = [c for d in DIRECTIONS for c in sample_columns(d)]   # 303


# ---------------------------------------------------------------------------
# Core loaders
# ---------------------------------------------------------------------------

def direction_filename(direction: str, side: str = "right") -> str:
    """GaitRec file name for one force direction, e.g. GRF_F_V_PRO_right.csv."""
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown force direction {direction!r}; "
                         f"expected one of {DIRECTIONS}")
    if side not in SIDES:
        raise ValueError(f"Unknown side {side!r}; expected one of {SIDES}")
    return f"GRF_{direction}_PRO_{side}.csv"


def _read_csv(path: Path) -> pd.DataFrame:
    if not path.is_file():
        raise FileNotFoundError(f"GaitRec file not found: {path}")
    return pd.read_csv(path)


def _require_columns(df: pd.DataFrame, columns: list[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{what} is missing columns: {missing}")


def _require_unique(df: pd.DataFrame, keys: list[str], what: str) -> None:
    dup = df.duplicated(subset=keys, keep=False)
    if dup.any():
        examples = df.loc[dup, keys].head(3).to_dict("records")
        raise ValueError(
            f"{what} has {int(dup.sum())} rows with duplicate {keys}, "
            f"e.g. {examples}"
        )


def validate_direction_table(df: pd.DataFrame, direction: str) -> pd.DataFrame:
    """Check that *df* holds the key columns and exactly the 101 sample
    columns of *direction*; return it restricted to those columns.
    """
    what = f"{direction} force table"
    _require_columns(df, KEY_COLS, what)

    prefix = f"{direction}_PRO_"
    found = [c for c in df.columns if str(c).startswith(prefix)]
    if len(found) != N_SAMPLES:
        raise ValueError(
            f"{what} has {len(found)} sample columns, expected {N_SAMPLES}"
        )
    _require_columns(df, sample_columns(direction), what)
    _require_unique(df, KEY_COLS, what)

    return df[KEY_COLS + sample_columns(direction)]


def load_direction_table(
    direction: str,
    data_dir: Path = _DATA_DIR,
    side: str = "right",
) -> pd.DataFrame:
    """Read one processed force table → DataFrame with columns
    SUBJECT_ID, SESSION_ID, TRIAL_ID, <direction>_PRO_1 … _PRO_101
    """
    path = Path(data_dir) / direction_filename(direction, side)
    return validate_direction_table(_read_csv(path), direction)


def load_metadata(data_dir: Path = _DATA_DIR) -> pd.DataFrame:
    """Read GRF_metadata.csv (one row per subject/session)."""
    df = _read_csv(Path(data_dir) / METADATA_FILE)
    _require_columns(df, METADATA_REQUIRED_COLS, "Metadata table")
    _require_unique(df, SESSION_KEY_COLS, "Metadata table")
    return df


def join_tables(
    direction_tables: dict[str, pd.DataFrame],
    metadata: pd.DataFrame,
) -> pd.DataFrame:
    """Join the three direction tables per trial and attach session metadata.

    Returns one row per trial that is present in all three direction tables
    and has a metadata row. Columns: key columns, metadata columns, then the
    303 force columns in ``FORCE_COLUMNS`` order.
    """
    missing = [d for d in DIRECTIONS if d not in direction_tables]
    if missing:
        raise ValueError(f"Missing force tables for directions: {missing}")
    _require_columns(metadata, METADATA_REQUIRED_COLS, "Metadata table")
    _require_unique(metadata, SESSION_KEY_COLS, "Metadata table")

    tables = {d: validate_direction_table(direction_tables[d], d)
              for d in DIRECTIONS}

    forces = tables[DIRECTIONS[0]]
    for direction in DIRECTIONS[1:]:
        forces = forces.merge(
            tables[direction], on=KEY_COLS, how="inner", validate="one_to_one",
        )

    n_any = len(pd.concat([t[KEY_COLS] for t in tables.values()])
                .drop_duplicates())
    if len(forces) < n_any:
        print(f"[WARNING] {n_any - len(forces)} trials are missing from at "
              f"least one force direction and were dropped")

    meta_cols = [c for c in metadata.columns if c not in KEY_COLS]
    joined = forces.merge(
        metadata[SESSION_KEY_COLS + meta_cols],
        on=SESSION_KEY_COLS,
        how="inner",
        validate="many_to_one",
    )
    if len(joined) < len(forces):
        print(f"[WARNING] {len(forces) - len(joined)} trials have no metadata "
              f"row and were dropped")

    other_cols = [c for c in joined.columns
                  if c not in KEY_COLS and c not in FORCE_COLUMNS]
    joined = joined[KEY_COLS + other_cols + FORCE_COLUMNS]
    return joined.sort_values(KEY_COLS).reset_index(drop=True)


def load_gaitrec(data_dir: Path = _DATA_DIR, side: str = "right") -> pd.DataFrame:
    """Load all four GaitRec tables for *side* and return the joined trials."""
    direction_tables = {
        d: load_direction_table(d, data_dir, side) for d in DIRECTIONS
    }
    metadata = load_metadata(data_dir)
    return join_tables(direction_tables, metadata)


def force_matrix(df: pd.DataFrame) -> np.ndarray:
    """Return the (N, 303) force samples of *df*, direction-major."""
    _require_columns(df, FORCE_COLUMNS, "Trial table")
    return df[FORCE_COLUMNS].to_numpy(dtype=np.float64)


# ---------------------------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------------------------

def print_summary(df: pd.DataFrame) -> None:
    """Print human-readable summary of the joined trials."""
    print("=" * 60)
    print("GaitRec GRF Dataset - Summary")
    print("=" * 60)
    print(f"Trials                       : {len(df):,}")
    print(f"Unique subjects              : {df[SUBJECT_COL].nunique()}")
    print(f"Unique sessions              : "
          f"{df[SESSION_KEY_COLS].drop_duplicates().shape[0]}")
    print(f"Force samples per trial      : {len(FORCE_COLUMNS)}  "
          f"({len(DIRECTIONS)} directions × {N_SAMPLES})")

    # --- Class counts ---
    print(f"\n{'Class':<8} {'Name':<18} {'Subjects':>9} {'Trials':>8}")
    print("-" * 46)
    for label, name in CLASS_LABELS.items():
        sub = df[df[LABEL_COL] == label]
        print(f"{label:<8} {name:<18} {sub[SUBJECT_COL].nunique():>9} "
              f"{len(sub):>8}")
    unknown = sorted(set(df[LABEL_COL].dropna()) - set(CLASS_LABELS))
    if unknown:
        print(f"[WARNING] Unrecognised class labels: {unknown}")

    # --- Per-direction peak force ---
    print(f"\n{'Direction':<22} {'Mean peak':>10} {'Std peak':>10}")
    print("-" * 44)
    for direction in DIRECTIONS:
        peaks = df[sample_columns(direction)].max(axis=1)
        print(f"{DIRECTION_NAMES[direction]:<22} {peaks.mean():>10.3f} "
              f"{peaks.std():>10.3f}")

    # --- Partition flags ---
    flag_cols = [c for c in FLAG_COLS if c in df.columns]
    if flag_cols:
        print()
        for col in flag_cols:
            print(f"{col + ' trials':<29}: {int((df[col] == 1).sum()):,}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    print(f"Loading data from: {_DATA_DIR}\n")
    df = load_gaitrec()
    print_summary(df)


if __name__ == "__main__":
    main()

"""Synthetic GaitRec-shaped tables shared by the test modules."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from gaitrec.load_data import (
    DIRECTIONS,
    KEY_COLS,
    METADATA_FILE,
    direction_filename,
    join_tables,
    sample_columns,
)

CLASSES = ["HC", "H", "K", "A", "C"]
SUBJECTS_PER_CLASS = 6
TRAIN_SUBJECTS_PER_CLASS = 4
TRIALS_PER_SESSION = 4


def make_gaitrec_tables(
    seed: int = 0,
) -> tuple[dict[str, pd.DataFrame], pd.DataFrame]:
    """Build three direction tables and a metadata table.

    Each class gets a distinct force-curve amplitude so the classifiers
    have something to learn. The first TRAIN_SUBJECTS_PER_CLASS subjects of
    every class are TRAIN_BALANCED, the rest TEST.
    """
    rng = np.random.default_rng(seed)
    t = np.linspace(0.0, 1.0, 101)

    key_rows = []
    curves = {d: [] for d in DIRECTIONS}
    meta_rows = []
    subject_id = 0
    session_id = 1000

    for class_idx, label in enumerate(CLASSES):
        for s in range(SUBJECTS_PER_CLASS):
            subject_id += 1
            session_id += 1
            train = s < TRAIN_SUBJECTS_PER_CLASS
            meta_rows.append({
                "SUBJECT_ID": subject_id,
                "SESSION_ID": session_id,
                "CLASS_LABEL": label,
                "AFFECTED_SIDE": 0 if label == "HC" else 1,
                "SPEED": 2,
                "TRAIN": int(train),
                "TRAIN_BALANCED": int(train),
                "TEST": int(not train),
            })
            for trial in range(1, TRIALS_PER_SESSION + 1):
                key_rows.append((subject_id, session_id, trial))
                amp = 1.0 + 0.25 * class_idx
                curves["F_V"].append(
                    amp * np.sin(np.pi * t) + rng.normal(0, 0.02, t.size))
                curves["F_AP"].append(
                    0.2 * amp * np.sin(2 * np.pi * t) + rng.normal(0, 0.01, t.size))
                curves["F_ML"].append(
                    0.05 * class_idx * np.sin(np.pi * t) + rng.normal(0, 0.01, t.size))

    keys = pd.DataFrame(key_rows, columns=KEY_COLS)
    tables = {}
    for direction in DIRECTIONS:
        samples = pd.DataFrame(np.vstack(curves[direction]),
                               columns=sample_columns(direction))
        tables[direction] = pd.concat([keys, samples], axis=1)

    return tables, pd.DataFrame(meta_rows)


@pytest.fixture
def gaitrec_tables():
    return make_gaitrec_tables()


@pytest.fixture
def gaitrec_df(gaitrec_tables):
    tables, metadata = gaitrec_tables
    return join_tables(tables, metadata)


@pytest.fixture
def gaitrec_dir(tmp_path: Path, gaitrec_tables) -> Path:
    """Write the synthetic tables as right-side GaitRec CSVs."""
    tables, metadata = gaitrec_tables
    for direction, table in tables.items():
        table.to_csv(tmp_path / direction_filename(direction, "right"),
                     index=False)
    metadata.to_csv(tmp_path / METADATA_FILE, index=False)
    return tmp_path

import numpy as np
import pytest

from gaitrec.features import (
    STATS_FEATURE_COLUMNS,
    build_feature_frames,
    explained_variance_curve,
    extract_stats_features,
    feature_cols,
    fit_pca_features,
    n_components_for_variance,
)
from gaitrec.load_data import LABEL_COL, force_matrix
from gaitrec.partition import split_train_test


# ---------------------------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------------------------

def test_stats_of_constant_blocks():
    X = np.concatenate([np.full(101, 3.0), np.full(101, -1.5),
                        np.zeros(101)])[None, :]
    feats = extract_stats_features(X)

    assert feats.shape == (1, 9)
    np.testing.assert_allclose(feats[0], [3.0, 0.0, 3.0,
                                          -1.5, 0.0, -1.5,
                                          0.0, 0.0, 0.0])


def test_stats_column_order():
    assert STATS_FEATURE_COLUMNS == [
        "F_V_mean", "F_V_std", "F_V_max",
        "F_AP_mean", "F_AP_std", "F_AP_max",
        "F_ML_mean", "F_ML_std", "F_ML_max",
    ]


def test_stats_per_direction_block():
    rng = np.random.default_rng(1)
    X = rng.normal(size=(5, 303))
    feats = extract_stats_features(X)

    ml = X[:, 202:303]
    np.testing.assert_allclose(feats[:, 6], ml.mean(axis=1))
    np.testing.assert_allclose(feats[:, 7], ml.std(axis=1, ddof=1))
    np.testing.assert_allclose(feats[:, 8], ml.max(axis=1))


@pytest.mark.parametrize("shape", [(4, 302), (4, 304), (303,)])
def test_stats_rejects_bad_shape(shape):
    with pytest.raises(ValueError, match="303"):
        extract_stats_features(np.zeros(shape))


# ---------------------------------------------------------------------------
# PCA
# ---------------------------------------------------------------------------

def test_cumulative_variance_monotone_and_complete(gaitrec_df):
    X = force_matrix(gaitrec_df)
    result = fit_pca_features(X, X)
    curve = explained_variance_curve(result.pca)

    assert np.all(np.diff(curve) >= -1e-12)
    assert curve[-1] == pytest.approx(1.0)
    np.testing.assert_allclose(curve, result.cumulative_variance)


def test_n_components_is_minimal_prefix():
    curve = np.array([0.6, 0.9, 0.95, 0.99, 1.0])
    assert n_components_for_variance(curve, 0.95) == 3
    assert n_components_for_variance(curve, 0.5) == 1
    assert n_components_for_variance(curve, 0.91) == 3
    assert n_components_for_variance(curve, 1.0) == 5


def test_n_components_tolerates_roundoff():
    curve = np.array([0.5, 0.95 - 1e-13, 1.0])
    assert n_components_for_variance(curve, 0.95) == 2


def test_n_components_rejects_bad_threshold():
    with pytest.raises(ValueError):
        n_components_for_variance(np.array([0.5, 1.0]), 1.5)
    with pytest.raises(ValueError):
        n_components_for_variance(np.array([]), 0.95)


def test_pca_retains_threshold_variance(gaitrec_df):
    train_df, test_df = split_train_test(gaitrec_df)
    result = fit_pca_features(force_matrix(train_df), force_matrix(test_df))

    k = result.n_components
    assert result.retained_variance >= 0.95
    if k > 1:
        assert result.cumulative_variance[k - 2] < 0.95
    assert result.train.shape == (len(train_df), k)
    assert result.test.shape == (len(test_df), k)
    assert result.columns[0] == "PC1"


def test_pca_test_projection_uses_training_axes(gaitrec_df):
    train_df, test_df = split_train_test(gaitrec_df)
    X_train, X_test = force_matrix(train_df), force_matrix(test_df)
    result = fit_pca_features(X_train, X_test)

    k = result.n_components
    expected = (X_test - X_train.mean(axis=0)) @ result.pca.components_[:k].T
    np.testing.assert_allclose(result.test, expected, atol=1e-8)


def test_pca_rejects_bad_shape():
    with pytest.raises(ValueError):
        fit_pca_features(np.zeros((10, 303)), np.zeros((3, 300)))


# ---------------------------------------------------------------------------
# Feature frames
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("feature_set", ["pca", "stats"])
def test_feature_frames_keep_labels_and_index(gaitrec_df, feature_set):
    train_df, test_df = split_train_test(gaitrec_df)
    train_feats, test_feats = build_feature_frames(train_df, test_df,
                                                   feature_set)

    assert list(train_feats.index) == list(train_df.index)
    assert list(test_feats.index) == list(test_df.index)
    assert (train_feats[LABEL_COL] == train_df[LABEL_COL]).all()
    assert feature_cols(train_feats) == feature_cols(test_feats)
    assert LABEL_COL not in feature_cols(train_feats)


def test_stats_feature_frame_has_nine_columns(gaitrec_df):
    train_df, test_df = split_train_test(gaitrec_df)
    train_feats, _ = build_feature_frames(train_df, test_df, "stats")
    assert feature_cols(train_feats) == STATS_FEATURE_COLUMNS


def test_unknown_feature_set(gaitrec_df):
    train_df, test_df = split_train_test(gaitrec_df)
    with pytest.raises(ValueError, match="wavelet"):
        build_feature_frames(train_df, test_df, "wavelet")

import numpy as np
import pandas as pd
import pytest

from telco_churn.exceptions import ModelError, ValidationError
from telco_churn.models import ConfusionCounts, CrossValidator, assign_folds


@pytest.mark.parametrize("n_rows, k", [(23, 5), (25, 5), (7, 3), (240, 10)])
def test_round_robin_fold_sizes(n_rows, k):
    folds = assign_folds(n_rows, k)
    counts = np.bincount(folds)[1:]

    assert folds.min() == 1 and folds.max() == k
    assert set(counts) <= {n_rows // k, -(-n_rows // k)}
    assert counts.max() - counts.min() <= 1
    for i in range(n_rows - k):
        assert folds[i] == folds[i + k]


def test_fold_id_formula():
    assert assign_folds(7, 3).tolist() == [1, 2, 3, 1, 2, 3, 1]


@pytest.mark.parametrize("n_rows, k", [(10, 1), (10, 0), (4, 5)])
def test_invalid_k_rejected(n_rows, k):
    with pytest.raises(ValidationError):
        assign_folds(n_rows, k)


@pytest.fixture
def cv_result(config, prepared_df, model_columns):
    categorical, numeric = model_columns
    return CrossValidator(config).run(prepared_df, categorical, numeric, "churn_flag", k=5)


def test_every_row_scored_exactly_once(cv_result, prepared_df):
    preds = cv_result.predictions

    assert len(preds) == len(prepared_df)
    assert sorted(preds["row_index"]) == list(range(len(prepared_df)))
    assert preds["fold"].is_monotonic_increasing
    expected_folds = assign_folds(len(prepared_df), 5)
    assert (preds["fold"].to_numpy() == expected_folds[preds["row_index"].to_numpy()]).all()
    assert (preds["actual"].to_numpy() == prepared_df["churn_flag"].to_numpy()[preds["row_index"].to_numpy()]).all()


def test_pooled_counts_are_sum_of_fold_counts(cv_result, prepared_df):
    summed = sum((f.counts for f in cv_result.folds), ConfusionCounts(0, 0, 0, 0))

    assert cv_result.pooled.counts == summed
    assert cv_result.pooled.counts.total == len(prepared_df)
    assert cv_result.pooled.counts.positives == int(prepared_df["churn_flag"].sum())


def test_fold_train_and_test_partition(cv_result, prepared_df):
    for fold in cv_result.folds:
        assert fold.n_train + fold.n_test == len(prepared_df)
    assert [f.fold for f in cv_result.folds] == [1, 2, 3, 4, 5]


def test_pooled_metrics_use_pooled_counts(cv_result, config):
    pooled = cv_result.pooled
    c = pooled.counts

    assert pooled.precision == pytest.approx(c.tp / (c.tp + c.fp))
    assert pooled.recall == pytest.approx(c.tp / (c.tp + c.fn))
    assert len(cv_result.fold_reports) == 5


def test_result_serialises(cv_result):
    payload = cv_result.to_dict()

    assert payload["k"] == 5
    assert len(payload["folds"]) == 5
    assert sum(f["n_test"] for f in payload["folds"]) == payload["pooled"]["confusion"]["tp"] + \
        payload["pooled"]["confusion"]["fp"] + payload["pooled"]["confusion"]["fn"] + \
        payload["pooled"]["confusion"]["tn"]


def test_fold_failure_aborts_run(config, prepared_df, model_columns):
    categorical, numeric = model_columns
    df = prepared_df.copy()
    folds = assign_folds(len(df), 5)
    # Positives only in fold 1, so fold 1 trains on a single class
    df["churn_flag"] = np.where((folds == 1) & (np.arange(len(df)) % 2 == 0), 1, 0)

    with pytest.raises(ModelError):
        CrossValidator(config).run(df, categorical, numeric, "churn_flag", k=5)


def test_non_default_index_is_ignored(config, prepared_df, model_columns, cv_result):
    categorical, numeric = model_columns
    shifted = prepared_df.set_index(prepared_df.index + 1000)

    result = CrossValidator(config).run(shifted, categorical, numeric, "churn_flag", k=5)
    pd.testing.assert_frame_equal(result.predictions, cv_result.predictions)


def test_parallel_matches_sequential(config, prepared_df, model_columns, cv_result):
    categorical, numeric = model_columns
    config["cross_validation"]["n_jobs"] = 2

    result = CrossValidator(config).run(prepared_df, categorical, numeric, "churn_flag", k=5)
    pd.testing.assert_frame_equal(result.predictions, cv_result.predictions)
    assert result.pooled.counts == cv_result.pooled.counts


def test_k_defaults_to_config(config, prepared_df, model_columns):
    categorical, numeric = model_columns
    config["cross_validation"]["k"] = 4

    result = CrossValidator(config).run(prepared_df, categorical, numeric, "churn_flag")
    assert result.k == 4
    assert len(result.folds) == 4


def test_invalid_threshold_rejected_before_fitting(config, prepared_df, model_columns):
    categorical, numeric = model_columns

    with pytest.raises(ValidationError):
        CrossValidator(config).run(prepared_df, categorical, numeric, "churn_flag", threshold=2.0)


def test_undefined_fold_metrics_do_not_abort_raise_policy(config, prepared_df, model_columns, cv_result):
    categorical, numeric = model_columns
    preds = cv_result.predictions
    fold_max = preds.groupby("fold")["probability"].max().sort_values()
    # Fold with the lowest top probability predicts no churners at this threshold
    threshold = float((fold_max.iloc[0] + fold_max.iloc[1]) / 2)
    assert ((preds["probability"] >= threshold) & (preds["actual"] == 1)).any()

    config["evaluation"]["undefined_metric"] = "raise"
    result = CrossValidator(config).run(prepared_df, categorical, numeric, "churn_flag", k=5, threshold=threshold)

    empty_fold = int(fold_max.index[0])
    report = result.fold_reports[empty_fold - 1]
    assert report.counts.tp + report.counts.fp == 0
    assert np.isnan(report.precision)
    assert result.pooled.counts.tp > 0
    assert not np.isnan(result.pooled.f1)

import json
import math

import numpy as np
import pytest

from telco_churn.exceptions import MetricUndefined, ValidationError
from telco_churn.models import ConfusionCounts, ModelEvaluator
from telco_churn.models.evaluator import (
    confusion,
    f1,
    precision,
    recall,
    roc_auc,
    roc_points,
    threshold_predict,
)


def test_threshold_is_inclusive():
    preds = threshold_predict([0.5, 0.4999, 0.7, 0.0, 1.0], 0.5)

    assert preds.tolist() == [1, 0, 1, 0, 1]


@pytest.mark.parametrize("threshold", [-0.1, 1.5, float("nan")])
def test_out_of_range_threshold_raises(threshold):
    with pytest.raises(ValidationError):
        threshold_predict([0.2], threshold)


def test_confusion_counts_partition_rows():
    actual = [1, 1, 1, 0, 0, 0, 0, 1]
    predicted = [1, 0, 1, 0, 1, 0, 0, 0]
    counts = confusion(actual, predicted)

    assert counts == ConfusionCounts(tp=2, fp=1, fn=2, tn=3)
    assert counts.total == len(actual)
    assert counts.tp + counts.fn == sum(actual)
    assert counts.tn + counts.fp == len(actual) - sum(actual)


def test_confusion_length_mismatch_raises():
    with pytest.raises(ValidationError, match="Length mismatch"):
        confusion([1, 0, 1], [1, 0])


def test_confusion_rejects_non_binary():
    with pytest.raises(ValidationError):
        confusion([1, 2], [1, 0])


def test_metric_formulas():
    counts = ConfusionCounts(tp=80, fp=20, fn=10, tn=90)

    assert precision(counts) == pytest.approx(0.8)
    assert recall(counts) == pytest.approx(0.8889, abs=1e-4)
    assert f1(counts) == pytest.approx(0.8421, abs=1e-4)


def test_zero_denominator_is_nan_not_zero():
    counts = ConfusionCounts(tp=0, fp=0, fn=5, tn=10)

    assert math.isnan(precision(counts))
    assert recall(counts) == 0.0
    assert math.isnan(f1(counts))


def test_zero_denominator_raises_under_raise_policy(config):
    config["evaluation"]["undefined_metric"] = "raise"
    evaluator = ModelEvaluator(config)

    with pytest.raises(MetricUndefined):
        evaluator.evaluate([0, 0, 1], [0.1, 0.2, 0.3])


def test_counts_add_elementwise():
    total = ConfusionCounts(1, 2, 3, 4) + ConfusionCounts(10, 20, 30, 40)

    assert total == ConfusionCounts(11, 22, 33, 44)
    assert total.as_matrix().tolist() == [[44, 22], [33, 11]]


def test_evaluate_report(config):
    evaluator = ModelEvaluator(config)
    report = evaluator.evaluate([1, 0, 1, 0], [0.9, 0.2, 0.5, 0.6])

    assert report.counts == ConfusionCounts(tp=2, fp=1, fn=0, tn=1)
    assert report.threshold == 0.5
    assert report.precision == pytest.approx(2 / 3)
    assert report.recall == 1.0
    assert report.accuracy == 0.75


def test_report_text_and_json_mark_undefined(config):
    evaluator = ModelEvaluator(config)
    report = evaluator.evaluate([0, 0, 1], [0.1, 0.2, 0.3])

    assert "undefined" in evaluator.format_report(report)
    payload = json.loads(json.dumps(report.to_dict()))
    assert payload["precision"] is None
    assert payload["confusion"] == {"tp": 0, "fp": 0, "fn": 1, "tn": 2}


def test_roc_points_span_unit_square():
    actual = [0, 0, 1, 1, 0, 1]
    probs = [0.1, 0.4, 0.35, 0.8, 0.2, 0.9]
    roc = roc_points(actual, probs)

    assert (roc.iloc[0][["fpr", "tpr"]] == 0).all()
    assert (roc.iloc[-1][["fpr", "tpr"]] == 1).all()
    assert roc["fpr"].is_monotonic_increasing
    assert roc["tpr"].is_monotonic_increasing


def test_roc_needs_both_classes():
    with pytest.raises(ValidationError):
        roc_points([1, 1], [0.2, 0.3])


def test_roc_auc_perfect_separation():
    assert roc_auc([0, 0, 1, 1], [0.1, 0.2, 0.8, 0.9]) == 1.0


def test_plots_are_written(config, tmp_path):
    evaluator = ModelEvaluator(config)
    roc = roc_points([0, 1, 0, 1], [0.2, 0.7, 0.4, 0.6])

    evaluator.plot_roc_curve(roc, tmp_path / "roc.png", auc=0.75)
    evaluator.plot_confusion_matrix(ConfusionCounts(2, 1, 0, 1), tmp_path / "cm.png")

    assert (tmp_path / "roc.png").exists()
    assert (tmp_path / "cm.png").exists()


def test_unknown_undefined_policy_rejected(config):
    config["evaluation"]["undefined_metric"] = "zero"

    with pytest.raises(ValidationError):
        ModelEvaluator(config)

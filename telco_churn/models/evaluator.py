"""
Model Evaluator Module
======================

Thresholding, confusion counts, precision/recall/F1 and ROC output.

A ratio whose denominator is zero is undefined: it is reported as NaN, or
raised as MetricUndefined when the config asks for it. It is never 0.
"""

import math
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from loguru import logger
from sklearn.metrics import roc_auc_score, roc_curve

from telco_churn.config import get_config
from telco_churn.exceptions import MetricUndefined, ValidationError
from telco_churn.utils.helpers import format_metrics, safe_divide

UNDEFINED_POLICIES = ("nan", "raise")


@dataclass(frozen=True)
class ConfusionCounts:
    """Binary confusion counts with churn (1) as the positive class."""
    tp: int
    fp: int
    fn: int
    tn: int

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.fn + self.tn

    @property
    def positives(self) -> int:
        return self.tp + self.fn

    @property
    def negatives(self) -> int:
        return self.tn + self.fp

    def __add__(self, other: "ConfusionCounts") -> "ConfusionCounts":
        if not isinstance(other, ConfusionCounts):
            return NotImplemented
        return ConfusionCounts(
            tp=self.tp + other.tp,
            fp=self.fp + other.fp,
            fn=self.fn + other.fn,
            tn=self.tn + other.tn,
        )

    def as_matrix(self) -> np.ndarray:
        """2x2 matrix, rows = actual (0, 1), columns = predicted (0, 1)."""
        return np.array([[self.tn, self.fp], [self.fn, self.tp]])

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _as_binary(values: Sequence, name: str) -> np.ndarray:
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise ValidationError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.size and not np.isin(arr, (0, 1)).all():
        raise ValidationError(f"{name} must contain only 0 and 1")
    return arr.astype(int)


def validate_threshold(threshold: float) -> float:
    if threshold is None or not 0.0 <= threshold <= 1.0:
        raise ValidationError(f"Threshold must be within [0, 1], got {threshold}")
    return threshold


def threshold_predict(probabilities: Sequence[float], threshold: float = 0.5) -> np.ndarray:
    """Class 1 iff probability >= threshold."""
    validate_threshold(threshold)
    probs = np.asarray(probabilities, dtype=float)
    return (probs >= threshold).astype(int)


def confusion(actual: Sequence[int], predicted: Sequence[int]) -> ConfusionCounts:
    """Confusion counts over aligned actual / predicted sequences."""
    y_true = _as_binary(actual, "actual")
    y_pred = _as_binary(predicted, "predicted")
    if len(y_true) != len(y_pred):
        raise ValidationError(f"Length mismatch: {len(y_true)} actual vs {len(y_pred)} predicted")

    return ConfusionCounts(
        tp=int(np.sum((y_pred == 1) & (y_true == 1))),
        fp=int(np.sum((y_pred == 1) & (y_true == 0))),
        fn=int(np.sum((y_pred == 0) & (y_true == 1))),
        tn=int(np.sum((y_pred == 0) & (y_true == 0))),
    )


def _ratio(name: str, numerator: float, denominator: float, on_undefined: str) -> float:
    if denominator == 0:
        if on_undefined == "raise":
            raise MetricUndefined(f"{name} is undefined: zero denominator")
        return float("nan")
    return safe_divide(numerator, denominator)


def precision(counts: ConfusionCounts, on_undefined: str = "nan") -> float:
    """TP / (TP + FP)."""
    return _ratio("precision", counts.tp, counts.tp + counts.fp, on_undefined)


def recall(counts: ConfusionCounts, on_undefined: str = "nan") -> float:
    """TP / (TP + FN)."""
    return _ratio("recall", counts.tp, counts.tp + counts.fn, on_undefined)


def f1(counts: ConfusionCounts, on_undefined: str = "nan") -> float:
    """Harmonic mean of precision and recall; undefined if either is."""
    p = precision(counts, on_undefined)
    r = recall(counts, on_undefined)
    if math.isnan(p) or math.isnan(r):
        return float("nan")
    return _ratio("f1", 2 * p * r, p + r, on_undefined)


@dataclass
class EvaluationReport:
    """Confusion counts and derived metrics at one threshold."""
    counts: ConfusionCounts
    threshold: float
    precision: float
    recall: float
    f1: float
    accuracy: float

    def metrics(self) -> Dict[str, float]:
        return {
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "accuracy": self.accuracy,
        }

    def to_dict(self) -> dict:
        # NaN is not valid JSON; undefined metrics serialise as null
        metrics = {k: (None if math.isnan(v) else v) for k, v in self.metrics().items()}
        return {"threshold": self.threshold, "confusion": self.counts.to_dict(), **metrics}


def roc_points(actual: Sequence[int], probabilities: Sequence[float]) -> pd.DataFrame:
    """False/true positive rate pairs across all distinct thresholds."""
    y_true = _as_binary(actual, "actual")
    y_prob = np.asarray(probabilities, dtype=float)
    if len(y_true) != len(y_prob):
        raise ValidationError(f"Length mismatch: {len(y_true)} actual vs {len(y_prob)} probabilities")
    if len(np.unique(y_true)) < 2:
        raise ValidationError("ROC curve needs both classes in actual")

    fpr, tpr, thresholds = roc_curve(y_true, y_prob)
    return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})


def roc_auc(actual: Sequence[int], probabilities: Sequence[float]) -> float:
    """Area under the ROC curve."""
    y_true = _as_binary(actual, "actual")
    if len(np.unique(y_true)) < 2:
        raise ValidationError("ROC AUC needs both classes in actual")
    return float(roc_auc_score(y_true, np.asarray(probabilities, dtype=float)))


class ModelEvaluator:
    """Evaluate churn probabilities against actual outcomes."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize ModelEvaluator.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.eval_config = self.config.get("evaluation", {})
        self.threshold = self.eval_config.get("threshold", 0.5)
        self.on_undefined = self.eval_config.get("undefined_metric", "nan")

        if self.on_undefined not in UNDEFINED_POLICIES:
            raise ValidationError(f"Unknown undefined_metric policy: {self.on_undefined}. Available: {list(UNDEFINED_POLICIES)}")

    def evaluate_counts(
        self,
        counts: ConfusionCounts,
        threshold: Optional[float] = None,
        on_undefined: Optional[str] = None
    ) -> EvaluationReport:
        """Metrics from already computed confusion counts; `on_undefined` overrides the configured policy."""
        threshold = self.threshold if threshold is None else threshold
        on_undefined = on_undefined or self.on_undefined
        report = EvaluationReport(
            counts=counts,
            threshold=threshold,
            precision=precision(counts, on_undefined),
            recall=recall(counts, on_undefined),
            f1=f1(counts, on_undefined),
            accuracy=safe_divide(counts.tp + counts.tn, counts.total),
        )

        undefined = [name for name, value in report.metrics().items() if math.isnan(value)]
        if undefined:
            logger.warning(f"Undefined metrics (zero denominator): {undefined}")

        return report

    def evaluate(
        self,
        actual: Sequence[int],
        probabilities: Sequence[float],
        threshold: Optional[float] = None
    ) -> EvaluationReport:
        """
        Threshold probabilities and compute confusion counts and metrics.

        Args:
            actual: True 0/1 labels
            probabilities: Predicted churn probabilities
            threshold: Classification threshold (defaults to config)

        Returns:
            EvaluationReport
        """
        threshold = self.threshold if threshold is None else threshold
        predicted = threshold_predict(probabilities, threshold)
        counts = confusion(actual, predicted)
        return self.evaluate_counts(counts, threshold)

    def format_report(self, report: EvaluationReport, title: str = "Evaluation") -> str:
        """Render a report as a text block; NaN shows as 'undefined'."""
        c = report.counts
        metrics = format_metrics(report.metrics())
        lines = [
            f"{title} (threshold={report.threshold:.2f}, n={c.total})",
            f"                 Pred 0   Pred 1",
            f"  Actual 0   {c.tn:>9d} {c.fp:>8d}",
            f"  Actual 1   {c.fn:>9d} {c.tp:>8d}",
        ]
        lines.extend(f"  {name:<10} {value}" for name, value in metrics.items())
        return "\n".join(lines)

    def plot_confusion_matrix(
        self,
        counts: ConfusionCounts,
        filepath: Union[str, Path],
        title: str = "Confusion Matrix",
        figsize: Tuple[int, int] = (6, 5)
    ) -> plt.Figure:
        """
        Plot confusion matrix heatmap.

        Args:
            counts: Confusion counts
            filepath: Output image path
            title: Plot title
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(
            counts.as_matrix(), annot=True, fmt="d", cmap="Blues",
            xticklabels=["No Churn", "Churn"],
            yticklabels=["No Churn", "Churn"],
            ax=ax
        )
        ax.set_title(title)
        ax.set_xlabel("Predicted")
        ax.set_ylabel("Actual")

        plt.tight_layout()
        _save_figure(fig, filepath)
        logger.info(f"Saved confusion matrix plot to {filepath}")
        return fig

    def plot_roc_curve(
        self,
        roc_df: pd.DataFrame,
        filepath: Union[str, Path],
        auc: Optional[float] = None,
        label: str = "Logistic regression",
        figsize: Tuple[int, int] = (7, 6)
    ) -> plt.Figure:
        """
        Plot an ROC curve from roc_points output.

        Args:
            roc_df: DataFrame with fpr and tpr columns
            filepath: Output image path
            auc: Area under the curve, shown in the legend
            label: Curve label
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        fig, ax = plt.subplots(figsize=figsize)
        curve_label = f"{label} (AUC={auc:.3f})" if auc is not None else label
        ax.plot(roc_df["fpr"], roc_df["tpr"], label=curve_label)
        ax.plot([0, 1], [0, 1], "k--", label="Random (AUC=0.500)")
        ax.set_xlabel("False Positive Rate")
        ax.set_ylabel("True Positive Rate")
        ax.set_title("ROC Curve")
        ax.legend(loc="lower right")
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        _save_figure(fig, filepath)
        logger.info(f"Saved ROC curve plot to {filepath}")
        return fig


def _save_figure(fig: plt.Figure, filepath: Union[str, Path]) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(filepath, dpi=300, bbox_inches="tight")
    plt.close(fig)

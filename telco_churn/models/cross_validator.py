"""
Cross-Validation Module
=======================

Round-robin k-fold cross-validation with pooled out-of-fold metrics.

Fold ids are assigned as (row position mod k) + 1. Each fold fits a fresh
model on the other folds and scores its own rows. Metrics are computed once
over the concatenated out-of-fold predictions, not averaged across folds.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger

from telco_churn.config import get_config
from telco_churn.exceptions import ValidationError
from telco_churn.models.evaluator import (
    ConfusionCounts,
    EvaluationReport,
    ModelEvaluator,
    confusion,
    threshold_predict,
    validate_threshold,
)
from telco_churn.models.trainer import ModelTrainer
from telco_churn.utils.helpers import format_metrics


def assign_folds(n_rows: int, k: int) -> np.ndarray:
    """
    Deterministic round-robin fold ids in [1, k].

    Args:
        n_rows: Number of records
        k: Number of folds

    Returns:
        Integer array where position i holds (i mod k) + 1
    """
    if k < 2:
        raise ValidationError(f"k must be at least 2, got {k}")
    if k > n_rows:
        raise ValidationError(f"k={k} exceeds the number of rows ({n_rows})")
    return np.arange(n_rows) % k + 1


@dataclass
class FoldResult:
    """Held-out predictions and metrics for one fold."""
    fold: int
    row_index: np.ndarray
    actual: np.ndarray
    probabilities: np.ndarray
    predicted: np.ndarray
    counts: ConfusionCounts
    n_train: int

    @property
    def n_test(self) -> int:
        return len(self.row_index)


@dataclass
class FoldAccumulator:
    """Fold results collected across iterations, kept in fold order."""
    folds: List[FoldResult] = field(default_factory=list)

    def add(self, result: FoldResult) -> "FoldAccumulator":
        self.folds.append(result)
        return self

    def ordered(self) -> List[FoldResult]:
        return sorted(self.folds, key=lambda r: r.fold)

    def predictions(self) -> pd.DataFrame:
        """Out-of-fold predictions concatenated in fold-index order."""
        frames = [
            pd.DataFrame({
                "row_index": r.row_index,
                "fold": r.fold,
                "actual": r.actual,
                "probability": r.probabilities,
                "predicted": r.predicted,
            })
            for r in self.ordered()
        ]
        if not frames:
            return pd.DataFrame(columns=["row_index", "fold", "actual", "probability", "predicted"])
        return pd.concat(frames, ignore_index=True)


@dataclass
class CrossValidationResult:
    """Pooled report plus per-fold reports (per-fold ones are informational)."""
    k: int
    folds: List[FoldResult]
    predictions: pd.DataFrame
    pooled: EvaluationReport
    fold_reports: List[EvaluationReport]

    def to_dict(self) -> dict:
        return {
            "k": self.k,
            "pooled": self.pooled.to_dict(),
            "folds": [
                {"fold": f.fold, "n_train": f.n_train, "n_test": f.n_test, **report.to_dict()}
                for f, report in zip(self.folds, self.fold_reports)
            ],
        }


def run_fold(
    df: pd.DataFrame,
    fold_ids: np.ndarray,
    fold: int,
    categorical_columns: List[str],
    numeric_columns: List[str],
    target_column: str,
    trainer: ModelTrainer,
    threshold: float
) -> FoldResult:
    """
    Train on every fold except `fold` and score the rows of `fold`.

    The fitted model lives only for the duration of this call.
    """
    test_mask = fold_ids == fold
    train_df = df.loc[~test_mask]
    test_df = df.loc[test_mask]

    model = trainer.fit(train_df, categorical_columns, numeric_columns, target_column)
    probabilities = trainer.score(model, test_df)
    predicted = threshold_predict(probabilities, threshold)
    actual = test_df[target_column].to_numpy(dtype=int)

    return FoldResult(
        fold=fold,
        row_index=np.flatnonzero(test_mask),
        actual=actual,
        probabilities=probabilities,
        predicted=predicted,
        counts=confusion(actual, predicted),
        n_train=len(train_df),
    )


class CrossValidator:
    """Round-robin k-fold cross-validation of the churn model."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize CrossValidator.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        cv_config = self.config.get("cross_validation", {})
        self.k = cv_config.get("k", 5)
        self.n_jobs = cv_config.get("n_jobs", 1)

        self.trainer = ModelTrainer(self.config)
        self.evaluator = ModelEvaluator(self.config)

    def run(
        self,
        df: pd.DataFrame,
        categorical_columns: List[str],
        numeric_columns: List[str],
        target_column: str,
        k: Optional[int] = None,
        threshold: Optional[float] = None
    ) -> CrossValidationResult:
        """
        Run k-fold cross-validation.

        A fold that fails to fit aborts the whole run.

        Args:
            df: Imputed table with derived features
            categorical_columns: Reference-coded predictors
            numeric_columns: Numeric predictors
            target_column: Binary 0/1 target column
            k: Number of folds (defaults to config)
            threshold: Classification threshold (defaults to config)

        Returns:
            CrossValidationResult with pooled and per-fold reports
        """
        k = self.k if k is None else k
        threshold = self.evaluator.threshold if threshold is None else threshold
        validate_threshold(threshold)

        df = df.reset_index(drop=True)
        fold_ids = assign_folds(len(df), k)
        sizes = np.bincount(fold_ids)[1:].tolist()
        logger.info(f"Running {k}-fold cross-validation on {len(df)} rows (fold sizes {sizes})")

        args = (categorical_columns, numeric_columns, target_column, self.trainer, threshold)
        if self.n_jobs == 1:
            results = (run_fold(df, fold_ids, fold, *args) for fold in range(1, k + 1))
        else:
            results = Parallel(n_jobs=self.n_jobs)(
                delayed(run_fold)(df, fold_ids, fold, *args) for fold in range(1, k + 1)
            )

        accumulator = FoldAccumulator()
        for result in results:
            accumulator = accumulator.add(result)
            logger.info(
                f"Fold {result.fold}: train={result.n_train} test={result.n_test} "
                f"{result.counts.to_dict()}"
            )

        folds = accumulator.ordered()
        # Per-fold metrics are informational; only the pooled report honours the raise policy
        fold_reports = [self.evaluator.evaluate_counts(f.counts, threshold, on_undefined="nan") for f in folds]

        predictions = accumulator.predictions()
        pooled_counts = confusion(predictions["actual"], predictions["predicted"])
        pooled = self.evaluator.evaluate_counts(pooled_counts, threshold)

        logger.info(f"Pooled {k}-fold metrics: {format_metrics(pooled.metrics())}")

        return CrossValidationResult(
            k=k,
            folds=folds,
            predictions=predictions,
            pooled=pooled,
            fold_reports=fold_reports,
        )

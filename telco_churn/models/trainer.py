"""
Model Trainer Module
====================

Fits a logistic regression on a reference-coded design matrix and scores
tables with it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import OneHotEncoder

from telco_churn.config import get_config
from telco_churn.exceptions import ModelError


@dataclass
class ChurnModel:
    """
    Fitted parameters for one training slice.

    The baseline level of each categorical predictor is its lexicographically
    first level; it gets no indicator column.
    """
    encoder: Optional[OneHotEncoder]
    estimator: LogisticRegression
    categorical_columns: List[str]
    numeric_columns: List[str]
    target_column: str
    feature_names: List[str]
    baselines: Dict[str, str] = field(default_factory=dict)
    n_train: int = 0

    def design_matrix(self, df: pd.DataFrame) -> np.ndarray:
        return build_design_matrix(df, self.encoder, self.categorical_columns, self.numeric_columns)

    def predict_proba(self, df: pd.DataFrame) -> np.ndarray:
        """Probability of churn for each row, in row order."""
        return self.estimator.predict_proba(self.design_matrix(df))[:, 1]


def _categorical_frame(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    # Levels compared as strings so 0/1 flags and text share one ordering
    return df[columns].astype(str)


def build_design_matrix(
    df: pd.DataFrame,
    encoder: Optional[OneHotEncoder],
    categorical_columns: List[str],
    numeric_columns: List[str]
) -> np.ndarray:
    """Dummy columns followed by numeric columns (no intercept column)."""
    parts = []
    if encoder is not None:
        parts.append(encoder.transform(_categorical_frame(df, categorical_columns)))
    if numeric_columns:
        parts.append(df[numeric_columns].to_numpy(dtype=float))
    if not parts:
        return np.empty((len(df), 0))
    return np.hstack(parts)


class ModelTrainer:
    """Train and score logistic regression churn models."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize ModelTrainer.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.model_config = self.config.get("model", {})
        self.params = dict(self.model_config.get("params", {}))

    def fit(
        self,
        train_df: pd.DataFrame,
        categorical_columns: List[str],
        numeric_columns: List[str],
        target_column: str
    ) -> ChurnModel:
        """
        Fit a logistic regression on one training slice.

        Args:
            train_df: Training rows
            categorical_columns: Predictors encoded with reference coding
            numeric_columns: Predictors used as-is
            target_column: Binary 0/1 target column

        Returns:
            Fitted ChurnModel
        """
        categorical_columns = list(categorical_columns)
        numeric_columns = list(numeric_columns)

        if not categorical_columns and not numeric_columns:
            raise ModelError("No predictor columns configured")

        missing = [c for c in categorical_columns + numeric_columns + [target_column] if c not in train_df.columns]
        if missing:
            raise ModelError(f"Training data is missing columns: {missing}")

        y = train_df[target_column].to_numpy()
        classes = np.unique(y)
        if len(classes) < 2:
            raise ModelError(
                f"Target {target_column} has {len(classes)} distinct value(s) in {len(train_df)} training rows; need 2"
            )

        incomplete = [c for c in categorical_columns + numeric_columns if train_df[c].isna().any()]
        if incomplete:
            raise ModelError(f"Predictors contain missing values: {incomplete}")

        encoder = None
        feature_names: List[str] = []
        baselines: Dict[str, str] = {}
        if categorical_columns:
            encoder = OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False)
            encoder.fit(_categorical_frame(train_df, categorical_columns))
            feature_names.extend(encoder.get_feature_names_out(categorical_columns).tolist())
            baselines = {col: str(cats[0]) for col, cats in zip(categorical_columns, encoder.categories_)}
        feature_names.extend(numeric_columns)

        X = build_design_matrix(train_df, encoder, categorical_columns, numeric_columns)
        self._check_rank(X, feature_names)

        estimator = LogisticRegression(**self.params)
        logger.debug(f"Fitting logistic regression on {X.shape[0]} rows x {X.shape[1]} features")
        estimator.fit(X, y)

        return ChurnModel(
            encoder=encoder,
            estimator=estimator,
            categorical_columns=categorical_columns,
            numeric_columns=numeric_columns,
            target_column=target_column,
            feature_names=feature_names,
            baselines=baselines,
            n_train=len(train_df),
        )

    @staticmethod
    def _check_rank(X: np.ndarray, feature_names: List[str]) -> None:
        design = np.hstack([np.ones((X.shape[0], 1)), X])
        rank = np.linalg.matrix_rank(design)
        if rank < design.shape[1]:
            raise ModelError(
                f"Design matrix is rank deficient (rank {rank} < {design.shape[1]} columns "
                f"including intercept); predictors: {feature_names}"
            )

    def score(self, model: ChurnModel, df: pd.DataFrame) -> np.ndarray:
        """
        Predicted churn probabilities.

        Args:
            model: Fitted model
            df: Rows to score

        Returns:
            Array of probabilities in [0, 1], one per row, in row order
        """
        incomplete = [c for c in model.categorical_columns + model.numeric_columns if df[c].isna().any()]
        if incomplete:
            raise ModelError(f"Cannot score rows with missing predictors: {incomplete}")
        return model.predict_proba(df)

    def coefficients(self, model: ChurnModel) -> pd.DataFrame:
        """
        Parameter estimates with odds ratios, intercept first.

        Returns:
            DataFrame with columns feature, coefficient, odds_ratio
        """
        names = ["intercept"] + model.feature_names
        coefs = np.concatenate([model.estimator.intercept_, model.estimator.coef_.ravel()])
        return pd.DataFrame({
            "feature": names,
            "coefficient": coefs,
            "odds_ratio": np.exp(coefs),
        })

"""
Data Preprocessor Module
========================

Fills missing values in numeric usage columns before feature derivation.
"""

from typing import List, Optional

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.experimental import enable_iterative_imputer  # noqa: F401
from sklearn.impute import IterativeImputer, SimpleImputer
from sklearn.linear_model import BayesianRidge

from telco_churn.config import get_config
from telco_churn.exceptions import DataError, ValidationError


class DataPreprocessor:
    """Clean and impute the raw customer table."""

    STRATEGIES = ("regression", "mean", "median")

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize DataPreprocessor.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.numeric_columns = list(self.config.get("data", {}).get("numeric_columns", []))
        self.drop_columns = list(self.config.get("data", {}).get("drop_columns", []))

        impute_config = self.config.get("imputation", {})
        self.strategy = impute_config.get("strategy", "regression")
        self.max_iter = impute_config.get("max_iter", 10)
        self.random_state = impute_config.get("random_state", 42)

        if self.strategy not in self.STRATEGIES:
            raise ValidationError(f"Unknown imputation strategy: {self.strategy}. Available: {list(self.STRATEGIES)}")

    def clean_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Drop configured non-predictive columns. Rows are never removed.

        Args:
            df: Raw DataFrame

        Returns:
            Cleaned DataFrame
        """
        df = df.copy()

        cols_to_drop = [col for col in self.drop_columns if col in df.columns]
        if cols_to_drop:
            df = df.drop(columns=cols_to_drop)
            logger.info(f"Dropped columns: {cols_to_drop}")

        missing_info = df.isnull().sum()
        if missing_info.any():
            logger.info(f"Missing values found:\n{missing_info[missing_info > 0]}")

        return df

    def _build_imputer(self, n_columns: int):
        # Chained regression needs at least one other column to regress on
        if self.strategy == "regression" and n_columns > 1:
            return IterativeImputer(
                estimator=BayesianRidge(),
                sample_posterior=False,
                max_iter=self.max_iter,
                random_state=self.random_state,
            )
        if self.strategy == "regression":
            return SimpleImputer(strategy="mean")
        return SimpleImputer(strategy=self.strategy)

    def impute_numeric(
        self,
        df: pd.DataFrame,
        columns: Optional[List[str]] = None
    ) -> pd.DataFrame:
        """
        Fill missing values in numeric columns.

        With the regression strategy each targeted column is regressed on the
        other targeted columns (chained equations, no posterior sampling).

        Args:
            df: DataFrame with missing values
            columns: Numeric columns to impute (defaults to configured numeric columns)

        Returns:
            DataFrame with no missing values in the targeted columns; same rows, same order
        """
        columns = list(columns) if columns is not None else self.numeric_columns

        absent = [col for col in columns if col not in df.columns]
        if absent:
            raise DataError(f"Cannot impute absent columns: {absent}")

        df = df.copy()
        if not columns:
            return df

        values = df[columns].apply(pd.to_numeric, errors="coerce").astype(float)

        empty = [col for col in columns if values[col].isna().all()]
        if empty:
            raise DataError(f"Columns are entirely missing, nothing to impute from: {empty}")

        missing_counts = values.isna().sum()
        if not missing_counts.any():
            logger.debug("No missing numeric values to impute")
            df[columns] = values
            return df

        logger.info(f"Imputing {int(missing_counts.sum())} cells with {self.strategy} strategy")
        for col, count in missing_counts[missing_counts > 0].items():
            logger.debug(f"Imputing {count} missing values in {col}")

        imputer = self._build_imputer(len(columns))
        filled = imputer.fit_transform(values.to_numpy())
        df[columns] = pd.DataFrame(filled, columns=columns, index=df.index)

        if np.isnan(df[columns].to_numpy()).any():
            raise DataError(f"Imputation left missing values in {columns}")

        return df

"""
Feature Engineering Module
==========================

Derives the binary churn target and the tenure / monthly charge buckets.

Bucket boundaries are inclusive on the lower edge and exclusive on the upper
edge; the top bucket is unbounded.
"""

import math
from typing import List, Optional, Tuple

import pandas as pd
from loguru import logger

from telco_churn.config import get_config
from telco_churn.exceptions import DataError

# (upper bound, label); the last bucket has no upper bound
TENURE_BUCKETS: List[Tuple[float, str]] = [
    (12, "0-12 mo"),
    (24, "12-24 mo"),
    (48, "24-48 mo"),
    (math.inf, "48+ mo"),
]

MONTHLY_CHARGE_BUCKETS: List[Tuple[float, str]] = [
    (35, "Low"),
    (70, "Medium"),
    (math.inf, "High"),
]

TENURE_GROUPS = [label for _, label in TENURE_BUCKETS]
MONTHLY_CHARGE_GROUPS = [label for _, label in MONTHLY_CHARGE_BUCKETS]


def _bucket(value: float, buckets: List[Tuple[float, str]], name: str) -> str:
    if value is None or pd.isna(value):
        raise DataError(f"Cannot bucket missing {name}")
    for upper, label in buckets:
        if value < upper:
            return label
    return buckets[-1][1]


def churn_flag(label, positive: str = "Yes") -> int:
    """1 iff the raw label equals `positive` exactly (case-sensitive), else 0."""
    return 1 if label == positive else 0


def tenure_group(months: float) -> str:
    """Map tenure in months to one of the four tenure buckets."""
    return _bucket(months, TENURE_BUCKETS, "tenure")


def monthly_charge_group(charge: float) -> str:
    """Map a monthly charge to Low (<35), Medium ([35, 70)) or High (>=70)."""
    return _bucket(charge, MONTHLY_CHARGE_BUCKETS, "monthly charge")


class FeatureEngineer:
    """Add derived columns to the imputed customer table."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize FeatureEngineer.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        data_config = self.config.get("data", {})
        feature_config = self.config.get("features", {})

        self.target_column = data_config.get("target_column", "Churn")
        self.positive_label = data_config.get("positive_label", "Yes")
        self.negative_label = data_config.get("negative_label", "No")
        self.strict_labels = data_config.get("strict_labels", False)

        self.flag_column = feature_config.get("target", "churn_flag")
        self.tenure_group_column = feature_config.get("tenure_group", "tenure_group")
        self.charge_group_column = feature_config.get("monthly_charge_group", "monthly_charge_group")
        self.created_features = []

    def create_all_features(
        self,
        df: pd.DataFrame,
        target_column: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Create all derived features.

        Args:
            df: Imputed DataFrame
            target_column: Raw churn label column (overrides config)

        Returns:
            DataFrame with churn_flag, tenure_group and monthly_charge_group added
        """
        df = df.copy()
        self.created_features = []

        df = self.create_target(df, target_column)
        df = self.create_bucket_features(df)

        logger.info(f"Created features: {self.created_features}")
        return df

    def create_target(self, df: pd.DataFrame, target_column: Optional[str] = None) -> pd.DataFrame:
        """
        Derive churn_flag from the raw label column.

        Labels other than the configured positive/negative pair are mapped to 0
        with a warning, or rejected with DataError in strict mode.
        """
        target = target_column or self.target_column
        if target not in df.columns:
            raise DataError(f"Target column not found: {target}")

        labels = df[target]
        unrecognised = ~labels.isin([self.positive_label, self.negative_label])
        if unrecognised.any():
            examples = sorted(labels[unrecognised].astype(str).unique().tolist())[:5]
            message = f"{int(unrecognised.sum())} rows have unrecognised {target} labels {examples}"
            if self.strict_labels:
                raise DataError(message)
            logger.warning(f"{message}; treated as non-churn")

        df[self.flag_column] = labels.map(lambda v: churn_flag(v, self.positive_label)).astype(int)
        self.created_features.append(self.flag_column)

        rate = df[self.flag_column].mean() if len(df) else float("nan")
        logger.debug(f"Churn rate: {rate:.4f}")
        return df

    def create_bucket_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add tenure_group and monthly_charge_group."""
        if "tenure" in df.columns:
            df[self.tenure_group_column] = df["tenure"].map(tenure_group)
            self.created_features.append(self.tenure_group_column)

        if "MonthlyCharges" in df.columns:
            df[self.charge_group_column] = df["MonthlyCharges"].map(monthly_charge_group)
            self.created_features.append(self.charge_group_column)

        return df

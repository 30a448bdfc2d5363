"""
Collinearity diagnostics.

Variance inflation factors are advisory only; nothing downstream reads them.
"""

from typing import List

import numpy as np
import pandas as pd
from loguru import logger
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.tools.tools import add_constant

from telco_churn.exceptions import DataError


def compute_vif(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    """
    Variance inflation factor per column, 1 / (1 - R^2) from regressing the
    column on all other columns plus an intercept.

    Args:
        df: Table with complete numeric columns
        columns: Numeric predictor columns

    Returns:
        DataFrame with columns feature, vif sorted by vif descending
    """
    if len(columns) < 2:
        raise DataError("VIF needs at least two numeric columns")

    X = df[columns].astype(float)
    if X.isna().any().any():
        raise DataError(f"VIF columns contain missing values: {columns}")

    # Constant column sits at index 0
    arr = add_constant(X.to_numpy(), has_constant="add")
    vifs = []
    with np.errstate(divide="ignore", invalid="ignore"):
        for i, col in enumerate(columns, start=1):
            vifs.append((col, float(variance_inflation_factor(arr, i))))

    return pd.DataFrame(vifs, columns=["feature", "vif"]).sort_values("vif", ascending=False).reset_index(drop=True)


def log_vif_report(vif_df: pd.DataFrame, advisory_threshold: float = 10.0) -> None:
    """Log each VIF; values above the advisory threshold are logged as warnings."""
    for row in vif_df.itertuples(index=False):
        if row.vif > advisory_threshold:
            logger.warning(f"VIF {row.feature}: {row.vif:.2f} (above {advisory_threshold:g})")
        else:
            logger.info(f"VIF {row.feature}: {row.vif:.2f}")

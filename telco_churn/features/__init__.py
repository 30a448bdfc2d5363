"""Feature module: derived target, bucket features and collinearity diagnostics."""

from .collinearity import compute_vif, log_vif_report
from .feature_engineer import (
    FeatureEngineer,
    churn_flag,
    monthly_charge_group,
    tenure_group,
)

__all__ = [
    "FeatureEngineer",
    "churn_flag",
    "tenure_group",
    "monthly_charge_group",
    "compute_vif",
    "log_vif_report",
]

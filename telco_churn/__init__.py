"""
Telco Churn
===========

Logistic-regression churn model for tabular telecom usage records, with
round-robin k-fold cross-validation and pooled out-of-fold metrics.

Modules:
    - config: YAML configuration and project paths
    - data: Data loading and numeric imputation
    - features: Derived target, bucket features and VIF diagnostics
    - models: Logistic regression training, evaluation and cross-validation
    - pipeline: End-to-end batch run
    - utils: Logging and formatting helpers
"""

__version__ = "1.0.0"

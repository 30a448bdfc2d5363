"""Error types raised by the churn pipeline."""


class ChurnError(Exception):
    """Base class for all fatal pipeline errors."""


class DataError(ChurnError):
    """Malformed input, or missing values that cannot be filled."""


class ModelError(ChurnError):
    """Logistic regression cannot be fitted on the given slice."""


class ValidationError(ChurnError):
    """Invalid arguments passed to evaluation or fold assignment."""


class MetricUndefined(ChurnError):
    """A precision/recall/F1 ratio whose denominator is zero."""

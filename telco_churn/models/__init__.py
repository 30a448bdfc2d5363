"""Models module for training, evaluation and cross-validation."""

from .trainer import ChurnModel, ModelTrainer
from .evaluator import ConfusionCounts, EvaluationReport, ModelEvaluator
from .cross_validator import CrossValidationResult, CrossValidator, assign_folds

__all__ = [
    "ChurnModel",
    "ModelTrainer",
    "ConfusionCounts",
    "EvaluationReport",
    "ModelEvaluator",
    "CrossValidationResult",
    "CrossValidator",
    "assign_folds",
]

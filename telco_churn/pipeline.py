"""
Pipeline Module
===============

Load -> impute -> derive features -> VIF diagnostics -> full-data fit and
score -> k-fold cross-validation -> ROC output.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import pandas as pd
from loguru import logger

from telco_churn.config import REPORTS_DIR, ROOT_DIR, get_config
from telco_churn.data import DataLoader, DataPreprocessor
from telco_churn.features import FeatureEngineer, compute_vif, log_vif_report
from telco_churn.models import CrossValidationResult, CrossValidator, ModelEvaluator, ModelTrainer
from telco_churn.models.evaluator import EvaluationReport, roc_auc, roc_points, threshold_predict


@dataclass
class PipelineResult:
    """Everything a run produces."""
    data: pd.DataFrame
    predictions: pd.DataFrame
    coefficients: pd.DataFrame
    vif: Optional[pd.DataFrame]
    full_data: EvaluationReport
    cross_validation: CrossValidationResult
    roc: pd.DataFrame
    auc: float
    output_dir: Path

    def metrics(self) -> dict:
        return {
            "full_data": self.full_data.to_dict(),
            "cross_validation": self.cross_validation.to_dict(),
            "roc_auc": self.auc,
        }


def _resolve_output_dir(config: dict, output_dir: Optional[Union[str, Path]]) -> Path:
    if output_dir is not None:
        return Path(output_dir)
    reports_dir = config.get("output", {}).get("reports_dir")
    if not reports_dir:
        return REPORTS_DIR
    reports_dir = Path(reports_dir)
    return reports_dir if reports_dir.is_absolute() else ROOT_DIR / reports_dir


def run_pipeline(
    data_path: Union[str, Path],
    target_column: Optional[str] = None,
    k: Optional[int] = None,
    config: Optional[dict] = None,
    output_dir: Optional[Union[str, Path]] = None,
    threshold: Optional[float] = None,
    make_plots: bool = True
) -> PipelineResult:
    """
    Run the full churn analysis and write its artifacts.

    Args:
        data_path: Raw customer table
        target_column: Raw churn label column (defaults to config)
        k: Number of cross-validation folds (defaults to config)
        config: Configuration dictionary
        output_dir: Directory for tables and figures (defaults to config)
        threshold: Classification threshold (defaults to config)
        make_plots: Whether to save ROC and confusion matrix figures

    Returns:
        PipelineResult
    """
    config = config or get_config()
    target_column = target_column or config.get("data", {}).get("target_column", "Churn")
    output_dir = _resolve_output_dir(config, output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    loader = DataLoader(config)
    preprocessor = DataPreprocessor(config)
    engineer = FeatureEngineer(config)
    trainer = ModelTrainer(config)
    evaluator = ModelEvaluator(config)
    validator = CrossValidator(config)
    threshold = evaluator.threshold if threshold is None else threshold

    # Load and impute
    df = loader.load_raw_data(data_path, target_column=target_column)
    df = preprocessor.clean_data(df)
    df = preprocessor.impute_numeric(df)

    # Derived target and buckets
    df = engineer.create_all_features(df, target_column=target_column)
    flag = engineer.flag_column

    # Collinearity diagnostics
    feature_config = config.get("features", {})
    vif_columns = [c for c in feature_config.get("vif_columns", []) if c in df.columns]
    vif_df = None
    if len(vif_columns) >= 2:
        vif_df = compute_vif(df, vif_columns)
        log_vif_report(vif_df, feature_config.get("vif_advisory_threshold", 10.0))
        vif_df.to_csv(output_dir / "vif.csv", index=False)

    model_config = config.get("model", {})
    categorical = list(model_config.get("categorical", []))
    numeric = list(model_config.get("numeric", []))

    # Full-data fit, scored on the same rows
    model = trainer.fit(df, categorical, numeric, flag)
    probabilities = trainer.score(model, df)
    predictions = pd.DataFrame({
        "probability": probabilities,
        "predicted": threshold_predict(probabilities, threshold),
        "actual": df[flag].to_numpy(),
    })
    id_column = config.get("data", {}).get("id_column")
    if id_column and id_column in df.columns:
        predictions.insert(0, id_column, df[id_column].to_numpy())

    full_report = evaluator.evaluate(df[flag], probabilities, threshold)
    logger.info("\n" + evaluator.format_report(full_report, "Full-data fit"))

    coefficients = trainer.coefficients(model)
    logger.debug(f"\nParameter estimates:\n{coefficients}")

    # Cross-validation
    cv_result = validator.run(df, categorical, numeric, flag, k=k, threshold=threshold)
    logger.info("\n" + evaluator.format_report(cv_result.pooled, f"Pooled {cv_result.k}-fold"))

    # ROC
    roc_df = roc_points(df[flag], probabilities)
    auc = roc_auc(df[flag], probabilities)
    logger.info(f"ROC AUC (full-data fit): {auc:.4f}")

    result = PipelineResult(
        data=df,
        predictions=predictions,
        coefficients=coefficients,
        vif=vif_df,
        full_data=full_report,
        cross_validation=cv_result,
        roc=roc_df,
        auc=auc,
        output_dir=output_dir,
    )
    save_artifacts(result, loader, evaluator, make_plots)
    return result


def save_artifacts(
    result: PipelineResult,
    loader: DataLoader,
    evaluator: ModelEvaluator,
    make_plots: bool = True
) -> None:
    """Write tables, metrics and figures into the result's output directory."""
    out = result.output_dir
    loader.save_predictions(result.predictions, out / "predictions.csv")
    loader.save_predictions(result.cross_validation.predictions, out / "cv_predictions.csv")
    result.roc.to_csv(out / "roc_points.csv", index=False)
    result.coefficients.to_csv(out / "coefficients.csv", index=False)

    with open(out / "metrics.json", "w") as f:
        json.dump(result.metrics(), f, indent=2)
    logger.info(f"Saved metrics to {out / 'metrics.json'}")

    if make_plots:
        figures = out / "figures"
        evaluator.plot_roc_curve(result.roc, figures / "roc_curve.png", auc=result.auc)
        evaluator.plot_confusion_matrix(
            result.full_data.counts, figures / "confusion_matrix_full.png", "Full-data fit"
        )
        evaluator.plot_confusion_matrix(
            result.cross_validation.pooled.counts,
            figures / "confusion_matrix_cv.png",
            f"Pooled {result.cross_validation.k}-fold",
        )

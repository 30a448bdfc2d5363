"""
Command-line entry point.

Usage:
    telco-churn data/raw/telco_churn.csv --target Churn --k 5
"""

import argparse
import sys
from typing import List, Optional

import yaml
from loguru import logger

from telco_churn.config import get_config, load_config
from telco_churn.exceptions import ChurnError
from telco_churn.pipeline import run_pipeline
from telco_churn.utils import format_metrics, setup_logging


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Logistic regression churn model with k-fold cross-validation")

    parser.add_argument(
        "data",
        type=str,
        help="Path to the customer table (.csv, .xlsx, .parquet)"
    )
    parser.add_argument(
        "--target",
        type=str,
        default=None,
        help="Raw churn label column (default from config: Churn)"
    )
    parser.add_argument(
        "--k",
        type=int,
        default=None,
        help="Number of cross-validation folds (default from config: 5)"
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Classification threshold (default from config: 0.5)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML config replacing the packaged defaults"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for predictions, metrics and figures"
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip ROC and confusion matrix figures"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline; returns the process exit code."""
    args = parse_args(argv)

    try:
        config = load_config(args.config) if args.config else get_config()
    except (OSError, yaml.YAMLError) as e:
        setup_logging(level=args.log_level or "INFO")
        logger.error(f"Could not read config {args.config}: {e}")
        return 1

    log_config = config.get("logging", {})
    setup_logging(level=args.log_level or log_config.get("level", "INFO"), log_file=log_config.get("log_file"))

    try:
        result = run_pipeline(
            args.data,
            target_column=args.target,
            k=args.k,
            config=config,
            output_dir=args.output_dir,
            threshold=args.threshold,
            make_plots=not args.no_plots,
        )
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except ChurnError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    logger.info(f"Pooled cross-validation: {format_metrics(result.cross_validation.pooled.metrics())}")
    logger.info(f"Artifacts written to {result.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

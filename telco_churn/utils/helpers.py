"""
Utility Helper Functions
========================

Common utility functions used across the project.
"""

import math
import sys
from typing import Dict, Optional

from loguru import logger

from telco_churn.config import LOGS_DIR


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "7 days"
):
    """
    Setup logging configuration.

    Args:
        level: Logging level
        log_file: Optional log file name, written under the logs/ directory
        rotation: Log rotation setting
        retention: Log retention setting
    """
    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )

    # Add file handler if specified
    if log_file:
        log_path = LOGS_DIR / log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation=rotation,
            retention=retention,
            compression="zip"
        )

    logger.info(f"Logging configured at {level} level")


def format_metrics(metrics: Dict[str, float], precision: int = 4) -> Dict[str, str]:
    """
    Format metric values for display.

    NaN values are rendered as "undefined".

    Args:
        metrics: Dictionary of metric values
        precision: Decimal precision

    Returns:
        Dictionary with formatted values
    """
    formatted = {}
    for k, v in metrics.items():
        if isinstance(v, float) and math.isnan(v):
            formatted[k] = "undefined"
        elif isinstance(v, float):
            formatted[k] = f"{v:.{precision}f}"
        else:
            formatted[k] = str(v)
    return formatted


def safe_divide(numerator: float, denominator: float, default: float = float("nan")) -> float:
    """
    Division returning `default` when the denominator is zero.

    Args:
        numerator: Numerator value
        denominator: Denominator value
        default: Value returned if denominator is zero

    Returns:
        Division result or default
    """
    return numerator / denominator if denominator != 0 else default

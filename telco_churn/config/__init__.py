"""Configuration module for the churn pipeline."""

import copy
import os
from pathlib import Path
from typing import Optional, Union

import yaml

# Working root for data, reports and logs
ROOT_DIR = Path(os.environ.get("TELCO_CHURN_HOME", Path.cwd())).resolve()

# Packaged defaults
CONFIG_PATH = Path(__file__).parent / "config.yaml"


def _read_yaml(path: Path) -> dict:
    with open(path, "r") as f:
        config = yaml.safe_load(f)
    return config or {}


def merge_config(base: dict, override: dict) -> dict:
    """Recursively overlay `override` on a copy of `base`; lists and scalars are replaced."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> dict:
    """
    Load configuration.

    A user file is overlaid on the packaged defaults, so it only needs the
    keys it changes.
    """
    defaults = _read_yaml(CONFIG_PATH)
    if path is None:
        return defaults
    override = _read_yaml(Path(path))
    if not isinstance(override, dict):
        raise yaml.YAMLError(f"Config {path} must be a mapping")
    return merge_config(defaults, override)


def get_config() -> dict:
    """Get configuration dictionary."""
    return load_config()


# Export commonly used paths
REPORTS_DIR = ROOT_DIR / "reports"
LOGS_DIR = ROOT_DIR / "logs"

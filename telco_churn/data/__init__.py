"""Data module for loading and imputing data."""

from .data_loader import DataLoader
from .preprocessor import DataPreprocessor

__all__ = ["DataLoader", "DataPreprocessor"]

"""
Data Loader Module
==================

Handles loading the raw customer table and basic validation.
"""

from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
from loguru import logger

from telco_churn.config import get_config
from telco_churn.exceptions import DataError


class DataLoader:
    """Load and validate the raw telecom customer table."""

    READERS = {
        ".csv": pd.read_csv,
        ".xlsx": pd.read_excel,
        ".xls": pd.read_excel,
        ".parquet": pd.read_parquet,
    }

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize DataLoader.

        Args:
            config: Configuration dictionary. If None, loads from config.yaml
        """
        self.config = config or get_config()
        self.data_config = self.config.get("data", {})
        self.target_column = self.data_config.get("target_column", "Churn")
        self.numeric_columns = list(self.data_config.get("numeric_columns", []))
        self.categorical_columns = list(self.data_config.get("categorical_columns", []))

    def required_columns(self, target_column: Optional[str] = None) -> List[str]:
        """Columns that must be present in the raw table."""
        target = target_column or self.target_column
        return [target] + self.numeric_columns + self.categorical_columns

    def load_raw_data(
        self,
        file_path: Union[str, Path],
        target_column: Optional[str] = None,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load the raw table and coerce numeric columns.

        Args:
            file_path: Path to a .csv, .xlsx/.xls or .parquet file
            target_column: Raw churn label column (overrides config)
            **kwargs: Additional arguments passed to the pandas reader

        Returns:
            DataFrame containing raw data with numeric columns as floats
        """
        file_path = Path(file_path)
        if not file_path.exists():
            logger.error(f"Data file not found: {file_path}")
            raise FileNotFoundError(f"Data file not found: {file_path}")

        ext = file_path.suffix.lower()
        reader = self.READERS.get(ext)
        if reader is None:
            raise DataError(f"Unsupported file format: {ext}")

        logger.info(f"Loading data from {file_path}")
        try:
            df = reader(file_path, **kwargs)
        except pd.errors.EmptyDataError as e:
            raise DataError(f"Data file is empty: {file_path}") from e
        except pd.errors.ParserError as e:
            raise DataError(f"Malformed rows in {file_path}: {e}") from e

        if df.empty:
            raise DataError(f"Data file has no rows: {file_path}")

        required = self.required_columns(target_column)
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise DataError(
                f"Data is missing required columns: {missing}. "
                f"Found: {sorted(df.columns.astype(str).tolist())}"
            )

        df = self.strip_text_columns(df)
        df = self.coerce_numeric(df)

        logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns")
        return df

    def strip_text_columns(self, df: pd.DataFrame, columns: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Strip surrounding whitespace from predictor text columns.

        The churn label column is left as read so that only an exact "Yes" counts as churn.
        """
        df = df.copy()
        columns = columns if columns is not None else self.categorical_columns + self.numeric_columns
        for col in columns:
            if pd.api.types.is_numeric_dtype(df[col]):
                continue
            df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
        return df

    def coerce_numeric(self, df: pd.DataFrame, columns: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Convert numeric columns that may arrive as text.

        Blank or unparseable cells become NaN so they can be imputed later.

        Args:
            df: Input DataFrame
            columns: Columns to coerce (defaults to configured numeric columns)

        Returns:
            DataFrame with float numeric columns
        """
        df = df.copy()
        columns = columns or self.numeric_columns

        for col in columns:
            was_missing = df[col].isna()
            df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
            coerced = int((df[col].isna() & ~was_missing).sum())
            if coerced:
                logger.warning(f"{col}: {coerced} unparseable values set to missing")

        return df

    def validate_data(self, df: pd.DataFrame, target_column: Optional[str] = None) -> dict:
        """
        Summarise data quality.

        Args:
            df: DataFrame to validate
            target_column: Raw churn label column

        Returns:
            Dictionary with validation results
        """
        target = target_column or self.target_column
        validation_results = {
            "total_rows": len(df),
            "total_columns": len(df.columns),
            "missing_values": df.isnull().sum().to_dict(),
            "duplicates": int(df.duplicated().sum()),
            "dtypes": df.dtypes.astype(str).to_dict(),
        }

        if target in df.columns:
            validation_results["target_distribution"] = df[target].value_counts(dropna=False).to_dict()

        return validation_results

    def save_predictions(self, df: pd.DataFrame, file_path: Union[str, Path]) -> Path:
        """
        Save a predictions table.

        Args:
            df: DataFrame to save
            file_path: Output path (.csv or .parquet)

        Returns:
            Path to saved file
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        ext = file_path.suffix.lower()
        if ext == ".parquet":
            df.to_parquet(file_path, index=False)
        elif ext == ".csv":
            df.to_csv(file_path, index=False)
        else:
            raise DataError(f"Unsupported file format: {ext}")

        logger.info(f"Saved {len(df)} rows to {file_path}")
        return file_path

"""
Loading of daily return series from CSV files.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from data_manager.data_validator import DataValidator

logger = logging.getLogger(__name__)

class DataLoader:
    def __init__(self, validator: Optional[DataValidator] = None):
        """Initialize data loader with a validator for the loaded series."""
        self.validator = validator or DataValidator()
        self.logger = logging.getLogger('data_manager.loader')

    def load_returns(self, file_path: Union[str, Path],
                     column: Optional[str] = None,
                     date_column: Optional[str] = None,
                     is_price: bool = False) -> pd.Series:
        """
        Load a percent return series from a CSV file.

        Args:
            file_path: CSV with a date column and one or more value columns
            column: Value column to use (default: first non-date column)
            date_column: Date column (default: first column)
            is_price: Convert the column from prices to percent log returns

        Returns:
            Series of returns indexed by date, validated
        """
        try:
            file_path = Path(file_path)
            self.logger.info(f"Reading data from: {file_path}")
            df = pd.read_csv(file_path)
            self.logger.info(f"Total rows in CSV: {len(df)}")

            date_column = date_column or df.columns[0]
            if date_column not in df.columns:
                raise KeyError(f"Date column '{date_column}' not found in {list(df.columns)}")

            value_columns = [c for c in df.columns if c != date_column]
            column = column or (value_columns[0] if value_columns else None)
            if column is None or column not in df.columns:
                raise KeyError(f"Value column '{column}' not found in {list(df.columns)}")

            series = pd.Series(
                pd.to_numeric(df[column], errors='coerce').to_numpy(dtype=float),
                index=pd.DatetimeIndex(pd.to_datetime(df[date_column]), name='date'),
                name=column
            )

            if is_price:
                series = prices_to_returns(series)

            self.validator.ensure_valid(series)

            self.logger.info(
                f"Loaded {len(series)} returns for {column} "
                f"from {series.index[0]} to {series.index[-1]}"
            )
            return series

        except Exception as e:
            self.logger.error(f"Error loading returns: {str(e)}")
            raise

def prices_to_returns(prices: pd.Series) -> pd.Series:
    """Percent log returns 100 * log(p_t / p_{t-1}); the first date is dropped"""
    prices = prices.astype(float)
    if (prices <= 0).any():
        raise ValueError("Prices must be strictly positive")
    returns = 100.0 * np.log(prices / prices.shift(1))
    return returns.iloc[1:].rename(prices.name)

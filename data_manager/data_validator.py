"""
Validation of return series before feature construction.
"""

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd

from errors import InvalidConfigurationError, InsufficientHistoryError

logger = logging.getLogger(__name__)

class DataValidator:
    """Validates ordering, uniqueness and values of a return series."""

    def __init__(self, max_abs_return: float = 50.0):
        """
        Args:
            max_abs_return: Daily percent return above which a warning is logged
        """
        self.max_abs_return = max_abs_return

    def validate_returns(self, returns: pd.Series) -> Tuple[bool, List[str]]:
        """
        Validates a return series.

        Args:
            returns: Series of percent returns indexed by date

        Returns:
            Tuple of (is_valid, list_of_issues)
        """
        issues = []

        if not isinstance(returns, pd.Series):
            return False, [f"Expected a pandas Series, got {type(returns).__name__}"]

        if returns.empty:
            return False, ["Return series is empty"]

        duplicates = returns.index[returns.index.duplicated()]
        if len(duplicates) > 0:
            issues.append(f"Found {len(duplicates)} duplicate dates, first: {duplicates[0]}")

        if not returns.index.is_monotonic_increasing:
            issues.append("Dates are not in increasing order")

        values = pd.to_numeric(returns, errors='coerce').to_numpy(dtype=float)
        n_missing = int(np.sum(~np.isfinite(values)))
        if n_missing > 0:
            issues.append(f"Found {n_missing} missing or non-finite returns")

        is_valid = len(issues) == 0

        if is_valid:
            extremes = np.abs(values) > self.max_abs_return
            if extremes.any():
                logger.warning(
                    f"Found {int(extremes.sum())} returns beyond +/-{self.max_abs_return}%, "
                    f"check that the series is in percent"
                )

        return is_valid, issues

    def ensure_valid(self, returns: pd.Series, min_observations: int = 0) -> pd.Series:
        """Raise InvalidConfigurationError unless the series is usable"""
        is_valid, issues = self.validate_returns(returns)
        if not is_valid:
            for issue in issues:
                logger.error(issue)
            raise InvalidConfigurationError("Invalid return series: " + "; ".join(issues))

        if len(returns) < min_observations:
            raise InsufficientHistoryError(
                f"Insufficient history: {len(returns)} returns < {min_observations} required"
            )
        return returns

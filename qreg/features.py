"""
Realized volatility features for the HAR quantile regression.

Every feature at date t is built from returns strictly before t, so a feature
row can be used to forecast the return of its own date.
"""

import logging
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from errors import InsufficientHistoryError, InvalidConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HORIZONS = (1, 5, 20)


def feature_name(horizon: int) -> str:
    return f'sigma{horizon}'


def lagged_realized_volatility(returns: np.ndarray, horizon: int) -> np.ndarray:
    """
    Square root of the mean squared return over the previous `horizon` days.

    The first `horizon` entries are NaN. Each window is averaged on its own
    rather than through a running sum, so a run of zero returns gives exactly 0.
    """
    y = np.asarray(returns, dtype=float)
    out = np.full(y.shape[0], np.nan)
    if y.shape[0] <= horizon:
        return out

    window_means = sliding_window_view(y ** 2, horizon).mean(axis=1)
    # window_means[i] covers y[i : i + horizon] and belongs to date i + horizon
    out[horizon:] = np.sqrt(window_means[:-1])
    return out


class FeatureBuilder:
    """Builds the modeling table {y, sigma1, sigma5, sigma20} from a return series."""

    def __init__(self, horizons: Sequence[int] = DEFAULT_HORIZONS):
        horizons = tuple(horizons)
        if not horizons or any(int(h) != h or h <= 0 for h in horizons):
            raise InvalidConfigurationError(f"Horizons must be positive integers, got {horizons}")
        if len(set(horizons)) != len(horizons):
            raise InvalidConfigurationError(f"Duplicate horizons: {horizons}")

        self.horizons: Tuple[int, ...] = tuple(int(h) for h in horizons)
        self.logger = logging.getLogger('qreg.features')

    @property
    def max_horizon(self) -> int:
        return max(self.horizons)

    @property
    def feature_columns(self):
        return [feature_name(h) for h in self.horizons]

    def build(self, returns: pd.Series) -> pd.DataFrame:
        """
        Build the feature table and drop rows without full history.

        Parameters:
        -----------
        returns : pd.Series
            Return series indexed by date

        Returns:
        --------
        pd.DataFrame
            Columns `y` and one `sigma{K}` per horizon, indexed by date,
            with exactly len(returns) - max(horizons) rows
        """
        try:
            if not isinstance(returns, pd.Series):
                returns = pd.Series(returns)

            n = len(returns)
            if n <= self.max_horizon:
                raise InsufficientHistoryError(
                    f"Insufficient history: {n} returns, need more than "
                    f"{self.max_horizon} for horizons {self.horizons}"
                )

            y = returns.to_numpy(dtype=float)
            table = pd.DataFrame({'y': y}, index=returns.index)
            for h in self.horizons:
                table[feature_name(h)] = lagged_realized_volatility(y, h)

            table = table.dropna(subset=self.feature_columns)
            table.index.name = returns.index.name or 'date'

            self.logger.info(
                f"Built feature table: {len(table)} rows from {n} returns "
                f"(dropped {n - len(table)}), horizons {self.horizons}"
            )
            return table

        except Exception as e:
            self.logger.error(f"Error building features: {str(e)}")
            raise


def build_features(returns: pd.Series, horizons: Sequence[int] = DEFAULT_HORIZONS) -> pd.DataFrame:
    """Shortcut for FeatureBuilder(horizons).build(returns)"""
    return FeatureBuilder(horizons).build(returns)

import logging
from typing import Sequence, Optional

import numpy as np
import pandas as pd

from errors import InvalidConfigurationError
from models import QuantileFit
from .solvers import solve, check_loss, SOLVERS
from .features import DEFAULT_HORIZONS, feature_name

logger = logging.getLogger(__name__)

class QuantileRegressionEstimator:
    """Fits y ~ 1 + sigma1 + sigma5 + sigma20 at quantile alpha on one window"""

    def __init__(self, alpha: float = 0.05,
                 method: str = 'highs',
                 regressors: Optional[Sequence[str]] = None):
        """
        Initialize estimator

        Args:
            alpha: Quantile level of the fitted model, in (0, 1)
            method: Solver name, 'highs' (exact LP) or 'irls' (statsmodels QuantReg)
            regressors: Feature columns used as regressors (default sigma1, sigma5, sigma20)
        """
        if not 0.0 < alpha < 1.0:
            raise InvalidConfigurationError(f"alpha must lie in (0, 1), got {alpha}")
        if method not in SOLVERS:
            raise InvalidConfigurationError(f"Unknown solver '{method}', expected one of {tuple(SOLVERS)}")

        self.alpha = alpha
        self.method = method
        self.regressors = list(regressors) if regressors is not None else \
            [feature_name(h) for h in DEFAULT_HORIZONS]
        self.logger = logging.getLogger('qreg.estimator')

    def design_matrix(self, rows: pd.DataFrame) -> np.ndarray:
        """Regressor matrix with a leading intercept column"""
        missing = [col for col in self.regressors if col not in rows.columns]
        if missing:
            raise KeyError(f"Missing regressor columns: {missing}")
        features = rows[self.regressors].to_numpy(dtype=float)
        return np.column_stack([np.ones(len(rows)), features])

    def fit(self, window: pd.DataFrame) -> QuantileFit:
        """Fit the quantile regression on a window of feature rows"""
        X = self.design_matrix(window)
        y = window['y'].to_numpy(dtype=float)

        beta = solve(X, y, self.alpha, method=self.method)

        return QuantileFit(
            alpha=self.alpha,
            coefficients=beta,
            regressors=list(self.regressors),
            window_start=window.index[0],
            window_end=window.index[-1],
            n_obs=len(window),
            objective=check_loss(y - X @ beta, self.alpha)
        )

    def predict(self, fit: QuantileFit, row: pd.Series) -> float:
        """Quantile forecast for one feature row"""
        return fit.predict(row[fit.regressors].to_numpy(dtype=float))

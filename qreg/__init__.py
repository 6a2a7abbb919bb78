"""
HAR quantile regression package.
Builds realized volatility features and produces rolling VaR forecasts.
"""

from .features import FeatureBuilder, build_features
from .solvers import solve, check_loss
from .estimator import QuantileRegressionEstimator
from .forecaster import RollingForecaster

__all__ = [
    'FeatureBuilder', 'build_features', 'solve', 'check_loss',
    'QuantileRegressionEstimator', 'RollingForecaster'
]

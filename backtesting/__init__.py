"""
VaR backtesting package.
Conditional coverage and dynamic quantile tests on exceedance sequences.
"""

from .evaluator import BacktestEvaluator
from .stats import (
    exceedances,
    kupiec_test,
    christoffersen_independence_test,
    conditional_coverage_test,
    dynamic_quantile_test,
    quantile_loss
)

__all__ = [
    'BacktestEvaluator', 'exceedances', 'kupiec_test',
    'christoffersen_independence_test', 'conditional_coverage_test',
    'dynamic_quantile_test', 'quantile_loss'
]

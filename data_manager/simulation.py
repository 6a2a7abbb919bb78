"""Synthetic daily return series with volatility clustering."""

import numpy as np
import pandas as pd

def simulate_returns(n: int,
                     omega: float = 0.02,
                     alpha: float = 0.08,
                     beta: float = 0.90,
                     seed: int = 42,
                     start: str = '2000-01-03') -> pd.Series:
    """
    Simulate a GARCH(1,1) percent return series on business days.

        r_t = sigma_t * z_t,  sigma_t^2 = omega + alpha * r_{t-1}^2 + beta * sigma_{t-1}^2

    with z_t standard normal. The variance starts at its unconditional level.
    """
    if n <= 0:
        raise ValueError(f"n must be positive, got {n}")
    if alpha + beta >= 1:
        raise ValueError(f"Non-stationary parameters: alpha + beta = {alpha + beta}")

    rng = np.random.default_rng(seed)
    z = rng.standard_normal(n)

    returns = np.empty(n)
    variance = omega / (1.0 - alpha - beta)
    for t in range(n):
        returns[t] = np.sqrt(variance) * z[t]
        variance = omega + alpha * returns[t] ** 2 + beta * variance

    dates = pd.bdate_range(start=start, periods=n, name='date')
    return pd.Series(returns, index=dates, name='returns')

"""Common data models used across the project."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
import numpy as np
from typing import List, Dict, Optional, Any

@dataclass
class QuantileFit:
    """Quantile regression fit for a single rolling window"""
    alpha: float
    coefficients: np.ndarray  # Intercept first, then one slope per regressor
    regressors: List[str]
    window_start: Any
    window_end: Any
    n_obs: int
    objective: float  # Check loss at the optimum

    def predict(self, features: np.ndarray) -> float:
        """Linear prediction for one row of regressor values"""
        x = np.concatenate(([1.0], np.asarray(features, dtype=float)))
        return float(x @ self.coefficients)

    def as_dict(self) -> Dict[str, float]:
        names = ['const'] + list(self.regressors)
        return dict(zip(names, self.coefficients.tolist()))

@dataclass
class ForecastRow:
    """One out-of-sample step of the rolling forecaster"""
    date: datetime
    realized_return: float
    var_hs: float
    var_qreg: float
    error: Optional[str] = None  # Set when the quantile fit failed for this step

@dataclass
class BacktestResult:
    """Calibration tests for one VaR forecast series"""
    model: str
    alpha: float
    n_obs: int
    n_exceedances: int
    actual_over_expected: float
    uc_stat: float
    uc_pvalue: float
    cc_stat: float
    cc_pvalue: float
    dq_stat: float
    dq_pvalue: float
    dq_lags: int
    quantile_loss: float
    mean_abs_deviation: float
    max_abs_deviation: float
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

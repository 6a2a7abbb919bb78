"""
Core parameters of the HAR quantile regression VaR model.
"""

from dataclasses import dataclass, field, asdict
import numbers
from typing import Tuple, Dict, Any
import logging

from errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

SOLVERS = ('highs', 'irls')

@dataclass
class ModelConfig:
    """Parameters for feature construction, rolling estimation and backtesting"""
    win_size: int = 1000  # Rows per estimation window
    alpha: float = 0.05  # Quantile level of the VaR forecast
    horizons: Tuple[int, ...] = field(default=(1, 5, 20))
    solver: str = 'highs'
    dq_lags: int = 4  # Lagged hits in the Dynamic Quantile regression
    cc_min_obs: int = 20  # Shortest hit sequence given a conditional coverage p-value
    n_jobs: int = 1

    def __post_init__(self):
        self.horizons = tuple(self.horizons)

    @property
    def max_horizon(self) -> int:
        return max(self.horizons)

    @property
    def min_observations(self) -> int:
        """Shortest return series that yields at least one forecast"""
        return self.max_horizon + self.win_size + 1

    def validate(self) -> 'ModelConfig':
        """Raise InvalidConfigurationError listing every invalid parameter"""
        issues = []

        if isinstance(self.alpha, bool) or not isinstance(self.alpha, numbers.Real) \
                or not 0.0 < self.alpha < 1.0:
            issues.append(f"alpha must be a number in (0, 1), got {self.alpha!r}")

        if isinstance(self.win_size, bool) or not isinstance(self.win_size, int) or self.win_size <= 0:
            issues.append(f"win_size must be a positive integer, got {self.win_size!r}")

        if not self.horizons:
            issues.append("At least one horizon is required")
        elif any(isinstance(h, bool) or not isinstance(h, int) or h <= 0 for h in self.horizons):
            issues.append(f"Horizons must be positive integers, got {self.horizons}")
        elif len(set(self.horizons)) != len(self.horizons):
            issues.append(f"Duplicate horizons: {self.horizons}")

        if self.solver not in SOLVERS:
            issues.append(f"Unknown solver '{self.solver}', expected one of {SOLVERS}")

        if not isinstance(self.dq_lags, int) or self.dq_lags < 0:
            issues.append(f"dq_lags must be a non-negative integer, got {self.dq_lags!r}")

        if isinstance(self.cc_min_obs, bool) or not isinstance(self.cc_min_obs, int) or self.cc_min_obs < 2:
            issues.append(f"cc_min_obs must be an integer >= 2, got {self.cc_min_obs!r}")

        if not isinstance(self.n_jobs, int) or self.n_jobs < 1:
            issues.append(f"n_jobs must be >= 1, got {self.n_jobs!r}")

        if issues:
            for issue in issues:
                logger.error(issue)
            raise InvalidConfigurationError("; ".join(issues))

        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

from typing import Dict, List, Optional, Tuple
import numpy as np
import pandas as pd
import logging
from concurrent.futures import ProcessPoolExecutor
from itertools import repeat

from errors import InsufficientHistoryError, InvalidConfigurationError, QuantileFitError
from models import ForecastRow
from utils.progress import ProgressMonitor
from .estimator import QuantileRegressionEstimator

logger = logging.getLogger(__name__)

FORECAST_COLUMNS = ['realized_return', 'var_hs', 'var_qreg', 'error']

# Read-only feature table handed to each worker process once
_worker_state: Dict[str, object] = {}


def _init_worker(features: pd.DataFrame, win_size: int,
                 estimator: QuantileRegressionEstimator):
    _worker_state['features'] = features
    _worker_state['win_size'] = win_size
    _worker_state['estimator'] = estimator


def _run_worker_steps(steps: List[int]) -> List[ForecastRow]:
    return [
        forecast_step(
            _worker_state['features'], r,
            _worker_state['win_size'], _worker_state['estimator']
        )
        for r in steps
    ]


def forecast_step(features: pd.DataFrame, r: int, win_size: int,
                  estimator: QuantileRegressionEstimator) -> ForecastRow:
    """
    Forecast row r + 1 from the window of rows r - win_size + 1 .. r.

    A window whose quantile regression cannot be fitted yields a NaN QREG
    forecast and an error message instead of an exception.
    """
    window = features.iloc[r - win_size + 1:r + 1]
    target = features.iloc[r + 1]

    var_hs = float(np.quantile(window['y'].to_numpy(dtype=float), estimator.alpha))

    error = None
    try:
        fit = estimator.fit(window)
        var_qreg = estimator.predict(fit, target)
    except QuantileFitError as e:
        var_qreg = np.nan
        error = str(e)

    return ForecastRow(
        date=features.index[r + 1],
        realized_return=float(target['y']),
        var_hs=var_hs,
        var_qreg=var_qreg,
        error=error
    )


class RollingForecaster:
    """Rolling window one-day-ahead VaR forecasts: historical simulation and HAR-QREG"""

    def __init__(self, estimator: Optional[QuantileRegressionEstimator] = None,
                 win_size: int = 1000,
                 n_jobs: int = 1,
                 show_progress: bool = False):
        """
        Initialize forecaster

        Args:
            estimator: Quantile regression estimator (default alpha=0.05, HiGHS solver)
            win_size: Number of feature rows per estimation window
            n_jobs: Worker processes; 1 runs the loop in-process
            show_progress: Display a progress bar over the steps
        """
        if isinstance(win_size, bool) or not isinstance(win_size, (int, np.integer)) or win_size <= 0:
            raise InvalidConfigurationError(f"win_size must be a positive integer, got {win_size!r}")
        if n_jobs < 1:
            raise InvalidConfigurationError(f"n_jobs must be >= 1, got {n_jobs}")

        self.estimator = estimator or QuantileRegressionEstimator()
        self.win_size = int(win_size)
        self.n_jobs = n_jobs
        self.show_progress = show_progress
        self.forecasts: List[ForecastRow] = []
        self.logger = logging.getLogger('qreg.forecaster')

    @property
    def alpha(self) -> float:
        return self.estimator.alpha

    def _validate_features(self, features: pd.DataFrame) -> int:
        required = ['y'] + list(self.estimator.regressors)
        missing = [col for col in required if col not in features.columns]
        if missing:
            raise InvalidConfigurationError(f"Feature table is missing columns: {missing}")

        if features[required].isna().any().any():
            raise InvalidConfigurationError("Feature table contains incomplete rows")

        if not features.index.is_monotonic_increasing or not features.index.is_unique:
            raise InvalidConfigurationError("Feature table dates must be strictly increasing")

        n_rows = len(features)
        if self.win_size >= n_rows:
            raise InsufficientHistoryError(
                f"Insufficient history: win_size={self.win_size} needs at least "
                f"{self.win_size + 1} feature rows, got {n_rows}"
            )
        return n_rows

    def generate_rolling_windows(self, features: pd.DataFrame) -> List[ForecastRow]:
        """
        Run the rolling loop over a feature table.

        Produces exactly len(features) - win_size rows in date order, each dated
        the day after its estimation window.
        """
        try:
            n_rows = self._validate_features(features)
            steps = list(range(self.win_size - 1, n_rows - 1))
            n_steps = len(steps)

            self.logger.info(
                f"\nRolling window setup:"
                f"\n  Feature rows: {n_rows}"
                f"\n  Window size: {self.win_size}"
                f"\n  Number of forecasts: {n_steps}"
                f"\n  Quantile level: {self.alpha}"
                f"\n  Solver: {self.estimator.method}"
                f"\n  First window: {features.index[0]} to {features.index[self.win_size - 1]}"
                f"\n  Last window: {features.index[-self.win_size - 1]} to {features.index[-2]}"
            )

            monitor = ProgressMonitor(total=n_steps, desc="Rolling forecasts",
                                      logger=self.logger, disable=not self.show_progress)
            try:
                if self.n_jobs == 1:
                    forecasts = []
                    for r in steps:
                        forecasts.append(forecast_step(features, r, self.win_size, self.estimator))
                        monitor.update()
                else:
                    forecasts = self._run_parallel(features, steps, monitor)
            finally:
                monitor.close()

            failed = [row for row in forecasts if row.error is not None]
            for row in failed:
                self.logger.warning(f"QREG forecast for {row.date} set to NaN: {row.error}")
            if failed:
                self.logger.warning(f"{len(failed)}/{n_steps} windows could not be fitted")

            self.forecasts = forecasts
            return self.forecasts

        except Exception as e:
            self.logger.error(f"Error generating rolling forecasts: {str(e)}")
            raise

    def _run_parallel(self, features: pd.DataFrame, steps: List[int],
                      monitor: ProgressMonitor) -> List[ForecastRow]:
        chunk_size = max(1, len(steps) // (self.n_jobs * 4))
        chunks = [steps[i:i + chunk_size] for i in range(0, len(steps), chunk_size)]

        forecasts = []
        with ProcessPoolExecutor(max_workers=self.n_jobs,
                                 initializer=_init_worker,
                                 initargs=(features, self.win_size, self.estimator)) as executor:
            # map yields chunks in submission order
            for chunk_rows in executor.map(_run_worker_steps, chunks):
                forecasts.extend(chunk_rows)
                monitor.update(len(chunk_rows))
        return forecasts

    def to_dataframe(self) -> pd.DataFrame:
        """Forecast table indexed by date"""
        if not self.forecasts:
            raise ValueError("No forecasts available")

        df = pd.DataFrame(
            [{'date': row.date, **{col: getattr(row, col) for col in FORECAST_COLUMNS}}
             for row in self.forecasts]
        )
        return df.set_index('date')

    def get_forecast_series(self, model: str) -> Tuple[np.ndarray, np.ndarray]:
        """Dates and values of one forecast column ('var_hs' or 'var_qreg')"""
        if model not in ('var_hs', 'var_qreg', 'realized_return'):
            raise ValueError(f"Unknown forecast series: {model}")
        dates = np.array([row.date for row in self.forecasts])
        values = np.array([getattr(row, model) for row in self.forecasts], dtype=float)
        return dates, values

    @property
    def failed_steps(self) -> List[ForecastRow]:
        return [row for row in self.forecasts if row.error is not None]

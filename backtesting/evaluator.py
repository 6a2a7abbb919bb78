"""Backtest evaluation of VaR forecast tables"""

import logging
import warnings
from typing import Dict, Sequence

import numpy as np
import pandas as pd

from errors import InvalidConfigurationError, DegenerateExceedanceWarning
from models import BacktestResult
from . import stats

logger = logging.getLogger(__name__)

DEFAULT_MODELS = ('var_hs', 'var_qreg')


class BacktestEvaluator:
    """Computes coverage and dynamic quantile tests for VaR forecast series"""

    def __init__(self, alpha: float = 0.05, dq_lags: int = 4,
                 cc_min_obs: int = stats.CC_MIN_OBS):
        """
        Parameters:
        - alpha: Quantile level the forecasts target
        - dq_lags: Lagged hits in the Dynamic Quantile regression
        - cc_min_obs: Fewest observations the conditional coverage test is run on
        """
        if not 0.0 < alpha < 1.0:
            raise InvalidConfigurationError(f"alpha must lie in (0, 1), got {alpha}")
        if dq_lags < 0:
            raise InvalidConfigurationError(f"dq_lags must be non-negative, got {dq_lags}")
        if cc_min_obs < 2:
            raise InvalidConfigurationError(f"cc_min_obs must be at least 2, got {cc_min_obs}")
        self.alpha = alpha
        self.dq_lags = dq_lags
        self.cc_min_obs = cc_min_obs
        self.logger = logging.getLogger('backtesting.evaluator')

    def evaluate(self, realized, var, model: str = 'var') -> BacktestResult:
        """Backtest one VaR series against realized returns"""
        try:
            realized = pd.Series(np.asarray(realized, dtype=float))
            var = pd.Series(np.asarray(var, dtype=float))
            if len(realized) != len(var):
                raise ValueError(f"Length mismatch: {len(realized)} returns vs {len(var)} VaR values")

            # Steps whose fit failed carry no forecast
            mask = var.notna() & realized.notna()
            if not mask.all():
                self.logger.warning(
                    f"{model}: dropping {int((~mask).sum())} of {len(var)} rows with missing VaR"
                )
            y = realized[mask].to_numpy()
            v = var[mask].to_numpy()

            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter('always', DegenerateExceedanceWarning)
                hits = stats.exceedances(y, v)
                uc = stats.kupiec_test(hits, self.alpha)
                cc = stats.conditional_coverage_test(hits, self.alpha, min_obs=self.cc_min_obs)
                dq = stats.dynamic_quantile_test(hits, v, self.alpha, lags=self.dq_lags)

            messages = []
            for w in caught:
                if issubclass(w.category, DegenerateExceedanceWarning):
                    messages.append(str(w.message))
                # Re-emit so callers see every warning once
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

            n_obs = len(hits)
            n_hits = int(hits.sum())
            expected = self.alpha * n_obs
            deviation = stats.exceedance_deviation(y, v)

            result = BacktestResult(
                model=model,
                alpha=self.alpha,
                n_obs=n_obs,
                n_exceedances=n_hits,
                actual_over_expected=n_hits / expected if expected > 0 else np.nan,
                uc_stat=uc['LR_uc'],
                uc_pvalue=uc['p_value'],
                cc_stat=cc['LR_cc'],
                cc_pvalue=cc['p_value'],
                dq_stat=dq['DQ'],
                dq_pvalue=dq['p_value'],
                dq_lags=self.dq_lags,
                quantile_loss=stats.quantile_loss(y, v, self.alpha),
                mean_abs_deviation=deviation['mean'],
                max_abs_deviation=deviation['max'],
                warnings=messages
            )

            self.logger.info(f"""
            Backtest {model}:
            Observations: {n_obs}
            Exceedances: {n_hits} (expected {expected:.1f})
            CC p-value: {result.cc_pvalue:.4f}
            DQ p-value: {result.dq_pvalue:.4f}
            """)

            return result

        except Exception as e:
            self.logger.error(f"Error backtesting {model}: {str(e)}")
            raise

    def evaluate_table(self, table: pd.DataFrame,
                       models: Sequence[str] = DEFAULT_MODELS,
                       realized_column: str = 'realized_return') -> Dict[str, BacktestResult]:
        """Backtest each VaR column of a forecast table"""
        missing = [col for col in [realized_column, *models] if col not in table.columns]
        if missing:
            raise KeyError(f"Forecast table is missing columns: {missing}")

        return {
            model: self.evaluate(table[realized_column], table[model], model=model)
            for model in models
        }

    @staticmethod
    def summary(results: Dict[str, BacktestResult]) -> pd.DataFrame:
        """One row per model with the test statistics and p-values"""
        records = []
        for name, result in results.items():
            record = result.as_dict()
            record['warnings'] = "; ".join(result.warnings)
            records.append(record)
        return pd.DataFrame(records).set_index('model')

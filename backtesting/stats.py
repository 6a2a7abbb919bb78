"""
Backtesting Statistics
----------------------

Likelihood ratio and regression tests for the calibration of VaR forecasts.

An exceedance (hit) at time t means the realized return fell strictly below
the VaR forecast. Under correct calibration hits are i.i.d. Bernoulli(alpha).

- kupiec_test: unconditional coverage, chi2(1)
- christoffersen_independence_test: first-order Markov independence, chi2(1)
- conditional_coverage_test: coverage and independence jointly, chi2(2)
- dynamic_quantile_test: Engle-Manganelli DQ regression test, chi2(lags + 2)

Degenerate inputs (too short, no transitions out of a state, rank deficient
DQ regressors) return NaN statistics and emit DegenerateExceedanceWarning
instead of raising. p-values use scipy.stats.chi2.sf.
"""

import warnings
import logging
from typing import Dict, Any

import numpy as np
import statsmodels.api as sm
from scipy.stats import chi2
from scipy.special import xlogy

from errors import DegenerateExceedanceWarning

logger = logging.getLogger(__name__)

RANK_RCOND = 1e-10
# Shortest hit sequence the conditional coverage test is run on
CC_MIN_OBS = 20


def _degenerate(test: str, reason: str) -> None:
    message = f"{test} undefined: {reason}"
    logger.warning(message)
    warnings.warn(message, DegenerateExceedanceWarning, stacklevel=3)


def exceedances(realized, var) -> np.ndarray:
    """0/1 hit sequence, 1 where the realized return is strictly below VaR"""
    realized = np.asarray(realized, dtype=float)
    var = np.asarray(var, dtype=float)
    if realized.shape != var.shape:
        raise ValueError(f"Length mismatch: {realized.shape} returns vs {var.shape} VaR values")
    return (realized < var).astype(int)


def _bernoulli_loglik(n_hits, n_total, p) -> float:
    return float(xlogy(n_hits, p) + xlogy(n_total - n_hits, 1.0 - p))


def transition_counts(hits) -> Dict[str, int]:
    """Counts n_ij of transitions from state i at t-1 to state j at t"""
    b = np.asarray(hits).astype(int).ravel()
    prev, curr = b[:-1], b[1:]
    return {
        'n00': int(np.sum((prev == 0) & (curr == 0))),
        'n01': int(np.sum((prev == 0) & (curr == 1))),
        'n10': int(np.sum((prev == 1) & (curr == 0))),
        'n11': int(np.sum((prev == 1) & (curr == 1))),
    }


def kupiec_test(hits, alpha: float) -> Dict[str, Any]:
    """
    Kupiec (1995) unconditional coverage test.

    H0: P(hit) = alpha. LR_uc = -2 [l(alpha) - l(pi_hat)] ~ chi2(1).
    """
    b = np.asarray(hits).astype(int).ravel()
    n = b.size
    x = int(b.sum())
    if n == 0:
        _degenerate("Unconditional coverage test", "no observations")
        return {'n': 0, 'x': 0, 'pi_hat': np.nan, 'LR_uc': np.nan, 'p_value': np.nan}

    pi_hat = x / n
    lr_uc = -2.0 * (_bernoulli_loglik(x, n, alpha) - _bernoulli_loglik(x, n, pi_hat))
    lr_uc = max(lr_uc, 0.0)

    return {
        'n': n,
        'x': x,
        'pi_hat': pi_hat,
        'LR_uc': lr_uc,
        'p_value': float(chi2.sf(lr_uc, df=1)),
    }


def christoffersen_independence_test(hits) -> Dict[str, Any]:
    """
    Christoffersen (1998) independence test against a first-order Markov chain.

    H0: pi01 = pi11. LR_ind ~ chi2(1).
    """
    b = np.asarray(hits).astype(int).ravel()
    nan_result = {'n00': 0, 'n01': 0, 'n10': 0, 'n11': 0,
                  'pi01': np.nan, 'pi11': np.nan, 'LR_ind': np.nan, 'p_value': np.nan}
    if b.size < 2:
        _degenerate("Independence test", f"{b.size} observation(s), need at least 2")
        return nan_result

    counts = transition_counts(b)
    n0 = counts['n00'] + counts['n01']
    n1 = counts['n10'] + counts['n11']
    if n0 == 0 or n1 == 0:
        _degenerate("Independence test", f"no transitions out of state {0 if n0 == 0 else 1} ({counts})")
        return {**nan_result, **counts}

    pi01 = counts['n01'] / n0
    pi11 = counts['n11'] / n1
    pi = (counts['n01'] + counts['n11']) / (n0 + n1)

    logl_restricted = _bernoulli_loglik(counts['n01'] + counts['n11'], n0 + n1, pi)
    logl_markov = _bernoulli_loglik(counts['n01'], n0, pi01) + _bernoulli_loglik(counts['n11'], n1, pi11)
    lr_ind = max(-2.0 * (logl_restricted - logl_markov), 0.0)

    return {
        **counts,
        'pi01': pi01,
        'pi11': pi11,
        'LR_ind': lr_ind,
        'p_value': float(chi2.sf(lr_ind, df=1)),
    }


def conditional_coverage_test(hits, alpha: float, min_obs: int = CC_MIN_OBS) -> Dict[str, Any]:
    """
    Christoffersen (1998) conditional coverage test.

    Joint test of correct coverage and first-order independence:

        LR_cc = LR_uc + LR_ind ~ chi2(2)

    LR_uc is the Kupiec statistic on all n hits and LR_ind the independence
    statistic on the n-1 transitions. Sequences shorter than `min_obs`, or
    without transitions out of both states, give NaN with a warning.
    """
    b = np.asarray(hits).astype(int).ravel()
    nan_result = {'LR_cc': np.nan, 'LR_uc': np.nan, 'LR_ind': np.nan,
                  'p_value': np.nan, 'pi01': np.nan, 'pi11': np.nan}
    if b.size < max(min_obs, 2):
        _degenerate(
            "Conditional coverage test",
            f"{b.size} observation(s), need at least {max(min_obs, 2)}"
        )
        return nan_result

    counts = transition_counts(b)
    n0 = counts['n00'] + counts['n01']
    n1 = counts['n10'] + counts['n11']
    if n0 == 0 or n1 == 0:
        state = 0 if n0 == 0 else 1
        _degenerate(
            "Conditional coverage test",
            f"no transitions out of state {state}, cannot estimate the transition matrix ({counts})"
        )
        return {**nan_result, **counts}

    uc = kupiec_test(b, alpha)
    ind = christoffersen_independence_test(b)
    lr_cc = uc['LR_uc'] + ind['LR_ind']

    return {
        **counts,
        'pi01': ind['pi01'],
        'pi11': ind['pi11'],
        'LR_uc': uc['LR_uc'],
        'LR_ind': ind['LR_ind'],
        'LR_cc': lr_cc,
        'p_value': float(chi2.sf(lr_cc, df=2)),
    }


def dynamic_quantile_test(hits, var, alpha: float, lags: int = 4) -> Dict[str, Any]:
    """
    Engle and Manganelli (2004) out-of-sample Dynamic Quantile test.

    Hit_t = I_t - alpha is regressed by OLS on

        X_t = [1, VaR_t, Hit_{t-1}, ..., Hit_{t-lags}]

    for t = lags .. n-1. Under H0 every coefficient is zero and

        DQ = b' X'X b / (alpha (1 - alpha)) ~ chi2(lags + 2)

    Parameters
    ----------
    hits : array-like
        0/1 exceedance indicators.
    var : array-like
        VaR forecasts aligned with hits.
    alpha : float
        Quantile level of the forecasts.
    lags : int
        Number of lagged hits in the regression.
    """
    b = np.asarray(hits, dtype=float).ravel()
    v = np.asarray(var, dtype=float).ravel()
    if b.shape != v.shape:
        raise ValueError(f"Length mismatch: {b.shape} hits vs {v.shape} VaR values")

    n_regressors = lags + 2
    nan_result = {'DQ': np.nan, 'p_value': np.nan, 'df': n_regressors, 'lags': lags,
                  'n_obs': max(b.size - lags, 0)}

    n_obs = b.size - lags
    if n_obs <= n_regressors:
        _degenerate(
            "Dynamic quantile test",
            f"{b.size} observation(s) leave {max(n_obs, 0)} regression rows for {n_regressors} regressors"
        )
        return nan_result

    hit = b - alpha
    lagged = [hit[lags - k:b.size - k] for k in range(1, lags + 1)]
    X = np.column_stack([np.ones(n_obs), v[lags:]] + lagged)
    y = hit[lags:]

    singular_values = np.linalg.svd(X, compute_uv=False)
    if singular_values[-1] <= RANK_RCOND * singular_values[0]:
        _degenerate("Dynamic quantile test", "regressor matrix is rank deficient")
        return nan_result

    results = sm.OLS(y, X).fit()
    beta = np.asarray(results.params)
    dq = float(beta @ X.T @ X @ beta) / (alpha * (1.0 - alpha))

    return {
        'DQ': dq,
        'p_value': float(chi2.sf(dq, df=n_regressors)),
        'df': n_regressors,
        'lags': lags,
        'n_obs': n_obs,
        'params': beta,
    }


def quantile_loss(realized, var, alpha: float) -> float:
    """Average check loss of the VaR forecasts"""
    u = np.asarray(realized, dtype=float) - np.asarray(var, dtype=float)
    if u.size == 0:
        return np.nan
    return float(np.mean(u * (alpha - (u < 0))))


def exceedance_deviation(realized, var) -> Dict[str, float]:
    """Mean and maximum distance below VaR over the exceedances"""
    realized = np.asarray(realized, dtype=float)
    var = np.asarray(var, dtype=float)
    mask = realized < var
    if not mask.any():
        return {'mean': np.nan, 'max': np.nan}
    deviation = np.abs(realized[mask] - var[mask])
    return {'mean': float(deviation.mean()), 'max': float(deviation.max())}

"""
Solvers for linear quantile regression.

Both solvers minimize the check (pinball) loss

    L(beta) = sum_i rho_alpha(y_i - x_i' beta),  rho_alpha(u) = u * (alpha - 1{u < 0})

"highs" solves the equivalent linear program exactly and returns an optimal
vertex. "irls" uses statsmodels' iteratively reweighted least squares and is an
approximation of the same minimizer. When the optimum is not unique (common
with ties at the quantile) different solvers may return different coefficient
vectors with the same objective value; both are correct.
"""

import logging
import warnings

import numpy as np
from scipy import sparse
from scipy.optimize import linprog
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import IterationLimitWarning

from errors import NonIdentifiableFitError, SolverError, InvalidConfigurationError

logger = logging.getLogger(__name__)

RANK_RCOND = 1e-10


def check_loss(residuals: np.ndarray, alpha: float) -> float:
    """Total pinball loss of a residual vector"""
    u = np.asarray(residuals, dtype=float)
    return float(np.sum(u * (alpha - (u < 0))))


def ensure_identifiable(X: np.ndarray, rcond: float = RANK_RCOND) -> None:
    """Raise NonIdentifiableFitError if X does not have full column rank"""
    n, p = X.shape
    if n < p:
        raise NonIdentifiableFitError(f"Non-identifiable fit: {n} rows for {p} coefficients")
    if not np.all(np.isfinite(X)):
        raise NonIdentifiableFitError("Non-identifiable fit: design matrix contains NaN/inf")

    singular_values = np.linalg.svd(X, compute_uv=False)
    if singular_values[0] == 0 or singular_values[-1] <= rcond * singular_values[0]:
        ratio = singular_values[-1] / singular_values[0] if singular_values[0] else 0.0
        raise NonIdentifiableFitError(
            f"Non-identifiable fit: collinear regressors "
            f"(singular value ratio {ratio:.3e})"
        )


def _solve_highs(X: np.ndarray, y: np.ndarray, alpha: float) -> np.ndarray:
    n, p = X.shape

    # Variables: beta (free), u >= 0 (positive residuals), v >= 0 (negative residuals)
    c = np.concatenate([np.zeros(p), np.full(n, alpha), np.full(n, 1.0 - alpha)])
    identity = sparse.identity(n, format='csr')
    A_eq = sparse.hstack([sparse.csr_matrix(X), identity, -identity], format='csr')
    bounds = [(None, None)] * p + [(0, None)] * (2 * n)

    result = linprog(c, A_eq=A_eq, b_eq=y, bounds=bounds, method='highs')
    if result.status != 0:
        raise SolverError(f"Linear program failed (status {result.status}): {result.message}")

    return np.asarray(result.x[:p], dtype=float)


def _solve_irls(X: np.ndarray, y: np.ndarray, alpha: float) -> np.ndarray:
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', IterationLimitWarning)
        try:
            result = sm.QuantReg(y, X).fit(q=alpha, max_iter=5000, p_tol=1e-8)
        except (np.linalg.LinAlgError, ValueError) as e:
            raise SolverError(f"QuantReg failed: {str(e)}") from e

    params = np.asarray(result.params, dtype=float)
    if not np.all(np.isfinite(params)):
        raise SolverError("QuantReg returned non-finite coefficients")
    return params


SOLVERS = {
    'highs': _solve_highs,
    'irls': _solve_irls,
}


def solve(X: np.ndarray, y: np.ndarray, alpha: float, method: str = 'highs') -> np.ndarray:
    """
    Quantile regression coefficients for design X (intercept column included).

    Raises NonIdentifiableFitError for a rank deficient design and SolverError
    if the chosen solver does not reach an optimum.
    """
    if method not in SOLVERS:
        raise InvalidConfigurationError(f"Unknown solver '{method}', expected one of {tuple(SOLVERS)}")
    if not 0.0 < alpha < 1.0:
        raise InvalidConfigurationError(f"alpha must lie in (0, 1), got {alpha}")

    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    if X.ndim != 2 or y.ndim != 1 or X.shape[0] != y.shape[0]:
        raise ValueError(f"Shape mismatch: X {X.shape}, y {y.shape}")
    if not np.all(np.isfinite(y)):
        raise NonIdentifiableFitError("Non-identifiable fit: response contains NaN/inf")

    ensure_identifiable(X)
    return SOLVERS[method](X, y, alpha)

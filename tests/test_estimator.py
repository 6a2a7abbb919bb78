import pytest
import numpy as np

from errors import NonIdentifiableFitError, InvalidConfigurationError
from models import QuantileFit
from qreg.solvers import solve, check_loss, ensure_identifiable
from qreg.estimator import QuantileRegressionEstimator

@pytest.fixture
def regression_data():
    """Heteroskedastic data resembling returns scaled by volatility"""
    rng = np.random.default_rng(123)
    n = 300
    sigmas = np.abs(rng.normal(1.0, 0.4, (n, 3)))
    X = np.column_stack([np.ones(n), sigmas])
    y = rng.normal(0, 1, n) * sigmas.mean(axis=1)
    return X, y

def test_check_loss():
    assert check_loss(np.array([1.0, -2.0]), 0.1) == pytest.approx(0.1 + 1.8)
    assert check_loss(np.zeros(5), 0.3) == 0.0

def test_exact_recovery():
    """Noise-free linear data: the unique zero-loss optimum is the true beta"""
    rng = np.random.default_rng(5)
    X = np.column_stack([np.ones(50), np.abs(rng.normal(1, 0.5, (50, 3)))])
    beta_true = np.array([0.5, -1.0, 2.0, 0.3])
    y = X @ beta_true

    beta = solve(X, y, 0.05)
    np.testing.assert_allclose(beta, beta_true, atol=1e-6)

@pytest.mark.parametrize("alpha,expected", [(0.3, 2.0), (0.5, 3.0), (0.9, 5.0)])
def test_intercept_only_is_sample_quantile(alpha, expected):
    """With only an intercept the fit is the alpha-quantile order statistic"""
    y = np.array([5.0, 1.0, 4.0, 2.0, 3.0])
    beta = solve(np.ones((5, 1)), y, alpha)
    assert beta[0] == pytest.approx(expected)

def test_local_optimality(regression_data):
    """No perturbation of the returned coefficients lowers the check loss"""
    X, y = regression_data
    alpha = 0.05
    beta = solve(X, y, alpha)
    best = check_loss(y - X @ beta, alpha)
    tol = 1e-8 * max(1.0, best)

    rng = np.random.default_rng(9)
    for scale in [1e-4, 1e-2, 1e-1]:
        for _ in range(25):
            delta = rng.normal(0, scale, beta.shape)
            assert best <= check_loss(y - X @ (beta + delta), alpha) + tol

    for j in range(len(beta)):
        for step in [-1e-3, 1e-3]:
            perturbed = beta.copy()
            perturbed[j] += step
            assert best <= check_loss(y - X @ perturbed, alpha) + tol

def test_irls_matches_highs_objective(regression_data):
    X, y = regression_data
    alpha = 0.05
    loss_highs = check_loss(y - X @ solve(X, y, alpha, method='highs'), alpha)
    loss_irls = check_loss(y - X @ solve(X, y, alpha, method='irls'), alpha)

    # HiGHS is exact, IRLS approximates the same minimum
    assert loss_highs <= loss_irls + 1e-9
    assert loss_irls <= loss_highs * 1.01

def test_zero_volatility_window_not_identifiable():
    """A flat stretch makes every volatility column zero"""
    X = np.column_stack([np.ones(30), np.zeros((30, 3))])
    y = np.zeros(30)
    with pytest.raises(NonIdentifiableFitError):
        solve(X, y, 0.05)

def test_constant_volatility_window_not_identifiable():
    """Constant absolute returns make every volatility equal, collinear with the intercept"""
    c = 1.3
    sigma5 = np.sqrt(np.mean(np.full(5, c) ** 2))
    sigma20 = np.sqrt(np.mean(np.full(20, c) ** 2))
    X = np.column_stack([np.ones(40), np.full(40, c), np.full(40, sigma5), np.full(40, sigma20)])
    y = np.where(np.arange(40) % 2 == 0, c, -c)
    with pytest.raises(NonIdentifiableFitError):
        solve(X, y, 0.05)

def test_too_few_rows_not_identifiable():
    with pytest.raises(NonIdentifiableFitError):
        ensure_identifiable(np.ones((3, 4)))

def test_invalid_solver_arguments(regression_data):
    X, y = regression_data
    with pytest.raises(InvalidConfigurationError):
        solve(X, y, 0.05, method='simplex')
    with pytest.raises(InvalidConfigurationError):
        solve(X, y, 1.5)
    with pytest.raises(ValueError):
        solve(X, y[:-1], 0.05)

def test_estimator_fit_and_predict(random_feature_table):
    estimator = QuantileRegressionEstimator(alpha=0.1)
    window = random_feature_table.iloc[:50]
    fit = estimator.fit(window)

    assert isinstance(fit, QuantileFit)
    assert fit.coefficients.shape == (4,)
    assert fit.n_obs == 50
    assert fit.window_start == window.index[0]
    assert fit.window_end == window.index[-1]
    assert list(fit.as_dict()) == ['const', 'sigma1', 'sigma5', 'sigma20']

    X = estimator.design_matrix(window)
    assert fit.objective == pytest.approx(check_loss(window['y'].to_numpy() - X @ fit.coefficients, 0.1))

    row = random_feature_table.iloc[50]
    expected = fit.coefficients[0] + row[['sigma1', 'sigma5', 'sigma20']].to_numpy() @ fit.coefficients[1:]
    assert estimator.predict(fit, row) == pytest.approx(expected)

def test_estimator_missing_regressor(random_feature_table):
    estimator = QuantileRegressionEstimator(regressors=['sigma1', 'sigma60'])
    with pytest.raises(KeyError):
        estimator.fit(random_feature_table)

@pytest.mark.parametrize("kwargs", [{'alpha': 0.0}, {'alpha': 1.0}, {'method': 'br'}])
def test_estimator_invalid_configuration(kwargs):
    with pytest.raises(InvalidConfigurationError):
        QuantileRegressionEstimator(**kwargs)

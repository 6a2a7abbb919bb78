import pytest
import numpy as np
import pandas as pd

from errors import InvalidConfigurationError, InsufficientHistoryError
from config.model_config import ModelConfig
from data_manager import DataLoader, DataValidator, prices_to_returns, simulate_returns

@pytest.fixture
def validator():
    return DataValidator()

@pytest.fixture
def returns_csv(tmp_path):
    dates = pd.bdate_range('2021-01-04', periods=30)
    rng = np.random.default_rng(5)
    df = pd.DataFrame({
        'Date': dates.strftime('%Y-%m-%d'),
        'SPX': rng.normal(0, 1, 30),
        'Close': 100 * np.exp(np.cumsum(rng.normal(0, 0.01, 30))),
    })
    path = tmp_path / 'returns.csv'
    df.to_csv(path, index=False)
    return path, df

def test_load_returns_defaults(returns_csv):
    path, df = returns_csv
    series = DataLoader().load_returns(path)

    assert series.name == 'SPX'
    assert series.index.name == 'date'
    assert len(series) == 30
    assert series.index[0] == pd.Timestamp('2021-01-04')
    np.testing.assert_allclose(series.to_numpy(), df['SPX'].to_numpy())

def test_load_prices(returns_csv):
    path, df = returns_csv
    series = DataLoader().load_returns(path, column='Close', is_price=True)

    assert len(series) == 29
    expected = 100 * np.log(df['Close'].to_numpy()[1:] / df['Close'].to_numpy()[:-1])
    np.testing.assert_allclose(series.to_numpy(), expected)

def test_load_missing_column(returns_csv):
    path, _ = returns_csv
    with pytest.raises(KeyError):
        DataLoader().load_returns(path, column='NDX')

def test_load_rejects_gaps(tmp_path):
    path = tmp_path / 'gaps.csv'
    pd.DataFrame({
        'date': ['2021-01-04', '2021-01-05', '2021-01-06'],
        'ret': [0.1, None, -0.2],
    }).to_csv(path, index=False)

    with pytest.raises(InvalidConfigurationError):
        DataLoader().load_returns(path)

def test_prices_to_returns_rejects_non_positive():
    prices = pd.Series([100.0, 0.0, 101.0], index=pd.bdate_range('2021-01-04', periods=3))
    with pytest.raises(ValueError):
        prices_to_returns(prices)

def test_validator_accepts_clean_series(validator, sample_returns):
    is_valid, issues = validator.validate_returns(sample_returns)
    assert is_valid
    assert issues == []

def test_validator_issues(validator):
    dates = pd.DatetimeIndex(['2021-01-05', '2021-01-04', '2021-01-04'])
    series = pd.Series([0.1, np.nan, 0.3], index=dates)

    is_valid, issues = validator.validate_returns(series)
    assert not is_valid
    assert len(issues) == 3
    assert any('duplicate' in issue for issue in issues)
    assert any('increasing order' in issue for issue in issues)
    assert any('non-finite' in issue for issue in issues)

def test_validator_non_series(validator):
    is_valid, issues = validator.validate_returns([0.1, 0.2])
    assert not is_valid

    is_valid, issues = validator.validate_returns(pd.Series(dtype=float))
    assert not is_valid
    assert issues == ["Return series is empty"]

def test_ensure_valid_min_observations(validator, sample_returns):
    assert validator.ensure_valid(sample_returns, min_observations=400) is sample_returns
    with pytest.raises(InsufficientHistoryError):
        validator.ensure_valid(sample_returns, min_observations=401)

def test_simulated_returns_reproducible():
    first = simulate_returns(250, seed=3)
    second = simulate_returns(250, seed=3)
    other = simulate_returns(250, seed=4)

    pd.testing.assert_series_equal(first, second)
    assert not np.allclose(first.to_numpy(), other.to_numpy())
    assert first.index.is_monotonic_increasing
    assert first.index.is_unique
    # Unconditional variance omega / (1 - alpha - beta) = 1
    assert 0.5 < first.std() < 2.0

def test_simulation_rejects_explosive_parameters():
    with pytest.raises(ValueError):
        simulate_returns(100, alpha=0.2, beta=0.85)

def test_model_config_defaults():
    config = ModelConfig().validate()
    assert config.horizons == (1, 5, 20)
    assert config.max_horizon == 20
    assert config.min_observations == 1021
    assert config.to_dict()['solver'] == 'highs'
    assert config.cc_min_obs == 20

@pytest.mark.parametrize("kwargs", [
    {'alpha': 0.0},
    {'alpha': 1.0},
    {'alpha': 'abc'},
    {'alpha': None},
    {'cc_min_obs': 1},
    {'win_size': 0},
    {'win_size': 10.5},
    {'horizons': ()},
    {'horizons': (1, 1, 5)},
    {'horizons': (0, 5)},
    {'solver': 'simplex'},
    {'dq_lags': -2},
    {'n_jobs': 0},
])
def test_model_config_invalid(kwargs):
    with pytest.raises(InvalidConfigurationError):
        ModelConfig(**kwargs).validate()

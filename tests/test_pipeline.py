import logging

import pytest
import numpy as np
import pandas as pd

from errors import InsufficientHistoryError, InvalidConfigurationError
from config.model_config import ModelConfig
from data_manager.simulation import simulate_returns
from calculate_var import initialize_components, run_analysis, parse_args, main

@pytest.fixture
def small_config():
    return ModelConfig(win_size=200)

def test_initialize_components(small_config):
    components = initialize_components(small_config)
    assert components['estimator'].regressors == ['sigma1', 'sigma5', 'sigma20']
    assert components['forecaster'].win_size == 200
    assert components['evaluator'].alpha == 0.05

def test_initialize_rejects_invalid_config():
    with pytest.raises(InvalidConfigurationError):
        initialize_components(ModelConfig(alpha=1.5))

def test_run_analysis(sample_returns, small_config, tmp_path):
    components = initialize_components(small_config)
    results = run_analysis(components, sample_returns, output_dir=tmp_path, make_plots=False)

    # 400 returns -> 380 feature rows -> 180 forecasts
    assert len(results['features']) == 380
    forecasts = results['forecasts']
    assert len(forecasts) == 180
    assert forecasts.index[-1] == sample_returns.index[-1]
    pd.testing.assert_series_equal(
        forecasts['realized_return'], sample_returns.iloc[-180:], check_names=False, check_freq=False
    )
    assert forecasts['var_qreg'].notna().all()

    summary = results['summary']
    assert list(summary.index) == ['var_hs', 'var_qreg']
    assert (summary['n_obs'] == 180).all()

    assert (tmp_path / 'forecasts.csv').exists()
    assert (tmp_path / 'backtest_summary.csv').exists()
    assert not (tmp_path / 'plots').exists()

def test_run_analysis_is_deterministic(sample_returns, small_config):
    first = run_analysis(initialize_components(small_config), sample_returns)
    second = run_analysis(initialize_components(small_config), sample_returns)
    pd.testing.assert_frame_equal(first['forecasts'], second['forecasts'])

def test_insufficient_history_aborts_before_estimation():
    returns = simulate_returns(1020, seed=1)
    components = initialize_components(ModelConfig())
    with pytest.raises(InsufficientHistoryError):
        run_analysis(components, returns)
    assert components['forecaster'].forecasts == []

def test_full_window_five_forecasts(returns_1025):
    components = initialize_components(ModelConfig())
    results = run_analysis(components, returns_1025)

    forecasts = results['forecasts']
    assert len(forecasts) == 5
    assert list(forecasts.index) == list(returns_1025.index[-5:])
    assert forecasts[['var_hs', 'var_qreg']].notna().all().all()
    # Five observations are below the minimum sample of both tests
    assert results['summary']['cc_pvalue'].isna().all()
    assert results['summary']['dq_pvalue'].isna().all()
    for result in results['backtests'].values():
        assert any('Conditional coverage test undefined' in w for w in result.warnings)

def test_invalid_returns_rejected(sample_returns, small_config):
    returns = sample_returns.copy()
    returns.iloc[50] = np.nan
    with pytest.raises(InvalidConfigurationError):
        run_analysis(initialize_components(small_config), returns)

def test_parse_args():
    args = parse_args(['--simulate', '500', '--horizons', '1', '5', '--solver', 'irls'])
    assert args.simulate == 500
    assert args.horizons == [1, 5]
    assert args.solver == 'irls'
    assert args.win_size == 1000
    assert args.cc_min_obs == 20

    with pytest.raises(SystemExit):
        parse_args([])

def test_main_with_simulated_returns(tmp_path):
    root = logging.getLogger()
    handlers = list(root.handlers)
    try:
        results = main(['--simulate', '300', '--win-size', '150', '--no-plots',
                        '--output', str(tmp_path)])
    finally:
        for handler in root.handlers[:]:
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()

    assert len(results['forecasts']) == 300 - 20 - 150
    assert (tmp_path / 'forecasts.csv').exists()
    assert list((tmp_path / 'logs').glob('var_backtest_*.log'))

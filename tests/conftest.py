import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import matplotlib
matplotlib.use('Agg')

import pytest
import numpy as np
import pandas as pd

from data_manager.simulation import simulate_returns

@pytest.fixture
def sample_returns():
    """GARCH(1,1) percent returns with volatility clustering"""
    return simulate_returns(400, seed=42)

@pytest.fixture
def returns_1025():
    """Series long enough for exactly five forecasts with win_size=1000"""
    return simulate_returns(1025, seed=7)

@pytest.fixture
def random_feature_table():
    """Feature table with independent random regressors"""
    rng = np.random.default_rng(0)
    n = 60
    dates = pd.bdate_range('2020-01-01', periods=n, name='date')
    return pd.DataFrame({
        'y': rng.normal(0, 1, n),
        'sigma1': np.abs(rng.normal(1, 0.5, n)),
        'sigma5': np.abs(rng.normal(1, 0.3, n)),
        'sigma20': np.abs(rng.normal(1, 0.2, n)),
    }, index=dates)

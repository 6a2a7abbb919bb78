"""
Data management package for the VaR backtest.
Handles loading, simulation and validation of return series.
"""

from .data_loader import DataLoader, prices_to_returns
from .data_validator import DataValidator
from .simulation import simulate_returns

__all__ = ['DataLoader', 'DataValidator', 'prices_to_returns', 'simulate_returns']

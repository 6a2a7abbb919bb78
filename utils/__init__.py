"""Utility functions and classes for the VaR backtest"""

from .progress import ProgressMonitor, PerformanceTracker
from .visualization import VaRVisualizer

__all__ = ['ProgressMonitor', 'PerformanceTracker', 'VaRVisualizer']

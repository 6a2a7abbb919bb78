"""Model configuration for the VaR backtest pipeline"""

from .model_config import ModelConfig

__all__ = ['ModelConfig']

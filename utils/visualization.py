from typing import Dict, Optional, Sequence
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
import logging

from models import BacktestResult

logger = logging.getLogger(__name__)

MODEL_LABELS = {
    'var_hs': 'Historical Simulation',
    'var_qreg': 'HAR QREG',
}

class VaRVisualizer:
    """Plots for VaR forecasts and backtest p-values"""

    def __init__(self, style: str = 'seaborn-v0_8-whitegrid'):
        """
        Initialize visualizer

        Parameters:
        -----------
        style : str
            Matplotlib style to use.
            Available styles can be listed with `plt.style.available`
        """
        # Set style safely with fallback options
        try:
            plt.style.use(style)
        except OSError:
            try:
                plt.style.use('seaborn-v0_8')
            except OSError:
                plt.style.use('default')
                logger.warning(f"Style '{style}' not found, using default style")

        self.colors = plt.rcParams['axes.prop_cycle'].by_key()['color']

    def plot_forecasts(self,
                       table: pd.DataFrame,
                       models: Sequence[str] = ('var_hs', 'var_qreg'),
                       title: Optional[str] = None,
                       save_path: Optional[Path] = None) -> plt.Figure:
        """
        Plot realized returns with VaR forecasts and mark exceedances

        Parameters:
        -----------
        table : DataFrame
            Forecast table indexed by date with a 'realized_return' column
        models : list
            VaR columns to draw
        title : str, optional
            Plot title
        save_path : Path, optional
            Path to save figure
        """
        if table.empty:
            raise ValueError("Empty forecast table")

        fig, ax = plt.subplots(figsize=(12, 6))
        ax.plot(table.index, table['realized_return'], color='grey',
                linewidth=0.6, alpha=0.7, label='Realized return')

        for i, model in enumerate(models):
            color = self.colors[(i + 1) % len(self.colors)]
            ax.plot(table.index, table[model], color=color, linewidth=1.2,
                    label=MODEL_LABELS.get(model, model))

            hits = table['realized_return'] < table[model]
            ax.scatter(table.index[hits], table.loc[hits, 'realized_return'],
                       color=color, s=12, zorder=5)

        ax.set_xlabel('Date')
        ax.set_ylabel('Return (%)')
        if title:
            ax.set_title(title)
        ax.legend()

        if save_path:
            fig.savefig(save_path)

        return fig

    def plot_pvalues(self,
                     results: Dict[str, BacktestResult],
                     significance: float = 0.05,
                     title: Optional[str] = 'P-values',
                     save_path: Optional[Path] = None) -> plt.Figure:
        """
        Bar chart of CC and DQ p-values per model with the significance line

        Undefined p-values get no bar and an 'n/a' label at the baseline.
        """
        if not results:
            raise ValueError("No backtest results to plot")

        tests = [('CC', 'cc_pvalue'), ('DQ', 'dq_pvalue')]
        models = list(results)
        palette = sns.color_palette(n_colors=len(models))
        width = 0.8 / len(models)

        fig, ax = plt.subplots(figsize=(8, 5))
        for i, model in enumerate(models):
            offsets = np.arange(len(tests)) - 0.4 + width * (i + 0.5)
            pvalues = np.array([getattr(results[model], attr) for _, attr in tests], dtype=float)
            undefined = np.isnan(pvalues)

            ax.bar(offsets[~undefined], pvalues[~undefined], width=width,
                   color=palette[i], label=MODEL_LABELS.get(model, model))
            for x in offsets[undefined]:
                ax.annotate('n/a', (x, 0.01), ha='center', va='bottom', fontsize=9)

        ax.axhline(significance, color='black', linewidth=1)
        ax.set_xticks(np.arange(len(tests)))
        ax.set_xticklabels([name for name, _ in tests])
        ax.set_ylim(0, 1)
        ax.set_ylabel('p-value')
        ax.legend()
        if title:
            ax.set_title(title)

        if save_path:
            fig.savefig(save_path)

        return fig

    def close_all(self):
        """Close all open figures"""
        plt.close('all')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_all()

    def plot_results(self, results: Dict, output_path: Path, show_plots: bool = False):
        """Plot forecasts and p-values and save them to output directory"""
        try:
            output_path.mkdir(parents=True, exist_ok=True)

            table = results['forecasts']
            backtests = results['backtests']
            if table is None or table.empty:
                raise ValueError("No results to plot")

            self.plot_forecasts(table, models=list(backtests.keys()),
                                title='One-day-ahead VaR forecasts',
                                save_path=output_path / 'forecasts.png')
            self.plot_pvalues(backtests, save_path=output_path / 'pvalues.png')

            if show_plots:
                plt.show()

            self.close_all()

        except Exception as e:
            logging.getLogger('utils.visualization').error(f"Error plotting results: {str(e)}")
            raise

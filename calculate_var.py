#!/usr/bin/env python
"""
One-day-ahead VaR backtest: historical simulation against HAR quantile regression.
Coordinates feature construction, rolling forecasts and calibration tests.
"""
import sys
import argparse
from pathlib import Path
import logging
from datetime import datetime
import pandas as pd
from typing import Dict, Any, Optional, List
import traceback

# Add project root to path
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

from config.model_config import ModelConfig
from data_manager.data_loader import DataLoader
from data_manager.data_validator import DataValidator
from data_manager.simulation import simulate_returns
from qreg.features import FeatureBuilder
from qreg.estimator import QuantileRegressionEstimator
from qreg.forecaster import RollingForecaster
from backtesting.evaluator import BacktestEvaluator
from utils.progress import PerformanceTracker
from utils.visualization import VaRVisualizer

def setup_logging(output_dir: Path) -> logging.Logger:
    """
    Configure logging with both file and console handlers

    Parameters:
    -----------
    output_dir : Path
        Directory for log file

    Returns:
    --------
    logging.Logger
        Configured logger
    """
    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"var_backtest_{timestamp}.log"

    # Handlers go on the root logger so component loggers share them
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(
        logging.Formatter('%(message)s')
    )

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    return logging.getLogger("var_backtest")

def initialize_components(config: ModelConfig, logger: Optional[logging.Logger] = None,
                          show_progress: bool = False) -> Dict[str, Any]:
    """Initialize all analysis components from a validated configuration"""
    if logger is None:
        logger = logging.getLogger('var_backtest')

    config.validate()
    logger.info(f"Model configuration: {config.to_dict()}")

    builder = FeatureBuilder(horizons=config.horizons)
    estimator = QuantileRegressionEstimator(
        alpha=config.alpha,
        method=config.solver,
        regressors=builder.feature_columns
    )
    forecaster = RollingForecaster(
        estimator=estimator,
        win_size=config.win_size,
        n_jobs=config.n_jobs,
        show_progress=show_progress
    )
    evaluator = BacktestEvaluator(
        alpha=config.alpha,
        dq_lags=config.dq_lags,
        cc_min_obs=config.cc_min_obs
    )

    return {
        'config': config,
        'validator': DataValidator(),
        'builder': builder,
        'estimator': estimator,
        'forecaster': forecaster,
        'evaluator': evaluator,
    }

def run_analysis(components: Dict[str, Any], returns: pd.Series,
                 output_dir: Optional[Path] = None,
                 logger: Optional[logging.Logger] = None,
                 make_plots: bool = True,
                 show_plots: bool = False) -> Dict[str, Any]:
    """
    Run the pipeline on a return series

    Returns a dictionary with the feature table, the forecast table, the
    per-model backtest results and their summary table. When output_dir is
    given the tables (and optionally plots) are written there.
    """
    if logger is None:
        logger = logging.getLogger('var_backtest')
    logger.info("Starting analysis pipeline...")
    tracker = PerformanceTracker()

    try:
        config: ModelConfig = components['config']

        # Setup-time checks abort before any estimation
        components['validator'].ensure_valid(returns, min_observations=config.min_observations)
        tracker.checkpoint('validation')

        features = components['builder'].build(returns)
        tracker.checkpoint('features')

        forecaster: RollingForecaster = components['forecaster']
        forecaster.generate_rolling_windows(features)
        forecasts = forecaster.to_dataframe()
        tracker.checkpoint('rolling forecasts')

        evaluator: BacktestEvaluator = components['evaluator']
        backtests = evaluator.evaluate_table(forecasts)
        summary = evaluator.summary(backtests)
        tracker.checkpoint('backtest')

        results = {
            'features': features,
            'forecasts': forecasts,
            'backtests': backtests,
            'summary': summary,
        }

        if output_dir is not None:
            output_dir.mkdir(parents=True, exist_ok=True)
            forecasts.to_csv(output_dir / "forecasts.csv")
            summary.to_csv(output_dir / "backtest_summary.csv")
            logger.info(f"Results saved to {output_dir}")

            if make_plots:
                with VaRVisualizer() as visualizer:
                    visualizer.plot_results(results, output_dir / "plots", show_plots=show_plots)
            tracker.checkpoint('output')

        logger.info("\n" + summary[['n_obs', 'n_exceedances', 'cc_pvalue', 'dq_pvalue']].to_string())
        logger.info(tracker.report())
        logger.info("Pipeline completed successfully")
        return results

    except Exception as e:
        logger.error(f"Error in analysis pipeline: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        raise

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest HAR quantile regression VaR against historical simulation"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--data", type=Path, help="CSV file with a date column and return columns")
    source.add_argument("--simulate", type=int, metavar="N",
                        help="Use N simulated GARCH(1,1) percent returns")
    parser.add_argument("--column", help="Return (or price) column to use")
    parser.add_argument("--date-column", help="Date column (default: first column)")
    parser.add_argument("--prices", action="store_true", help="Column holds prices, not returns")
    parser.add_argument("--win-size", type=int, default=1000)
    parser.add_argument("--alpha", type=float, default=0.05)
    parser.add_argument("--horizons", type=int, nargs="+", default=[1, 5, 20])
    parser.add_argument("--solver", choices=["highs", "irls"], default="highs")
    parser.add_argument("--dq-lags", type=int, default=4)
    parser.add_argument("--cc-min-obs", type=int, default=20,
                        help="Fewest backtest days the conditional coverage test is run on")
    parser.add_argument("--n-jobs", type=int, default=1)
    parser.add_argument("--seed", type=int, default=42, help="Seed for --simulate")
    parser.add_argument("--output", type=Path, default=Path("results"))
    parser.add_argument("--no-plots", action="store_true")
    parser.add_argument("--show-plots", action="store_true")
    return parser.parse_args(argv)

def main(argv: Optional[List[str]] = None):
    """Main entry point with configuration and setup"""
    args = parse_args(argv)
    logger = setup_logging(args.output)

    try:
        logger.info("Starting VaR backtest pipeline...")

        if args.simulate is not None:
            returns = simulate_returns(args.simulate, seed=args.seed)
            logger.info(f"Simulated {len(returns)} returns (seed {args.seed})")
        else:
            returns = DataLoader().load_returns(
                args.data,
                column=args.column,
                date_column=args.date_column,
                is_price=args.prices
            )

        config = ModelConfig(
            win_size=args.win_size,
            alpha=args.alpha,
            horizons=tuple(args.horizons),
            solver=args.solver,
            dq_lags=args.dq_lags,
            cc_min_obs=args.cc_min_obs,
            n_jobs=args.n_jobs
        )
        components = initialize_components(config, logger, show_progress=True)

        return run_analysis(
            components, returns,
            output_dir=args.output,
            logger=logger,
            make_plots=not args.no_plots,
            show_plots=args.show_plots
        )

    except Exception as e:
        logger.error(f"Pipeline failed: {str(e)}")
        raise

if __name__ == '__main__':
    main()

"""Exception and warning types shared across the VaR pipeline."""


class VaRPipelineError(Exception):
    """Base class for pipeline errors"""


class InvalidConfigurationError(VaRPipelineError, ValueError):
    """Bad parameters or malformed input series, raised before any estimation"""


class InsufficientHistoryError(InvalidConfigurationError):
    """Return series too short for the requested horizons and window size"""


class QuantileFitError(VaRPipelineError):
    """A single window could not be fitted"""


class NonIdentifiableFitError(QuantileFitError, ValueError):
    """Design matrix of a window is rank deficient"""


class SolverError(QuantileFitError, RuntimeError):
    """Linear program did not terminate at an optimum"""


class DegenerateExceedanceWarning(UserWarning):
    """Exceedance sequence too short or too uniform for a backtest statistic"""

"""
Error taxonomy for the optimization engine.

Configuration problems fail fast before any iteration runs. Evaluation failures
are isolated per candidate. Run failures end a run with a diagnostic reason.
Budget exhaustion is a status, never an exception.
"""


class OptimizationError(Exception):
    """Base class for all optimization engine errors."""


class ConfigurationError(OptimizationError, ValueError):
    """Invalid optimization setup (objectives, algorithm, search space)."""


class NoOptimizableParameters(ConfigurationError):
    """The search space holds no parameters to tune."""

    def __init__(self, message: str = "No optimizable parameters found in the strategy"):
        super().__init__(message)


class EvaluationFailure(OptimizationError):
    """A single candidate's fitness evaluation raised or timed out."""

    def __init__(self, assignment, cause: BaseException):
        self.assignment = assignment
        self.cause = cause
        super().__init__(f"Evaluation failed for {assignment}: {cause}")


class RunFailure(OptimizationError):
    """The run cannot produce a result (all evaluations failed or an invariant broke)."""

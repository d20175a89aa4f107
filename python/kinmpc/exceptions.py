"""
kinmpc Exception Classes
========================

Custom exceptions for kinmpc error handling.
"""

from typing import Any, Optional


class KinmpcError(Exception):
    """Base exception for all kinmpc errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SolveError(KinmpcError):
    """
    Raised when the nonlinear program terminates without success.

    The non-successful solver result is attached so the caller can
    inspect status, iterations and timing before choosing a fallback
    (hold the previous command, command a safe deceleration, ...).
    """

    def __init__(
        self,
        message: str = "Solve did not succeed",
        result: Optional["NLPResult"] = None,
    ) -> None:
        self.result = result
        super().__init__(message)


class InfeasibleError(SolveError):
    """
    Raised when the problem is infeasible.

    This means no trajectory satisfies the bounds and dynamics, e.g.
    contradictory actuation limits.
    """

    def __init__(
        self,
        message: str = "Problem is infeasible",
        result: Optional["NLPResult"] = None,
    ) -> None:
        super().__init__(message, result)


class TimeLimitError(SolveError):
    """
    Raised when the solver exceeds its wall-clock budget.

    A cycle that runs over budget is treated as a failed solve.
    """

    def __init__(
        self,
        message: str = "Time limit exceeded",
        result: Optional["NLPResult"] = None,
    ) -> None:
        super().__init__(message, result)


class NumericalError(SolveError):
    """
    Raised when numerical issues are encountered.

    This may indicate non-finite objective/constraint values or a
    breakdown inside the solver's line search.
    """

    def __init__(
        self,
        message: str = "Numerical error encountered",
        result: Optional["NLPResult"] = None,
    ) -> None:
        super().__init__(message, result)


class DimensionError(KinmpcError):
    """
    Raised when state, actuation or coefficient vectors have the wrong size.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InvalidInputError(KinmpcError):
    """
    Raised when input data or configuration is invalid.

    Examples: NaN values, a horizon shorter than two steps, negative weights.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")


# Type alias for NLPResult (defined in result.py)
# This avoids circular imports
NLPResult = Any

"""
kinmpc Result Classes
=====================

Data classes for solver results and status.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class Status(Enum):
    """
    Solver status codes.

    Attributes:
        OPTIMAL: Solution found within tolerance
        PRIMAL_INFEASIBLE: Bounds contradict each other or constraints
            cannot be satisfied
        MAX_ITERATIONS: Maximum iteration limit reached
        TIME_LIMIT: Wall-clock budget exhausted
        NUMERICAL_ERROR: Numerical issues encountered
    """
    OPTIMAL = "optimal"
    PRIMAL_INFEASIBLE = "primal_infeasible"
    MAX_ITERATIONS = "max_iterations"
    TIME_LIMIT = "time_limit"
    NUMERICAL_ERROR = "numerical_error"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if an optimal solution was found."""
        return self == Status.OPTIMAL


@dataclass
class NLPResult:
    """
    Result of solving a nonlinear program.

    Attributes:
        status: Solver status
        objective: Objective value at ``x``
        x: Final decision vector
        iterations: Number of iterations performed
        solve_time: Wall clock time in seconds
        constraint_violation: Largest violation of the constraint bounds
        message: Solver-specific termination message

    Example:
        >>> result = solve_nlp(problem, x0, lb, ub, cl, cu)
        >>> if result.status.is_successful:
        ...     print(f"Optimal value: {result.objective}")
    """

    status: Status
    objective: float
    x: np.ndarray
    iterations: int
    solve_time: float

    constraint_violation: float = 0.0
    message: str = ""

    @property
    def success(self) -> bool:
        """Whether the solver reported success."""
        return self.status.is_successful

    def __repr__(self) -> str:
        return (
            f"NLPResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"time={self.solve_time:.4f}s)"
        )

    def summary(self) -> str:
        """Return a formatted summary of the solve result."""
        lines = [
            "=" * 50,
            "kinmpc Solve Summary",
            "=" * 50,
            f"Status:               {self.status}",
            f"Objective:            {self.objective:.10g}",
            f"Iterations:           {self.iterations}",
            f"Solve time:           {self.solve_time:.4f} s",
            "-" * 50,
            f"Constraint violation: {self.constraint_violation:.6e}",
            f"Message:              {self.message}",
            "=" * 50,
        ]
        return "\n".join(lines)

"""
kinmpc: Kinematic Model Predictive Control for Path Following
=============================================================

kinmpc computes steering and throttle/brake commands for a vehicle
following a reference path by solving a short-horizon nonlinear program
over a kinematic bicycle model every control cycle.

Quick Start
-----------
>>> import kinmpc
>>> mpc = kinmpc.MPCController()
>>> state = kinmpc.VehicleState(x=0, y=0, psi=0, v=35, cte=1.0, epsi=0.0)
>>> result = mpc.solve(state, coeffs=[1.0, 0.0, 0.0, 0.0])
>>> print(result.actuation)
Actuation(delta=..., a=...)

Failed solves raise instead of returning an unchecked actuation:

>>> try:
...     actuation = mpc.control(state, coeffs)
... except kinmpc.SolveError as e:
...     actuation = fallback(e.result)
"""

__version__ = "0.1.0"
__author__ = "kinmpc Contributors"

# Import public API
from .mpc import (
    MPCController,
    MPCConfig,
    MPCResult,
    KinematicModel,
    VehicleState,
    Actuation,
    PathPolynomial,
    CostWeights,
    References,
    predict,
)
from .solver import solve_nlp
from .result import NLPResult, Status
from .exceptions import (
    KinmpcError,
    SolveError,
    InfeasibleError,
    TimeLimitError,
    NumericalError,
    DimensionError,
    InvalidInputError,
)

__all__ = [
    # Version
    "__version__",

    # Control
    "MPCController",
    "MPCConfig",
    "MPCResult",
    "KinematicModel",
    "VehicleState",
    "Actuation",
    "PathPolynomial",
    "CostWeights",
    "References",
    "predict",

    # Solving
    "solve_nlp",

    # Results
    "NLPResult",
    "Status",

    # Exceptions
    "KinmpcError",
    "SolveError",
    "InfeasibleError",
    "TimeLimitError",
    "NumericalError",
    "DimensionError",
    "InvalidInputError",
]


def info() -> str:
    """Return information about the kinmpc installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"kinmpc version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]

    return "\n".join(lines)

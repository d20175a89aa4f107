"""kinmpc Nonlinear Program Interface."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

import numpy as np
from scipy.optimize import Bounds, minimize

from .exceptions import DimensionError
from .result import NLPResult, Status

logger = logging.getLogger(__name__)

# Bounds at or beyond this magnitude are treated as unbounded
INFINITY = 1.0e19


class NLPProblem(Protocol):
    """
    Objective/constraint evaluator consumed by :func:`solve_nlp`.

    ``constraints`` returns the residual vector g(z); the solver keeps
    ``constraint_l <= g(z) <= constraint_u``.
    """

    def objective(self, z: np.ndarray) -> float: ...

    def gradient(self, z: np.ndarray) -> np.ndarray: ...

    def constraints(self, z: np.ndarray) -> np.ndarray: ...

    def jacobian(self, z: np.ndarray) -> np.ndarray: ...


# Signature of any solver usable by the MPC controller
NLPSolver = Callable[..., NLPResult]


class _TimeLimitReached(Exception):
    pass


class _NonFiniteValue(Exception):
    pass


class _Progress:
    """Deadline and iteration bookkeeping shared by the wrapped callbacks."""

    def __init__(self, x0: np.ndarray, time_limit: Optional[float]) -> None:
        self.start = time.perf_counter()
        self.deadline = None if time_limit is None else self.start + time_limit
        self.iterations = 0
        self.last_x = x0.copy()

    def check(self, z: np.ndarray) -> None:
        self.last_x = np.array(z, dtype=np.float64)
        if self.deadline is not None and time.perf_counter() > self.deadline:
            raise _TimeLimitReached()

    def callback(self, xk: np.ndarray) -> None:
        self.iterations += 1

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.start


# SLSQP exit modes that map to something other than a numerical failure
_SLSQP_STATUS = {
    0: Status.OPTIMAL,
    4: Status.PRIMAL_INFEASIBLE,
    9: Status.MAX_ITERATIONS,
}


def solve_nlp(
    problem: NLPProblem,
    x0: np.ndarray,
    lb: np.ndarray,
    ub: np.ndarray,
    constraint_l: np.ndarray,
    constraint_u: np.ndarray,
    time_limit: Optional[float] = 0.5,
    params: Optional[Dict[str, Any]] = None,
) -> NLPResult:
    """
    Minimize ``problem.objective`` subject to variable and constraint bounds.

    Uses SciPy's SLSQP with the analytic gradient and Jacobian supplied
    by ``problem``. Rows whose lower and upper bound coincide become
    equality constraints, the rest one-sided inequalities.

    Args:
        problem: Objective/constraint evaluator
        x0: Initial guess (n,)
        lb: Variable lower bounds (n,)
        ub: Variable upper bounds (n,)
        constraint_l: Constraint lower bounds (m,)
        constraint_u: Constraint upper bounds (m,)
        time_limit: Wall-clock budget in seconds (None disables it)
        params: Solver parameters (``max_iterations``, ``tolerance``,
            ``feasibility_tolerance``, ``verbose``)

    Returns:
        NLPResult; the status is never OPTIMAL unless SLSQP converged
        and the constraint bounds hold within ``feasibility_tolerance``.
    """
    params = params or {}
    max_iters = params.get('max_iterations', params.get('max_iters', 100))
    tol = params.get('tolerance', params.get('tol', 1e-6))
    feas_tol = params.get('feasibility_tolerance', 1e-4)
    verbose = params.get('verbose', False)

    x0 = np.asarray(x0, dtype=np.float64).ravel()
    n = len(x0)
    lb = np.asarray(lb, dtype=np.float64).ravel()
    ub = np.asarray(ub, dtype=np.float64).ravel()
    constr_l = np.asarray(constraint_l, dtype=np.float64).ravel()
    constr_u = np.asarray(constraint_u, dtype=np.float64).ravel()

    if len(lb) != n or len(ub) != n:
        raise DimensionError(f"Bounds mismatch: lb={len(lb)}, ub={len(ub)}, n={n}")
    if len(constr_l) != len(constr_u):
        raise DimensionError(
            f"Constraint bounds mismatch: l={len(constr_l)}, u={len(constr_u)}"
        )
    if np.any(lb > ub) or np.any(constr_l > constr_u):
        logger.warning("Contradictory bounds, skipping solve")
        return NLPResult(
            status=Status.PRIMAL_INFEASIBLE,
            objective=float('nan'),
            x=x0.copy(),
            iterations=0,
            solve_time=0.0,
            message="lower bound exceeds upper bound",
        )

    lb = np.where(lb <= -INFINITY, -np.inf, lb)
    ub = np.where(ub >= INFINITY, np.inf, ub)
    constr_l = np.where(constr_l <= -INFINITY, -np.inf, constr_l)
    constr_u = np.where(constr_u >= INFINITY, np.inf, constr_u)

    progress = _Progress(x0, time_limit)

    def fun(z):
        progress.check(z)
        value = float(problem.objective(z))
        if not np.isfinite(value):
            raise _NonFiniteValue()
        return value

    def jac(z):
        progress.check(z)
        return problem.gradient(z)

    constraints = _build_constraints(problem, constr_l, constr_u, progress)

    x_start = np.clip(x0, lb, ub)

    try:
        result = minimize(
            fun, x_start, method='SLSQP', jac=jac,
            bounds=Bounds(lb, ub), constraints=constraints,
            callback=progress.callback,
            options={'maxiter': max_iters, 'ftol': tol, 'disp': verbose},
        )
    except _TimeLimitReached:
        logger.debug("Time limit of %.3fs reached after %d iterations",
                     time_limit, progress.iterations)
        return _finish(problem, progress, Status.TIME_LIMIT, progress.last_x,
                       constr_l, constr_u, "time limit reached")
    except _NonFiniteValue:
        return _finish(problem, progress, Status.NUMERICAL_ERROR, progress.last_x,
                       constr_l, constr_u, "objective evaluated to a non-finite value")
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        logger.warning("SLSQP failed: %s", e)
        return _finish(problem, progress, Status.NUMERICAL_ERROR, progress.last_x,
                       constr_l, constr_u, str(e))

    status = _SLSQP_STATUS.get(result.status, Status.NUMERICAL_ERROR)
    nlp = _finish(problem, progress, status, result.x, constr_l, constr_u,
                  str(result.message), iterations=int(result.nit))

    if nlp.status == Status.OPTIMAL and nlp.constraint_violation > feas_tol:
        nlp.status = Status.PRIMAL_INFEASIBLE
        nlp.message = (
            f"converged with constraint violation {nlp.constraint_violation:.3e}"
        )
    return nlp


def _build_constraints(
    problem: NLPProblem,
    constr_l: np.ndarray,
    constr_u: np.ndarray,
    progress: _Progress,
) -> List[Dict[str, Any]]:
    """Split two-sided constraint bounds into SLSQP eq/ineq dictionaries."""
    constraints = []
    if len(constr_l) == 0:
        return constraints

    def g(z):
        progress.check(z)
        return np.asarray(problem.constraints(z), dtype=np.float64)

    def dg(z):
        progress.check(z)
        return np.asarray(problem.jacobian(z), dtype=np.float64)

    with np.errstate(invalid='ignore'):
        eq_mask = np.abs(constr_l - constr_u) < 1e-10
    if eq_mask.any():
        b_eq = constr_l[eq_mask]
        constraints.append({
            'type': 'eq',
            'fun': lambda z, mask=eq_mask, b=b_eq: g(z)[mask] - b,
            'jac': lambda z, mask=eq_mask: dg(z)[mask],
        })

    lower_mask = ~eq_mask & np.isfinite(constr_l)
    if lower_mask.any():
        l_ineq = constr_l[lower_mask]
        constraints.append({
            'type': 'ineq',
            'fun': lambda z, mask=lower_mask, l=l_ineq: g(z)[mask] - l,
            'jac': lambda z, mask=lower_mask: dg(z)[mask],
        })

    upper_mask = ~eq_mask & np.isfinite(constr_u)
    if upper_mask.any():
        u_ineq = constr_u[upper_mask]
        constraints.append({
            'type': 'ineq',
            'fun': lambda z, mask=upper_mask, u=u_ineq: u - g(z)[mask],
            'jac': lambda z, mask=upper_mask: -dg(z)[mask],
        })

    return constraints


def _finish(
    problem: NLPProblem,
    progress: _Progress,
    status: Status,
    x: np.ndarray,
    constr_l: np.ndarray,
    constr_u: np.ndarray,
    message: str,
    iterations: Optional[int] = None,
) -> NLPResult:
    x = np.asarray(x, dtype=np.float64)
    with np.errstate(invalid='ignore', over='ignore'):
        objective = float(problem.objective(x))
        violation = constraint_violation(problem.constraints(x), constr_l, constr_u)

    result = NLPResult(
        status=status,
        objective=objective,
        x=x,
        iterations=progress.iterations if iterations is None else iterations,
        solve_time=progress.elapsed,
        constraint_violation=violation,
        message=message,
    )
    logger.debug("%r", result)
    return result


def constraint_violation(
    g: np.ndarray,
    constr_l: np.ndarray,
    constr_u: np.ndarray,
) -> float:
    """Largest amount by which ``g`` leaves ``[constr_l, constr_u]``."""
    g = np.asarray(g, dtype=np.float64)
    if g.size == 0:
        return 0.0
    lower = np.maximum(constr_l - g, 0.0)
    upper = np.maximum(g - constr_u, 0.0)
    violation = float(np.max(np.maximum(lower, upper)))
    return violation if np.isfinite(violation) else float('inf')

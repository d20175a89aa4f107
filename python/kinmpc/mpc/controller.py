"""
MPC Controller
==============

Nonlinear Model Predictive Control for path following with the
kinematic bicycle model.

Each cycle solves

    minimize    tracking + actuation + smoothness cost
    subject to  state_{t+1} = model(state_t, actuation_t)
                -max_steer <= delta_t <= max_steer
                a_min <= a_t <= a_max
                state_0 = measured state

and applies only the first actuation.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple, Union
import numpy as np

from ..exceptions import (
    DimensionError,
    InfeasibleError,
    InvalidInputError,
    NumericalError,
    SolveError,
    TimeLimitError,
)
from ..result import NLPResult, Status
from ..solver import INFINITY, NLPSolver, solve_nlp
from ..utils.validation import as_vector, check_positive
from .cost import CostWeights, References, TrackingProblem
from .dynamics import (
    LF,
    N_STATES,
    Actuation,
    ActuationLike,
    KinematicModel,
    StateLike,
    VehicleState,
)
from .path import PathPolynomial
from .trajectory import Trajectory, TrajectoryLayout

logger = logging.getLogger(__name__)

# 25 degrees in radians
MAX_STEER = 0.436332


@dataclass(frozen=True)
class MPCConfig:
    """
    Controller configuration, fixed for the lifetime of a controller.

    ``horizon * dt`` sets the look-ahead time; dt should sit near the
    control-loop period so the discretization matches the update cadence.

    Args:
        horizon: Number of predicted states N
        dt: Time step between predicted states (seconds)
        lf: Front axle to center of gravity distance
        max_steer: Steering limit (rad), symmetric
        a_min: Lower throttle/brake limit
        a_max: Upper throttle/brake limit
        weights: Objective weights
        references: Tracking targets (cte, epsi, v)
        time_limit: Wall-clock budget per solve (seconds), None disables
        max_iterations: Solver iteration limit
        tolerance: Solver convergence tolerance
        poly_order: Expected path polynomial degree, None accepts any
        verbose: Print solver progress

    Example:
        >>> config = MPCConfig(references=References(v=20.0))
        >>> faster = config.replace(references=References(v=30.0))
    """
    horizon: int = 11
    dt: float = 0.1
    lf: float = LF
    max_steer: float = MAX_STEER
    a_min: float = -1.0
    a_max: float = 1.0
    weights: CostWeights = field(default_factory=CostWeights)
    references: References = field(default_factory=References)
    time_limit: Optional[float] = 0.5
    max_iterations: int = 100
    tolerance: float = 1e-6
    poly_order: Optional[int] = 3
    verbose: bool = False

    def __post_init__(self):
        """Validate scalar parameters."""
        # Raises for horizons too short to hold an actuation
        TrajectoryLayout(self.horizon)
        check_positive(self.dt, "dt")
        check_positive(self.lf, "lf")
        check_positive(self.tolerance, "tolerance")
        check_positive(self.max_iterations, "max_iterations")
        if self.time_limit is not None:
            check_positive(self.time_limit, "time_limit")
        if self.poly_order is not None and self.poly_order < 0:
            raise InvalidInputError(f"poly_order must be non-negative, got {self.poly_order}")

    def replace(self, **changes: Any) -> "MPCConfig":
        """Copy of this configuration with some fields changed."""
        return dataclasses.replace(self, **changes)


@dataclass
class MPCResult:
    """
    MPC solution result.

    Attributes:
        actuation: First actuation to apply (delta, a)
        trajectory: Predicted trajectory over the horizon
        cost: Optimal cost value
        status: Solver status
        solve_time: Computation time (seconds)
        iterations: Solver iterations
    """
    actuation: Actuation
    trajectory: Trajectory
    cost: float
    status: Status
    solve_time: float
    iterations: int

    @property
    def optimal_control(self) -> np.ndarray:
        """First control action to apply (2,)."""
        return self.actuation.to_array()

    @property
    def predicted_trajectory(self) -> np.ndarray:
        """Predicted state trajectory (N, 6)."""
        return self.trajectory.states

    @property
    def predicted_xy(self) -> np.ndarray:
        """Predicted positions (N, 2) for visualization."""
        return self.trajectory.xy

    @property
    def is_optimal(self) -> bool:
        """Whether the solver reported success."""
        return self.status.is_successful

    def __repr__(self) -> str:
        return (
            f"MPCResult(\n"
            f"  status={self.status},\n"
            f"  delta={self.actuation.delta:.4f}, a={self.actuation.a:.4f},\n"
            f"  cost={self.cost:.4f},\n"
            f"  solve_time={self.solve_time*1000:.2f}ms,\n"
            f"  horizon={self.trajectory.horizon}\n"
            f")"
        )


_FAILURES = {
    Status.PRIMAL_INFEASIBLE: InfeasibleError,
    Status.TIME_LIMIT: TimeLimitError,
    Status.NUMERICAL_ERROR: NumericalError,
}


class MPCController:
    """
    Kinematic path-following MPC.

    Stateless between cycles: every :meth:`solve` starts from a zero
    trajectory with only the measured state filled in.

    Args:
        config: Controller configuration (default: MPCConfig())
        solver: Nonlinear program solver with the signature of
            :func:`kinmpc.solver.solve_nlp`

    Example:
        >>> mpc = MPCController(MPCConfig(references=References(v=10.0)))
        >>> state = VehicleState(x=0, y=0, psi=0, v=10, cte=0.5, epsi=0)
        >>> result = mpc.solve(state, coeffs=[0.5, 0.0, 0.0, 0.0])
        >>> delta, a = result.actuation
    """

    def __init__(
        self,
        config: Optional[MPCConfig] = None,
        solver: Optional[NLPSolver] = None,
    ) -> None:
        self.config = config if config is not None else MPCConfig()
        self.solver = solver if solver is not None else solve_nlp
        self.model = KinematicModel(self.config.lf)
        self.layout = TrajectoryLayout(self.config.horizon)

        self._build_bounds()

    @property
    def horizon(self) -> int:
        return self.config.horizon

    @property
    def dt(self) -> float:
        return self.config.dt

    def _build_bounds(self):
        """Variable bounds; states are unbounded, actuators limited."""
        layout = self.layout
        cfg = self.config

        lb = np.full(layout.n_vars, -INFINITY)
        ub = np.full(layout.n_vars, INFINITY)

        lb[layout.block("delta")] = -cfg.max_steer
        ub[layout.block("delta")] = cfg.max_steer

        lb[layout.block("a")] = cfg.a_min
        ub[layout.block("a")] = cfg.a_max

        self._lb = lb
        self._ub = ub

    def constraint_bounds(self, state: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Constraint bounds: zero for the dynamics rows, the measured state
        on both sides of the initial rows.
        """
        layout = self.layout
        constraint_l = np.zeros(layout.n_constraints)
        constraint_u = np.zeros(layout.n_constraints)
        constraint_l[layout.initial_indices()] = state
        constraint_u[layout.initial_indices()] = state
        return constraint_l, constraint_u

    def variable_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Copies of the variable lower and upper bounds."""
        return self._lb.copy(), self._ub.copy()

    def build_problem(self, coeffs: Union[Sequence[float], np.ndarray]) -> TrackingProblem:
        """Objective/constraint evaluator for one cycle's path."""
        path = PathPolynomial(coeffs)
        order = self.config.poly_order
        if order is not None and path.degree != order:
            raise DimensionError(
                f"expected {order + 1} path coefficients, got {len(path.coeffs)}"
            )
        cfg = self.config
        return TrackingProblem(
            self.layout, path, self.model, cfg.dt,
            weights=cfg.weights, references=cfg.references,
        )

    def solve(
        self,
        state: StateLike,
        coeffs: Union[Sequence[float], np.ndarray],
    ) -> MPCResult:
        """
        Solve one control cycle.

        Args:
            state: Measured (x, y, psi, v, cte, epsi) in the path's frame
            coeffs: Path polynomial coefficients, low-to-high degree

        Returns:
            MPCResult with the first actuation and predicted trajectory

        Raises:
            DimensionError: Malformed state or coefficients
            InvalidInputError: Non-finite state or coefficients
            SolveError: The solver did not report success (subclassed as
                InfeasibleError, TimeLimitError or NumericalError)
        """
        if isinstance(state, VehicleState):
            state = state.to_array()
        state = as_vector(state, N_STATES, "state")
        problem = self.build_problem(coeffs)

        z0 = self.layout.initial_guess(state)
        lb, ub = self.variable_bounds()
        constraint_l, constraint_u = self.constraint_bounds(state)

        result = self.solver(
            problem, z0, lb, ub, constraint_l, constraint_u,
            time_limit=self.config.time_limit,
            params={
                "max_iterations": self.config.max_iterations,
                "tolerance": self.config.tolerance,
                "verbose": self.config.verbose,
            },
        )

        if not result.success:
            self._raise_failure(result)

        trajectory = self.layout.unpack(result.x)
        actuation = trajectory.actuation(0)

        logger.debug(
            "MPC solve: delta=%.4f a=%.4f cost=%.4f iterations=%d time=%.1fms",
            actuation.delta, actuation.a, result.objective,
            result.iterations, result.solve_time * 1000,
        )

        return MPCResult(
            actuation=actuation,
            trajectory=trajectory,
            cost=float(result.objective),
            status=result.status,
            solve_time=result.solve_time,
            iterations=result.iterations,
        )

    def _raise_failure(self, result: NLPResult) -> None:
        logger.warning(
            "MPC solve failed: status=%s iterations=%d time=%.1fms (%s)",
            result.status, result.iterations, result.solve_time * 1000,
            result.message,
        )
        error = _FAILURES.get(result.status, SolveError)
        raise error(f"MPC solve failed with status '{result.status}'", result=result)

    def control(
        self,
        state: StateLike,
        coeffs: Union[Sequence[float], np.ndarray],
    ) -> Actuation:
        """First actuation of :meth:`solve`."""
        return self.solve(state, coeffs).actuation

    def predict(
        self,
        state: StateLike,
        actuation: ActuationLike,
        dt: Optional[float] = None,
    ) -> np.ndarray:
        """
        Project ``state`` forward under ``actuation`` with this controller's
        model, e.g. to compensate for actuation latency before :meth:`solve`.
        """
        return self.model.step(state, actuation, self.dt if dt is None else dt)

    def simulate(
        self,
        pose: Sequence[float],
        coeffs: Union[Sequence[float], np.ndarray],
        n_steps: int,
        latency: float = 0.0,
    ) -> Dict[str, np.ndarray]:
        """
        Simulate closed-loop path following.

        The path and the pose share one fixed frame; cross-track and
        heading errors are recomputed from the path every step. With
        ``latency > 0`` the pose is projected forward under the previous
        command before solving. A failed solve holds the previous command.

        Args:
            pose: Initial (x, y, psi, v)
            coeffs: Path polynomial coefficients
            n_steps: Number of control cycles
            latency: Actuation latency to compensate (seconds)

        Returns:
            Dictionary with 'x' (poses, (n+1, 4)), 'u' (actuations, (n, 2)),
            'cte' and 'epsi' (per step errors, (n+1,)) and 'failed'
            (bool per step)
        """
        pose = as_vector(pose, 4, "pose")
        path = PathPolynomial(coeffs)

        poses = np.zeros((n_steps + 1, 4))
        u = np.zeros((n_steps, 2))
        cte = np.zeros(n_steps + 1)
        epsi = np.zeros(n_steps + 1)
        failed = np.zeros(n_steps, dtype=bool)

        poses[0] = pose
        cte[0], epsi[0] = path.errors(*pose[:3])
        previous = Actuation()

        for k in range(n_steps):
            measured = poses[k]
            if latency > 0:
                measured = self.model.step(measured, previous, latency)
            errors = path.errors(*measured[:3])
            state = np.concatenate([measured, errors])

            try:
                actuation = self.solve(state, path.coeffs).actuation
            except SolveError as e:
                logger.info("Holding previous command at step %d: %s", k, e)
                failed[k] = True
                actuation = previous

            u[k] = actuation.to_array()
            poses[k + 1] = self.model.step(poses[k], actuation, self.dt)
            cte[k + 1], epsi[k + 1] = path.errors(*poses[k + 1][:3])
            previous = actuation

        return {'x': poses, 'u': u, 'cte': cte, 'epsi': epsi, 'failed': failed}

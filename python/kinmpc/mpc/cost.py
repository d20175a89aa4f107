"""
MPC Cost and Constraints
========================

Objective and constraint evaluation for the kinematic tracking problem,
with analytic first derivatives.

Objective:

    sum_t  w_cte (cte_t - cte_ref)^2 + w_epsi (epsi_t - epsi_ref)^2
         + w_v (v_t - v_ref)^2                              t = 0..N-1
  + sum_t  w_delta delta_t^2 + w_a a_t^2                    t = 0..N-2
  + sum_t  w_delta_rate (delta_{t+1} - delta_t)^2
         + w_a_rate (a_{t+1} - a_t)^2                       t = 0..N-3

Constraints (row layout mirrors the state part of the decision vector):

    row kind_start          = kind_0        (pinned to the measured state)
    row kind_start + t + 1  = kind_{t+1} - model(state_t, actuation_t)
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np

from ..exceptions import InvalidInputError
from ..utils.validation import check_non_negative
from .dynamics import KinematicModel
from .path import PathPolynomial
from .trajectory import TrajectoryLayout


@dataclass(frozen=True)
class CostWeights:
    """
    Objective weights.

    The large steering-rate weight suppresses oscillatory steering.

    Args:
        cte: Cross-track error weight
        epsi: Heading error weight
        v: Speed error weight
        delta: Steering magnitude weight
        a: Throttle magnitude weight
        delta_rate: Steering change weight
        a_rate: Throttle change weight
    """
    cte: float = 16.0
    epsi: float = 12.0
    v: float = 1.0
    delta: float = 8.0
    a: float = 6.0
    delta_rate: float = 400.0
    a_rate: float = 10.0

    def __post_init__(self):
        """Validate weights."""
        for name in ("cte", "epsi", "v", "delta", "a", "delta_rate", "a_rate"):
            check_non_negative(getattr(self, name), f"weight '{name}'")


@dataclass(frozen=True)
class References:
    """
    Tracking targets.

    Args:
        cte: Target cross-track error
        epsi: Target heading error
        v: Target cruising speed
    """
    cte: float = 0.0
    epsi: float = 0.0
    v: float = 40.0

    def __post_init__(self):
        """Validate targets."""
        for name in ("cte", "epsi", "v"):
            if not np.isfinite(getattr(self, name)):
                raise InvalidInputError(f"reference '{name}' must be finite")


@dataclass
class TrajectoryCost:
    """Objective broken down by term."""
    tracking: float
    actuation: float
    smoothness: float

    @property
    def total(self) -> float:
        """Sum of all terms."""
        return self.tracking + self.actuation + self.smoothness


class TrackingProblem:
    """
    Objective and constraint evaluator for one MPC solve.

    Implements the :class:`kinmpc.solver.NLPProblem` protocol. The path
    is fixed for the lifetime of the instance; build a new one per cycle.

    Args:
        layout: Decision vector layout
        path: Reference path in the vehicle frame
        model: Kinematic model (shared with the controller's predict)
        dt: Time step between predicted states
        weights: Objective weights
        references: Tracking targets

    Example:
        >>> layout = TrajectoryLayout(11)
        >>> problem = TrackingProblem(layout, PathPolynomial([0, 0, 0, 0]),
        ...                           KinematicModel(), dt=0.1)
        >>> z = layout.zeros()
        >>> problem.constraints(z).shape
        (66,)
    """

    def __init__(
        self,
        layout: TrajectoryLayout,
        path: PathPolynomial,
        model: KinematicModel,
        dt: float,
        weights: CostWeights = CostWeights(),
        references: References = References(),
    ) -> None:
        self.layout = layout
        self.path = path
        self.model = model
        self.dt = dt
        self.weights = weights
        self.references = references

    def _split(self, z: np.ndarray):
        layout = self.layout
        return tuple(z[layout.block(name)] for name in
                     ("x", "y", "psi", "v", "cte", "epsi", "delta", "a"))

    # ------------------------------------------------------------------
    # Objective
    # ------------------------------------------------------------------

    def cost_terms(self, z: np.ndarray) -> TrajectoryCost:
        """Evaluate each objective term separately."""
        z = np.asarray(z, dtype=np.float64)
        w = self.weights
        ref = self.references
        _, _, _, v, cte, epsi, delta, a = self._split(z)

        tracking = (
            w.cte * np.sum((cte - ref.cte) ** 2)
            + w.epsi * np.sum((epsi - ref.epsi) ** 2)
            + w.v * np.sum((v - ref.v) ** 2)
        )
        actuation = w.delta * np.sum(delta ** 2) + w.a * np.sum(a ** 2)
        smoothness = (
            w.delta_rate * np.sum(np.diff(delta) ** 2)
            + w.a_rate * np.sum(np.diff(a) ** 2)
        )
        return TrajectoryCost(float(tracking), float(actuation), float(smoothness))

    def objective(self, z: np.ndarray) -> float:
        """Scalar cost of the trajectory vector."""
        return self.cost_terms(z).total

    def gradient(self, z: np.ndarray) -> np.ndarray:
        """Gradient of :meth:`objective`."""
        z = np.asarray(z, dtype=np.float64)
        layout = self.layout
        w = self.weights
        ref = self.references
        _, _, _, v, cte, epsi, delta, a = self._split(z)

        grad = np.zeros(layout.n_vars)
        grad[layout.block("cte")] = 2 * w.cte * (cte - ref.cte)
        grad[layout.block("epsi")] = 2 * w.epsi * (epsi - ref.epsi)
        grad[layout.block("v")] = 2 * w.v * (v - ref.v)

        for name, values, weight, rate_weight in (
            ("delta", delta, w.delta, w.delta_rate),
            ("a", a, w.a, w.a_rate),
        ):
            g = 2 * weight * values
            diff = np.diff(values)
            g[:-1] -= 2 * rate_weight * diff
            g[1:] += 2 * rate_weight * diff
            grad[layout.block(name)] = g

        return grad

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def constraints(self, z: np.ndarray) -> np.ndarray:
        """
        Constraint vector (6N,).

        Initial rows hold the timestep-0 variables themselves; every other
        row is zero exactly when the trajectory obeys the model.
        """
        z = np.asarray(z, dtype=np.float64)
        layout = self.layout
        dt = self.dt
        x, y, psi, v, cte, epsi, delta, a = self._split(z)

        # State and actuation at t = 0..N-2
        x0, y0, psi0, v0 = x[:-1], y[:-1], psi[:-1], v[:-1]
        epsi0 = epsi[:-1]
        x1, y1, psi1, v1 = self.model.propagate(x0, y0, psi0, v0, delta, a, dt)

        g = np.zeros(layout.n_constraints)
        g[layout.initial_indices()] = z[layout.initial_indices()]

        g[layout.x_start + 1:layout.y_start] = x[1:] - x1
        g[layout.y_start + 1:layout.psi_start] = y[1:] - y1
        g[layout.psi_start + 1:layout.v_start] = psi[1:] - psi1
        g[layout.v_start + 1:layout.cte_start] = v[1:] - v1
        g[layout.cte_start + 1:layout.epsi_start] = cte[1:] - (
            (self.path(x0) - y0) + v0 * np.sin(epsi0) * dt
        )
        g[layout.epsi_start + 1:layout.n_constraints] = epsi[1:] - (
            (psi0 - self.path.heading(x0)) + self.model.yaw_rate(v0, delta) * dt
        )
        return g

    def jacobian(self, z: np.ndarray) -> np.ndarray:
        """Dense Jacobian of :meth:`constraints` (6N, n_vars)."""
        z = np.asarray(z, dtype=np.float64)
        layout = self.layout
        dt = self.dt
        lf = self.model.lf
        N = layout.horizon
        x, _, psi, v, _, epsi, delta, _ = self._split(z)

        t = np.arange(N - 1)
        x0, psi0, v0, epsi0 = x[:-1], psi[:-1], v[:-1], epsi[:-1]

        def col(name, offset=0):
            return layout.offsets[name] + t + offset

        def row(name):
            return layout.offsets[name] + t + 1

        J = np.zeros((layout.n_constraints, layout.n_vars))

        init = layout.initial_indices()
        J[init, init] = 1.0

        for name in ("x", "y", "psi", "v", "cte", "epsi"):
            J[row(name), col(name, 1)] = 1.0
        for name in ("x", "y", "psi", "v"):
            J[row(name), col(name)] = -1.0

        J[row("x"), col("psi")] = v0 * np.sin(psi0) * dt
        J[row("x"), col("v")] = -np.cos(psi0) * dt

        J[row("y"), col("psi")] = -v0 * np.cos(psi0) * dt
        J[row("y"), col("v")] = -np.sin(psi0) * dt

        J[row("psi"), col("v")] = -delta / lf * dt
        J[row("psi"), col("delta")] = -v0 / lf * dt

        J[row("v"), col("a")] = -dt

        J[row("cte"), col("x")] = -self.path.slope(x0)
        J[row("cte"), col("y")] = 1.0
        J[row("cte"), col("v")] = -np.sin(epsi0) * dt
        J[row("cte"), col("epsi")] = -v0 * np.cos(epsi0) * dt

        J[row("epsi"), col("psi")] = -1.0
        J[row("epsi"), col("x")] = self.path.heading_derivative(x0)
        J[row("epsi"), col("v")] = -delta / lf * dt
        J[row("epsi"), col("delta")] = -v0 / lf * dt

        return J

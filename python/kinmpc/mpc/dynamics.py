"""
Vehicle Dynamics Model
======================

Kinematic bicycle model used both inside the MPC constraints and for
one-step forward prediction (actuation latency compensation).

State:     (x, y, psi, v, cte, epsi)
Actuation: (delta, a)

    x'   = x + v cos(psi) dt
    y'   = y + v sin(psi) dt
    psi' = psi + v / Lf * delta * dt
    v'   = v + a dt
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union
import numpy as np

from ..exceptions import DimensionError, InvalidInputError
from ..utils.validation import as_vector, check_positive

# Distance between the front axle and the center of gravity (m)
LF = 2.67

STATE_NAMES = ("x", "y", "psi", "v", "cte", "epsi")
ACTUATION_NAMES = ("delta", "a")
N_STATES = len(STATE_NAMES)
N_ACTUATIONS = len(ACTUATION_NAMES)


@dataclass
class VehicleState:
    """
    Vehicle state in the frame of the path coefficients.

    Args:
        x: Position along the local x axis
        y: Position along the local y axis
        psi: Heading (rad)
        v: Speed
        cte: Cross-track error
        epsi: Heading error (rad)

    Example:
        >>> state = VehicleState(x=0.0, y=0.0, psi=0.0, v=10.0)
        >>> state.to_array()
        array([ 0.,  0.,  0., 10.,  0.,  0.])
    """
    x: float = 0.0
    y: float = 0.0
    psi: float = 0.0
    v: float = 0.0
    cte: float = 0.0
    epsi: float = 0.0

    def to_array(self) -> np.ndarray:
        """State as a float array (6,)."""
        return np.array(
            [self.x, self.y, self.psi, self.v, self.cte, self.epsi],
            dtype=np.float64,
        )

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "VehicleState":
        """Build a state from a length-6 sequence."""
        values = as_vector(values, N_STATES, "state")
        return cls(*(float(value) for value in values))


@dataclass
class Actuation:
    """
    Control inputs for one cycle.

    Args:
        delta: Steering angle (rad)
        a: Normalized throttle (positive) / brake (negative)
    """
    delta: float = 0.0
    a: float = 0.0

    def to_array(self) -> np.ndarray:
        """Actuation as a float array (2,)."""
        return np.array([self.delta, self.a], dtype=np.float64)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "Actuation":
        """Build an actuation from a length-2 sequence."""
        values = as_vector(values, N_ACTUATIONS, "actuation")
        return cls(float(values[0]), float(values[1]))

    def __iter__(self):
        yield self.delta
        yield self.a


StateLike = Union[VehicleState, Sequence[float], np.ndarray]
ActuationLike = Union[Actuation, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class KinematicModel:
    """
    Kinematic bicycle model.

    The same instance must serve the optimizer's constraints and any
    external prediction, so the two never disagree on ``lf`` or on the
    steering sign.

    Args:
        lf: Distance from the front axle to the center of gravity

    Example:
        >>> model = KinematicModel()
        >>> model.step([0, 0, 0, 10], [0, 0], dt=0.1)
        array([ 1.,  0.,  0., 10.])
    """
    lf: float = LF

    def __post_init__(self):
        """Validate parameters."""
        check_positive(self.lf, "lf")

    def step(
        self,
        state: StateLike,
        actuation: ActuationLike,
        dt: float,
    ) -> np.ndarray:
        """
        Advance the pose and speed by one time step.

        Args:
            state: (x, y, psi, v) or the full 6-element state
            actuation: (delta, a)
            dt: Time step (seconds)

        Returns:
            Next state with the same length as ``state``. For a 6-element
            state, cte and epsi are carried over unchanged.
        """
        state = _state_vector(state)
        delta, a = _actuation_vector(actuation)

        next_state = state.copy()
        next_state[:4] = self.propagate(*state[:4], delta, a, dt)
        return next_state

    def propagate(self, x, y, psi, v, delta, a, dt: float):
        """
        Kinematic update of (x, y, psi, v); works elementwise on arrays.

        Returns:
            Tuple (x_next, y_next, psi_next, v_next)
        """
        return (
            x + v * np.cos(psi) * dt,
            y + v * np.sin(psi) * dt,
            psi + self.yaw_rate(v, delta) * dt,
            v + a * dt,
        )

    def yaw_rate(self, v, delta):
        """Heading rate v / Lf * delta."""
        return v / self.lf * delta

    def simulate(
        self,
        state: StateLike,
        actuations: np.ndarray,
        dt: float,
    ) -> np.ndarray:
        """
        Roll the model forward over a sequence of actuations.

        Args:
            state: Initial state (4 or 6 elements)
            actuations: Actuation sequence (N, 2)
            dt: Time step

        Returns:
            State trajectory (N+1, len(state)) including the initial state
        """
        state = _state_vector(state)
        actuations = np.asarray(actuations, dtype=np.float64).reshape(-1, N_ACTUATIONS)

        trajectory = np.zeros((len(actuations) + 1, len(state)))
        trajectory[0] = state
        for k, actuation in enumerate(actuations):
            trajectory[k + 1] = self.step(trajectory[k], actuation, dt)
        return trajectory


def predict(
    state: StateLike,
    actuation: ActuationLike,
    dt: float,
    lf: float = LF,
) -> np.ndarray:
    """
    Open-loop one-step projection of ``state`` under ``actuation``.

    Callers use this to compensate for known actuation latency before
    handing the state to the controller.

    Example:
        >>> predict([0, 0, 0, 10], [0, 0], 0.1)
        array([ 1.,  0.,  0., 10.])
    """
    return KinematicModel(lf).step(state, actuation, dt)


def _state_vector(state: StateLike) -> np.ndarray:
    if isinstance(state, VehicleState):
        return state.to_array()
    state = np.asarray(state, dtype=np.float64).ravel()
    if len(state) not in (4, N_STATES):
        raise DimensionError(
            f"state must have 4 or {N_STATES} elements, got {len(state)}"
        )
    if not np.all(np.isfinite(state)):
        raise InvalidInputError("state contains non-finite values")
    return state


def _actuation_vector(actuation: ActuationLike) -> np.ndarray:
    if isinstance(actuation, Actuation):
        return actuation.to_array()
    return as_vector(actuation, N_ACTUATIONS, "actuation")

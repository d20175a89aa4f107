"""
Trajectory Encoding
===================

Structured horizon-indexed trajectories and the flat decision-vector
layout handed to the nonlinear solver.

Flat layout for horizon N:

    [x_0..x_{N-1}, y_0.., psi_0.., v_0.., cte_0.., epsi_0..,
     delta_0..delta_{N-2}, a_0..a_{N-2}]

Actuation blocks are one element shorter than state blocks because no
actuation is applied after the last predicted state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional
import numpy as np

from ..exceptions import DimensionError, InvalidInputError
from .dynamics import (
    ACTUATION_NAMES,
    N_ACTUATIONS,
    N_STATES,
    STATE_NAMES,
    Actuation,
    VehicleState,
)


@dataclass(frozen=True)
class TrajectoryLayout:
    """
    Offsets of each variable kind in the flat decision vector.

    The offsets depend only on the horizon, so the code that seeds initial
    values and bounds and the code that evaluates cost and constraints
    share one instance.

    Args:
        horizon: Number of predicted states N (>= 2)

    Example:
        >>> layout = TrajectoryLayout(11)
        >>> layout.n_vars, layout.delta_start, layout.a_start
        (86, 66, 76)
    """
    horizon: int
    offsets: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        """Validate horizon and compute offsets."""
        if isinstance(self.horizon, bool) or not isinstance(self.horizon, (int, np.integer)):
            raise InvalidInputError(f"horizon must be an integer, got {self.horizon!r}")
        if self.horizon < 2:
            raise InvalidInputError(
                f"horizon must be at least 2 to contain an actuation, got {self.horizon}"
            )

        N = int(self.horizon)
        offsets = {}
        start = 0
        for name in STATE_NAMES:
            offsets[name] = start
            start += N
        for name in ACTUATION_NAMES:
            offsets[name] = start
            start += N - 1
        object.__setattr__(self, "offsets", offsets)

    @property
    def n_vars(self) -> int:
        """Length of the flat decision vector: 6N + 2(N-1)."""
        return N_STATES * self.horizon + N_ACTUATIONS * (self.horizon - 1)

    @property
    def n_constraints(self) -> int:
        """Length of the constraint vector: 6N."""
        return N_STATES * self.horizon

    @property
    def n_state_vars(self) -> int:
        """Number of state entries in the flat vector."""
        return N_STATES * self.horizon

    @property
    def x_start(self) -> int:
        return self.offsets["x"]

    @property
    def y_start(self) -> int:
        return self.offsets["y"]

    @property
    def psi_start(self) -> int:
        return self.offsets["psi"]

    @property
    def v_start(self) -> int:
        return self.offsets["v"]

    @property
    def cte_start(self) -> int:
        return self.offsets["cte"]

    @property
    def epsi_start(self) -> int:
        return self.offsets["epsi"]

    @property
    def delta_start(self) -> int:
        return self.offsets["delta"]

    @property
    def a_start(self) -> int:
        return self.offsets["a"]

    def block(self, name: str) -> slice:
        """Slice of the flat vector holding every value of one kind."""
        start = self.offsets[name]
        length = self.horizon if name in STATE_NAMES else self.horizon - 1
        return slice(start, start + length)

    def initial_indices(self) -> np.ndarray:
        """Flat indices of the six timestep-0 state slots."""
        return np.array([self.offsets[name] for name in STATE_NAMES])

    def zeros(self) -> np.ndarray:
        """A zero-filled flat vector."""
        return np.zeros(self.n_vars)

    def initial_guess(self, state: np.ndarray) -> np.ndarray:
        """Zero-filled flat vector with the initial-state slots populated."""
        state = np.asarray(state, dtype=np.float64).ravel()
        if len(state) != N_STATES:
            raise DimensionError(f"state must have {N_STATES} elements, got {len(state)}")
        z = self.zeros()
        z[self.initial_indices()] = state
        return z

    def pack(self, trajectory: "Trajectory") -> np.ndarray:
        """Flatten a structured trajectory into the solver layout."""
        if trajectory.horizon != self.horizon:
            raise DimensionError(
                f"trajectory horizon {trajectory.horizon} != layout horizon {self.horizon}"
            )
        # Column-major flattening groups values by kind
        return np.concatenate([
            trajectory.states.T.ravel(),
            trajectory.actuations.T.ravel(),
        ])

    def unpack(self, z: np.ndarray) -> "Trajectory":
        """Split a flat solver vector into a structured trajectory."""
        z = np.asarray(z, dtype=np.float64).ravel()
        if len(z) != self.n_vars:
            raise DimensionError(f"vector has {len(z)} elements, expected {self.n_vars}")
        N = self.horizon
        states = z[:self.n_state_vars].reshape(N_STATES, N).T.copy()
        actuations = z[self.n_state_vars:].reshape(N_ACTUATIONS, N - 1).T.copy()
        return Trajectory(states=states, actuations=actuations)


@dataclass
class Trajectory:
    """
    Predicted trajectory indexed by timestep.

    Args:
        states: State trajectory (N, 6), columns (x, y, psi, v, cte, epsi)
        actuations: Actuation sequence (N-1, 2), columns (delta, a)

    Example:
        >>> traj = Trajectory.zeros(horizon=11)
        >>> traj.state(0)
        VehicleState(x=0.0, y=0.0, psi=0.0, v=0.0, cte=0.0, epsi=0.0)
    """
    states: np.ndarray
    actuations: np.ndarray

    def __post_init__(self):
        """Validate shapes."""
        self.states = np.asarray(self.states, dtype=np.float64)
        self.actuations = np.asarray(self.actuations, dtype=np.float64)

        if self.states.ndim != 2 or self.states.shape[1] != N_STATES:
            raise DimensionError(f"states must be (N, {N_STATES}), got {self.states.shape}")
        if self.actuations.ndim != 2 or self.actuations.shape[1] != N_ACTUATIONS:
            raise DimensionError(
                f"actuations must be (N-1, {N_ACTUATIONS}), got {self.actuations.shape}"
            )
        if len(self.actuations) != len(self.states) - 1:
            raise DimensionError(
                f"expected {len(self.states) - 1} actuations for {len(self.states)} "
                f"states, got {len(self.actuations)}"
            )

    @property
    def horizon(self) -> int:
        """Number of predicted states."""
        return len(self.states)

    def state(self, k: int) -> VehicleState:
        """State at timestep k."""
        return VehicleState.from_array(self.states[k])

    def actuation(self, k: int) -> Actuation:
        """Actuation applied between timesteps k and k+1."""
        return Actuation.from_array(self.actuations[k])

    def column(self, name: str) -> np.ndarray:
        """Every value of one variable kind over the horizon."""
        if name in STATE_NAMES:
            return self.states[:, STATE_NAMES.index(name)]
        if name in ACTUATION_NAMES:
            return self.actuations[:, ACTUATION_NAMES.index(name)]
        raise KeyError(name)

    @property
    def xy(self) -> np.ndarray:
        """Predicted positions (N, 2)."""
        return self.states[:, :2].copy()

    @classmethod
    def zeros(
        cls,
        horizon: int,
        initial_state: Optional[np.ndarray] = None,
    ) -> "Trajectory":
        """Zero trajectory, optionally with the first state filled in."""
        if horizon < 2:
            raise InvalidInputError(f"horizon must be at least 2, got {horizon}")
        states = np.zeros((horizon, N_STATES))
        if initial_state is not None:
            states[0] = initial_state
        return cls(states=states, actuations=np.zeros((horizon - 1, N_ACTUATIONS)))

"""
kinmpc Model Predictive Control (MPC)
=====================================

Nonlinear MPC for vehicle path following with a kinematic bicycle model.

Each control cycle optimizes steering and throttle over a short horizon
and applies only the first actuation; the next cycle re-optimizes from
the freshly measured state.

Quick Start
-----------
>>> from kinmpc.mpc import MPCController, MPCConfig, References
>>>
>>> mpc = MPCController(MPCConfig(references=References(v=20.0)))
>>>
>>> # State in the path's frame: x, y, psi, v, cte, epsi
>>> state = [0.0, 0.0, 0.0, 18.0, 0.4, -0.05]
>>> coeffs = [0.4, 0.02, 0.0, 0.0]     # y = f(x), low-to-high degree
>>> result = mpc.solve(state, coeffs)
>>> delta, a = result.actuation

Latency Compensation
--------------------
>>> # Project the state forward by the known actuation delay
>>> state = mpc.predict(state, previous_actuation, dt=0.1)
>>> result = mpc.solve(state, coeffs)

Classes
-------
MPCController
    Builds bounds, calls the solver, returns the first actuation
MPCConfig
    Horizon, time step, limits, weights, references and solver budget
KinematicModel
    Kinematic bicycle model shared by the constraints and ``predict``
TrajectoryLayout / Trajectory
    Flat decision-vector layout and its structured counterpart
TrackingProblem
    Cost and constraint evaluator with analytic derivatives
PathPolynomial
    Reference path y = f(x)

Theory
------
Each cycle solves:

    minimize    sum w_cte (cte_t - cte_ref)^2 + w_epsi (epsi_t - epsi_ref)^2
                  + w_v (v_t - v_ref)^2
                + sum w_delta delta_t^2 + w_a a_t^2
                + sum w_ddelta (delta_{t+1} - delta_t)^2 + w_da (a_{t+1} - a_t)^2
    subject to  state_{t+1} = f(state_t, actuation_t)
                |delta_t| <= max_steer,  a_min <= a_t <= a_max
                state_0 = state_current

See Also
--------
- Rajamani (2012): "Vehicle Dynamics and Control"
- Kong et al. (2015): "Kinematic and Dynamic Vehicle Models for
  Autonomous Driving Control Design"
"""

from .dynamics import Actuation, KinematicModel, VehicleState, predict
from .trajectory import Trajectory, TrajectoryLayout
from .path import PathPolynomial
from .cost import CostWeights, References, TrackingProblem, TrajectoryCost
from .controller import MPCConfig, MPCController, MPCResult

__all__ = [
    # Controller
    "MPCController",
    "MPCConfig",
    "MPCResult",
    # Model
    "KinematicModel",
    "VehicleState",
    "Actuation",
    "predict",
    # Encoding
    "Trajectory",
    "TrajectoryLayout",
    # Cost
    "TrackingProblem",
    "TrajectoryCost",
    "CostWeights",
    "References",
    # Path
    "PathPolynomial",
]

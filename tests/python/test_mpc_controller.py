"""
Tests for the MPC Controller.

Tests covering:
1. Problem assembly (bounds, initial guess, solver parameters)
2. Failure reporting
3. Input validation
4. Solving with SLSQP
"""

import numpy as np
import pytest


class TestMPCConfig:
    """Test MPCConfig."""

    def test_defaults(self):
        """Defaults match the tuned controller."""
        from kinmpc.mpc import MPCConfig

        config = MPCConfig()

        assert config.horizon == 11
        assert config.dt == pytest.approx(0.1)
        assert config.lf == pytest.approx(2.67)
        assert config.max_steer == pytest.approx(0.436332)
        assert (config.a_min, config.a_max) == (-1.0, 1.0)
        assert config.references.v == pytest.approx(40.0)

    def test_replace(self):
        """replace() copies with changes and keeps the original."""
        from kinmpc.mpc import MPCConfig

        config = MPCConfig()
        longer = config.replace(horizon=20)

        assert longer.horizon == 20
        assert config.horizon == 11
        assert longer.dt == config.dt

    def test_frozen(self):
        """Configuration cannot change under a running controller."""
        import dataclasses

        from kinmpc.mpc import MPCConfig

        with pytest.raises(dataclasses.FrozenInstanceError):
            MPCConfig().horizon = 5

    @pytest.mark.parametrize("horizon", [0, 1])
    def test_short_horizon(self, horizon):
        """Error on a horizon without room for an actuation."""
        from kinmpc import InvalidInputError
        from kinmpc.mpc import MPCConfig

        with pytest.raises(InvalidInputError):
            MPCConfig(horizon=horizon)

    @pytest.mark.parametrize("field", ["dt", "lf", "tolerance", "time_limit"])
    def test_non_positive_rejected(self, field):
        """Error on non-positive scalar parameters."""
        from kinmpc import InvalidInputError
        from kinmpc.mpc import MPCConfig

        with pytest.raises(InvalidInputError, match=field):
            MPCConfig(**{field: 0.0})


class TestProblemAssembly:
    """Test what the controller hands to the solver."""

    def test_variable_bounds(self, mpc_config, recording_solver, straight_path, straight_state):
        """States are unbounded, actuators limited."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)
        mpc.solve(straight_state, straight_path)

        call = recording_solver.calls[0]
        layout = mpc.layout
        lb, ub = call["lb"], call["ub"]

        assert lb.shape == (layout.n_vars,)
        np.testing.assert_allclose(lb[:layout.delta_start], -1.0e19)
        np.testing.assert_allclose(ub[:layout.delta_start], 1.0e19)
        np.testing.assert_allclose(lb[layout.block("delta")], -0.436332)
        np.testing.assert_allclose(ub[layout.block("delta")], 0.436332)
        np.testing.assert_allclose(lb[layout.block("a")], -1.0)
        np.testing.assert_allclose(ub[layout.block("a")], 1.0)

    def test_constraint_bounds_pin_initial_state(self, mpc_config, recording_solver,
                                                 curved_path, curved_state):
        """Initial rows are pinned to the measured state, dynamics rows to zero."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)
        mpc.solve(curved_state, curved_path)

        call = recording_solver.calls[0]
        init = mpc.layout.initial_indices()
        dynamics = np.ones(mpc.layout.n_constraints, dtype=bool)
        dynamics[init] = False

        np.testing.assert_allclose(call["constraint_l"][init], curved_state)
        np.testing.assert_allclose(call["constraint_u"][init], curved_state)
        assert (call["constraint_l"][dynamics] == 0).all()
        assert (call["constraint_u"][dynamics] == 0).all()

    def test_initial_guess(self, mpc_config, recording_solver, curved_path, curved_state):
        """Initial guess is zero apart from the measured state."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)
        mpc.solve(curved_state, curved_path)

        x0 = recording_solver.calls[0]["x0"]
        init = mpc.layout.initial_indices()
        rest = np.ones(mpc.layout.n_vars, dtype=bool)
        rest[init] = False

        np.testing.assert_allclose(x0[init], curved_state)
        assert (x0[rest] == 0).all()

    def test_solver_parameters(self, mpc_config, recording_solver, straight_path, straight_state):
        """Time budget and iteration limits are passed through."""
        from kinmpc import MPCController

        config = mpc_config.replace(time_limit=0.25, max_iterations=42, verbose=True)
        MPCController(config, solver=recording_solver).solve(straight_state, straight_path)

        call = recording_solver.calls[0]

        assert call["time_limit"] == 0.25
        assert call["params"]["max_iterations"] == 42
        assert call["params"]["verbose"] is True

    def test_returns_first_actuation(self, mpc_config, recording_solver,
                                     straight_path, straight_state):
        """The result exposes the first actuation of the solution."""
        from kinmpc import Actuation, MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)
        result = mpc.solve(straight_state, straight_path)

        assert result.actuation == Actuation(delta=0.1, a=-0.2)
        np.testing.assert_allclose(result.optimal_control, [0.1, -0.2])
        assert result.cost == 1.0
        assert result.iterations == 3
        assert result.is_optimal

    def test_control_shortcut(self, mpc_config, recording_solver, straight_path, straight_state):
        """control() returns only the actuation."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)
        delta, a = mpc.control(straight_state, straight_path)

        assert (delta, a) == (0.1, -0.2)

    def test_accepts_vehicle_state(self, mpc_config, recording_solver, straight_path):
        """VehicleState instances are accepted as the measured state."""
        from kinmpc import MPCController, VehicleState

        mpc = MPCController(mpc_config, solver=recording_solver)
        mpc.solve(VehicleState(v=10.0), straight_path)

        x0 = recording_solver.calls[0]["x0"]
        assert x0[mpc.layout.v_start] == 10.0

    def test_problem_uses_config(self, mpc_config, recording_solver, curved_path, curved_state):
        """Built problem carries the configured weights and references."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)
        mpc.solve(curved_state, curved_path)

        problem = recording_solver.calls[0]["problem"]
        assert problem.references.v == 10.0
        assert problem.weights == mpc_config.weights
        np.testing.assert_allclose(problem.path.coeffs, curved_path)


class TestFailures:
    """Test that non-successful solves raise."""

    @pytest.mark.parametrize("status_name, error_name", [
        ("TIME_LIMIT", "TimeLimitError"),
        ("PRIMAL_INFEASIBLE", "InfeasibleError"),
        ("NUMERICAL_ERROR", "NumericalError"),
        ("MAX_ITERATIONS", "SolveError"),
    ])
    def test_status_maps_to_error(self, mpc_config, recording_solver,
                                  straight_path, straight_state, status_name, error_name):
        """Each failure status raises its own error with the result attached."""
        import kinmpc
        from kinmpc import MPCController, Status

        recording_solver.status = Status[status_name]
        error = getattr(kinmpc, error_name)
        mpc = MPCController(mpc_config, solver=recording_solver)

        with pytest.raises(error) as info:
            mpc.solve(straight_state, straight_path)

        assert info.value.result.status == Status[status_name]
        assert status_name.lower() in str(info.value)

    def test_failures_are_solve_errors(self, mpc_config, recording_solver,
                                       straight_path, straight_state):
        """Callers can catch every failure as SolveError."""
        from kinmpc import MPCController, SolveError, Status

        recording_solver.status = Status.TIME_LIMIT
        mpc = MPCController(mpc_config, solver=recording_solver)

        with pytest.raises(SolveError):
            mpc.solve(straight_state, straight_path)

    def test_failure_logged(self, mpc_config, recording_solver, straight_path,
                            straight_state, caplog):
        """A failed solve is logged as a warning."""
        import logging

        from kinmpc import MPCController, SolveError, Status

        recording_solver.status = Status.NUMERICAL_ERROR
        mpc = MPCController(mpc_config, solver=recording_solver)

        with caplog.at_level(logging.WARNING, logger="kinmpc"):
            with pytest.raises(SolveError):
                mpc.solve(straight_state, straight_path)

        assert "numerical_error" in caplog.text


class TestInputValidation:
    """Test malformed inputs are rejected before solving."""

    def test_short_state(self, mpc_config, recording_solver, straight_path):
        """Error on a state without tracking errors."""
        from kinmpc import DimensionError, MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)

        with pytest.raises(DimensionError, match="6 elements"):
            mpc.solve([0.0, 0.0, 0.0, 10.0], straight_path)
        assert recording_solver.calls == []

    def test_nan_state(self, mpc_config, recording_solver, straight_path):
        """Error on a NaN state."""
        from kinmpc import InvalidInputError, MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)

        with pytest.raises(InvalidInputError):
            mpc.solve([0.0, np.nan, 0.0, 10.0, 0.0, 0.0], straight_path)
        assert recording_solver.calls == []

    def test_wrong_polynomial_order(self, mpc_config, recording_solver, straight_state):
        """Error when the coefficients do not match poly_order."""
        from kinmpc import DimensionError, MPCController

        mpc = MPCController(mpc_config, solver=recording_solver)

        with pytest.raises(DimensionError, match="expected 4 path coefficients, got 3"):
            mpc.solve(straight_state, [0.0, 0.0, 0.0])
        assert recording_solver.calls == []

    def test_any_polynomial_order(self, mpc_config, recording_solver, straight_state):
        """poly_order=None accepts any non-empty polynomial."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config.replace(poly_order=None), solver=recording_solver)
        mpc.solve(straight_state, [0.5, 0.1])

        assert len(recording_solver.calls) == 1


class TestSolve:
    """Test solving with the default SLSQP solver."""

    def test_on_path_keeps_course(self, mpc_config, straight_path, straight_state):
        """On the path at reference speed, the best command is no command."""
        from kinmpc import MPCController

        result = MPCController(mpc_config).solve(straight_state, straight_path)

        assert result.is_optimal
        assert result.actuation.delta == pytest.approx(0.0, abs=1e-2)
        assert result.actuation.a == pytest.approx(0.0, abs=1e-2)
        assert result.cost == pytest.approx(0.0, abs=1e-3)

    def test_initial_state_pinned(self, mpc_config, curved_path, curved_state):
        """The predicted trajectory starts at the measured state."""
        from kinmpc import MPCController

        result = MPCController(mpc_config).solve(curved_state, curved_path)

        np.testing.assert_allclose(result.predicted_trajectory[0], curved_state, atol=1e-6)

    def test_bounds_respected(self, mpc_config, curved_path, curved_state):
        """Every predicted actuation lies within its limits."""
        from kinmpc import MPCController

        config = mpc_config.replace(max_steer=0.05, a_max=0.3)
        result = MPCController(config).solve(curved_state, curved_path)
        actuations = result.trajectory.actuations

        assert np.all(np.abs(actuations[:, 0]) <= 0.05 + 1e-8)
        assert np.all(actuations[:, 1] <= 0.3 + 1e-8)
        assert np.all(actuations[:, 1] >= -1.0 - 1e-8)

    def test_predicted_trajectory_follows_model(self, mpc_config, curved_path, curved_state):
        """Consecutive predicted poses satisfy the kinematic model."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config)
        result = mpc.solve(curved_state, curved_path)
        states = result.predicted_trajectory
        actuations = result.trajectory.actuations

        for t in range(mpc.horizon - 1):
            expected = mpc.predict(states[t, :4], actuations[t])
            np.testing.assert_allclose(states[t + 1, :4], expected, atol=1e-4)

    def test_mirrored_path_mirrors_steering(self, mpc_config, curved_path, curved_state):
        """Reflecting path and state about the x axis negates steering only."""
        from kinmpc import MPCController

        mirror = np.array([1.0, -1.0, -1.0, 1.0, -1.0, -1.0])
        mpc = MPCController(mpc_config)

        left = mpc.solve(curved_state, curved_path)
        right = mpc.solve(curved_state * mirror, -curved_path)

        assert right.actuation.delta == pytest.approx(-left.actuation.delta, abs=1e-6)
        assert right.actuation.a == pytest.approx(left.actuation.a, abs=1e-6)

    def test_result_views(self, mpc_config, curved_path, curved_state):
        """Result exposes trajectory views for display."""
        from kinmpc import MPCController, Status

        result = MPCController(mpc_config).solve(curved_state, curved_path)

        assert result.status == Status.OPTIMAL
        assert result.predicted_trajectory.shape == (11, 6)
        assert result.predicted_xy.shape == (11, 2)
        assert result.solve_time > 0
        assert result.iterations > 0
        assert "MPCResult" in repr(result)

    def test_negative_steering_limit_infeasible(self, mpc_config, straight_path, straight_state):
        """Contradictory steering limits raise InfeasibleError."""
        from kinmpc import InfeasibleError, MPCController

        mpc = MPCController(mpc_config.replace(max_steer=-0.1))

        with pytest.raises(InfeasibleError):
            mpc.solve(straight_state, straight_path)

    def test_inverted_acceleration_limits_infeasible(self, mpc_config, straight_path,
                                                     straight_state):
        """a_min > a_max raises InfeasibleError."""
        from kinmpc import InfeasibleError, MPCController

        mpc = MPCController(mpc_config.replace(a_min=1.0, a_max=-1.0))

        with pytest.raises(InfeasibleError) as info:
            mpc.solve(straight_state, straight_path)

        assert info.value.result.iterations == 0

    def test_successive_solves_independent(self, mpc_config, curved_path, curved_state):
        """The controller keeps no state between cycles."""
        from kinmpc import MPCController

        mpc = MPCController(mpc_config)
        first = mpc.solve(curved_state, curved_path)
        mpc.solve(curved_state * 0.5, curved_path)
        again = mpc.solve(curved_state, curved_path)

        assert again.actuation == first.actuation

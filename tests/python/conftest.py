"""
pytest configuration and fixtures for kinmpc tests.
"""

import pytest
import numpy as np


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def straight_path():
    """Path coefficients for f(x) = 0 (straight ahead)."""
    return np.array([0.0, 0.0, 0.0, 0.0])


@pytest.fixture
def curved_path():
    """
    Gently curving cubic path to the left of the vehicle.

    f(x) = 0.5 + 0.05 x + 0.002 x^2 - 0.00005 x^3
    """
    return np.array([0.5, 0.05, 0.002, -0.00005])


@pytest.fixture
def mpc_config():
    """
    Controller configuration with a generous time budget.

    The solve-time budget is relaxed so slow CI machines do not turn
    correctness tests into time-limit failures.
    """
    from kinmpc.mpc import MPCConfig, References

    return MPCConfig(
        references=References(cte=0.0, epsi=0.0, v=10.0),
        time_limit=5.0,
        max_iterations=200,
    )


@pytest.fixture
def straight_state():
    """On-path state at reference speed: x, y, psi, v, cte, epsi."""
    return np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0])


@pytest.fixture
def curved_state(curved_path):
    """State at the origin with errors consistent with ``curved_path``."""
    from kinmpc.mpc import PathPolynomial

    path = PathPolynomial(curved_path)
    cte, epsi = path.errors(0.0, 0.0, 0.0)
    return np.array([0.0, 0.0, 0.0, 8.0, cte, epsi])


@pytest.fixture
def recording_solver():
    """
    Stub solver that records its arguments and returns a fixed solution.

    The returned trajectory is the initial guess with delta_0 = 0.1 and
    a_0 = -0.2 written into the first actuation slots.
    """
    from kinmpc.result import NLPResult, Status

    class RecordingSolver:
        def __init__(self):
            self.calls = []
            self.status = Status.OPTIMAL

        def __call__(self, problem, x0, lb, ub, constraint_l, constraint_u,
                     time_limit=None, params=None):
            self.calls.append({
                "problem": problem,
                "x0": x0.copy(),
                "lb": lb.copy(),
                "ub": ub.copy(),
                "constraint_l": constraint_l.copy(),
                "constraint_u": constraint_u.copy(),
                "time_limit": time_limit,
                "params": params,
            })
            x = x0.copy()
            x[problem.layout.delta_start] = 0.1
            x[problem.layout.a_start] = -0.2
            return NLPResult(
                status=self.status,
                objective=1.0,
                x=x,
                iterations=3,
                solve_time=0.001,
            )

    return RecordingSolver()


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")

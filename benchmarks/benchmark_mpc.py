#!/usr/bin/env python3
"""
kinmpc Benchmark: Solve time per control cycle
"""

import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'python'))

import time
import numpy as np

import kinmpc
from kinmpc import MPCConfig, MPCController, PathPolynomial, References, SolveError

print(f"kinmpc version: {kinmpc.__version__}")
print()

# Gently curving road ahead of the vehicle
COEFFS = np.array([0.5, 0.05, 0.002, -0.00005])


def random_states(n, seed=42):
    """Measured states scattered around the path."""
    rng = np.random.default_rng(seed)
    path = PathPolynomial(COEFFS)
    states = []
    for _ in range(n):
        x = rng.uniform(-2.0, 2.0)
        y = path(x) + rng.normal(scale=0.5)
        psi = path.heading(x) + rng.normal(scale=0.05)
        v = rng.uniform(5.0, 15.0)
        cte, epsi = path.errors(x, y, psi)
        states.append([x, y, psi, v, cte, epsi])
    return np.array(states)


def benchmark_single(config, states):
    """Time repeated solves with one configuration."""
    mpc = MPCController(config)
    times = []
    iterations = []
    failures = 0

    for state in states:
        start = time.perf_counter()
        try:
            result = mpc.solve(state, COEFFS)
            iterations.append(result.iterations)
        except SolveError:
            failures += 1
        times.append(time.perf_counter() - start)

    times = np.array(times) * 1000
    return {
        'mean': times.mean(),
        'p95': np.percentile(times, 95),
        'max': times.max(),
        'iterations': np.mean(iterations) if iterations else float('nan'),
        'failures': failures,
    }


def benchmark_horizon():
    """Benchmark across different horizon lengths."""
    print("=" * 70)
    print("Horizon Scaling Benchmark")
    print("=" * 70)

    states = random_states(20)
    base = MPCConfig(references=References(v=10.0), time_limit=None)

    print(f"{'N':>6} {'vars':>6} {'mean (ms)':>10} {'p95 (ms)':>10} "
          f"{'max (ms)':>10} {'iters':>7} {'failed':>7}")
    print("-" * 70)

    for horizon in (6, 11, 16, 21):
        config = base.replace(horizon=horizon)
        res = benchmark_single(config, states)
        n_vars = MPCController(config).layout.n_vars
        print(f"{horizon:>6} {n_vars:>6} {res['mean']:>10.1f} {res['p95']:>10.1f} "
              f"{res['max']:>10.1f} {res['iterations']:>7.1f} {res['failures']:>7}")


def benchmark_closed_loop():
    """Benchmark a closed-loop run with the default time budget."""
    print("\n" + "=" * 70)
    print("Closed-Loop Benchmark")
    print("=" * 70)

    mpc = MPCController(MPCConfig(references=References(v=10.0)))
    n_steps = 50

    start = time.perf_counter()
    sim = mpc.simulate([0.0, 1.0, 0.0, 10.0], COEFFS, n_steps=n_steps, latency=0.1)
    elapsed = time.perf_counter() - start

    print(f"  Steps:             {n_steps}")
    print(f"  Time per step:     {elapsed / n_steps * 1000:.1f} ms")
    print(f"  Failed solves:     {int(sim['failed'].sum())}")
    print(f"  Final |cte|:       {abs(sim['cte'][-1]):.4f}")
    print(f"  Max |delta|:       {np.abs(sim['u'][:, 0]).max():.4f}")


if __name__ == "__main__":
    benchmark_horizon()
    benchmark_closed_loop()

import numpy as np
import pytest

from cable_tension_planner import PlannerConfig, SolverDiagnostics, TensionPlanner


class StubBackend:
    """Returns canned solutions and records every call."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def solve(self, Q, b, A, Al, Au, lb, ub, x0, scale):
        self.calls.append(dict(Q=Q, b=b, A=A, Al=Al, Au=Au, lb=lb, ub=ub, x0=x0, scale=scale))
        x, found = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        x = np.asarray(x, dtype=float)
        return x.copy(), SolverDiagnostics(found, "solved" if found else "failed", bool(np.isnan(x).any()), "stub")


@pytest.fixture
def planner():
    return TensionPlanner(PlannerConfig())


@pytest.fixture
def lateral_columns():
    # cables 0, 1 pull along +Y, cables 2, 3 along -Y
    F = np.array([[0.0,  1.0, 0.0],
                  [0.0,  1.0, 0.0],
                  [0.0, -1.0, 0.0],
                  [0.0, -1.0, 0.0]])
    T = np.zeros((4, 3))
    return F, T


@pytest.fixture
def pelvis_columns():
    # every cable pulls up (z) and to one side (y)
    F = np.array([[0.0,  0.6, 0.8],
                  [0.0,  0.6, 0.8],
                  [0.0, -0.6, 0.8],
                  [0.0, -0.6, 0.8]])
    T = np.array([[ 0.1, 0.0, 0.0],
                  [-0.1, 0.0, 0.0],
                  [ 0.1, 0.0, 0.0],
                  [-0.1, 0.0, 0.0]])
    return F, T

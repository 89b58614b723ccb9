import numpy as np
import pytest

from cable_tension_planner import CvxpyBackend, PlannerConfig, QpSolversBackend
from cable_tension_planner.utils.qp_backend import make_backend, prune_trivial_rows, split_rows


def test_split_rows_separates_equalities_from_bands():
    A = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    Al = np.array([2.0, -1.0, -np.inf])
    Au = np.array([2.0, 1.0, 5.0])

    A_eq, b_eq, G, h = split_rows(A, Al, Au)

    np.testing.assert_array_equal(A_eq, [[1.0, 0.0]])
    np.testing.assert_array_equal(b_eq, [2.0])
    np.testing.assert_array_equal(G, [[0.0, 1.0], [1.0, 1.0], [-0.0, -1.0]])
    np.testing.assert_array_equal(h, [1.0, 5.0, 1.0])


def test_zero_rows_with_zero_target_are_dropped():
    A = np.array([[0.0, 0.0], [1.0, -1.0], [0.0, 0.0]])
    A2, Al, Au = prune_trivial_rows(A, np.array([0.0, 3.0, 1.0]), np.array([0.0, 3.0, 1.0]))

    # the last zero row asks for 0 = 1 and must stay so the solver reports it
    np.testing.assert_array_equal(A2, [[1.0, -1.0], [0.0, 0.0]])
    np.testing.assert_array_equal(Al, [3.0, 1.0])


BACKENDS = [
    pytest.param(lambda: QpSolversBackend("osqp", **PlannerConfig().solver_options), id="qpsolvers-osqp"),
    pytest.param(lambda: CvxpyBackend("OSQP", **PlannerConfig().solver_options), id="cvxpy-osqp"),
]


@pytest.mark.parametrize("make", BACKENDS)
def test_equality_and_box_bounds_are_respected(make):
    backend = make()
    Q = 2.0 * np.eye(3)
    b = -np.array([15.0, 15.0, 15.0])
    A = np.array([[1.0, 1.0, -1.0]])

    x, diagnostics = backend.solve(Q, b, A, [40.0], [40.0], np.full(3, 15.0), np.full(3, 1000.0),
                                   np.full(3, 15.0), np.full(3, 50.0))

    assert diagnostics.found and not diagnostics.degraded
    assert A @ x == pytest.approx([40.0], abs=1e-3)
    assert np.all(x >= 15.0 - 1e-4)


@pytest.mark.parametrize("make", BACKENDS)
def test_unconstrained_optimum_solves_stationarity(make):
    # 1/2 x^T Q x + b^T x is minimal at x = -Q^-1 b
    x, diagnostics = make().solve(2.0 * np.eye(2), -np.array([60.0, 80.0]), np.zeros((0, 2)), [], [],
                                  np.full(2, 1.0), np.full(2, 1000.0), np.full(2, 10.0), np.full(2, 50.0))

    assert diagnostics.found
    assert x == pytest.approx([30.0, 40.0], abs=1e-3)


def test_infeasible_problem_is_reported_not_raised():
    backend = QpSolversBackend("osqp", **PlannerConfig().solver_options)
    A = np.array([[1.0, 1.0]])

    x, diagnostics = backend.solve(2.0 * np.eye(2), np.zeros(2), A, [10.0], [10.0],
                                   np.full(2, 15.0), np.full(2, 1000.0), np.full(2, 15.0), np.full(2, 50.0))

    assert not diagnostics.found
    assert diagnostics.degraded
    assert x.shape == (2,)


def test_make_backend_picks_from_config():
    assert isinstance(make_backend(PlannerConfig()), QpSolversBackend)
    backend = make_backend(PlannerConfig(solver="cvxpy:SCS"))
    assert isinstance(backend, CvxpyBackend) and backend.solver == "SCS"


def _equality_problem():
    return dict(Q=2.0 * np.eye(3), b=-np.full(3, 15.0), A=np.array([[1.0, 1.0, -1.0]]),
                Al=np.array([40.0]), Au=np.array([40.0]), lb=np.full(3, 15.0), ub=np.full(3, 1000.0),
                x0=np.full(3, 15.0), scale=np.full(3, 50.0))


@pytest.mark.parametrize("make", BACKENDS)
def test_nan_target_is_a_failed_solve(make):
    data = _equality_problem()
    data["Al"] = data["Au"] = np.array([np.nan])

    x, diagnostics = make().solve(**data)

    assert not diagnostics.found
    assert diagnostics.degraded and diagnostics.status == "invalid data"
    assert np.isnan(x).all() and x.shape == (3,)


@pytest.mark.parametrize("make", BACKENDS)
@pytest.mark.parametrize("field, index", [("A", (0, 1)), ("b", (2,)), ("x0", (0,))])
def test_non_finite_problem_data_is_a_failed_solve(make, field, index):
    data = _equality_problem()
    data[field] = np.array(data[field], dtype=float)
    data[field][index] = np.nan

    x, diagnostics = make().solve(**data)

    assert not diagnostics.found and diagnostics.degraded
    assert np.isnan(x).all()


def test_backend_exceptions_are_reported_not_raised(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("workspace allocation failed")

    monkeypatch.setattr("cable_tension_planner.utils.qp_backend.solve_problem", broken)
    x, diagnostics = QpSolversBackend("osqp").solve(**_equality_problem())

    assert not diagnostics.found and diagnostics.status == "error"
    assert np.isnan(x).all()


def test_cvxpy_value_errors_are_reported_not_raised(monkeypatch):
    def broken(self, *args, **kwargs):
        raise ValueError("Problem data contains NaN or Inf")

    monkeypatch.setattr("cvxpy.Problem.solve", broken)
    x, diagnostics = CvxpyBackend("OSQP").solve(**_equality_problem())

    assert not diagnostics.found and diagnostics.status == "error"
    assert np.isnan(x).all()

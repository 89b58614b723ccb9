"""
Bounded QP backends for the tension allocation.

Every backend solves

    min  1/2 x^T Q x + b^T x
    s.t. Al <= A x <= Au,  lb <= x <= ub

from the warm start x0, and applies the scale hints through the change of
variables x = diag(scale) y. Failures are reported through the returned
diagnostics, never raised.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import cvxpy as cp
import numpy as np
from qpsolvers import Problem, solve_problem
from scipy.sparse import csc_matrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverDiagnostics:
    found: bool
    status: str
    contains_nan: bool = False
    solver: Optional[str] = None

    @property
    def degraded(self):
        return (not self.found) or self.contains_nan


class BoundedQPSolver(Protocol):

    def solve(self, Q, b, A, Al, Au, lb, ub, x0, scale) -> Tuple[np.ndarray, SolverDiagnostics]:
        ...


def _scaled(Q, b, A, Al, Au, lb, ub, x0, scale):
    s = np.asarray(scale, dtype=float).reshape(-1)
    if np.any(s <= 0):
        raise ValueError("scale hints must be positive")

    Q = np.asarray(Q, dtype=float)
    if Q.ndim == 1:
        Q = np.diag(Q)
    A = np.asarray(A, dtype=float).reshape((-1, s.shape[0]))

    Qy = Q * np.outer(s, s)
    by = np.asarray(b, dtype=float) * s
    Ay = A * s
    return (Qy, by, Ay, np.asarray(Al, dtype=float), np.asarray(Au, dtype=float),
            np.asarray(lb, dtype=float) / s, np.asarray(ub, dtype=float) / s,
            np.asarray(x0, dtype=float) / s, s)


def invalid_data(Q, b, A, Al, Au, lb, ub, x0):
    """Names of the inputs holding NaN, or non-finite values where only finite ones make sense."""
    named = dict(Q=Q, b=b, A=A, Al=Al, Au=Au, lb=lb, ub=ub, x0=x0)
    bad = [name for name, v in named.items() if np.isnan(np.asarray(v, dtype=float)).any()]
    bad += [name for name in ("Q", "b", "A", "x0")
            if name not in bad and not np.isfinite(np.asarray(named[name], dtype=float)).all()]
    return bad


def _rejected(n, bad, solver):
    logger.warning(f"QP data is not finite in {', '.join(bad)}, solver {solver} not called")
    return np.full(n, np.nan), SolverDiagnostics(False, "invalid data", True, solver)


def prune_trivial_rows(A, Al, Au):
    # all-zero rows whose band contains 0 constrain nothing
    keep = ~((np.abs(A).sum(axis=1) == 0) & (Al <= 0) & (Au >= 0))
    return A[keep], Al[keep], Au[keep]


def split_rows(A, Al, Au):
    """Splits Al <= A x <= Au into equalities A_eq x = b_eq and G x <= h."""
    eq = Al == Au
    A_eq, b_eq = A[eq], Al[eq]

    G, h = [], []
    upper = ~eq & np.isfinite(Au)
    lower = ~eq & np.isfinite(Al)
    if upper.any():
        G.append(A[upper])
        h.append(Au[upper])
    if lower.any():
        G.append(-A[lower])
        h.append(-Al[lower])

    G = np.vstack(G) if len(G) else np.zeros((0, A.shape[1]))
    h = np.hstack(h) if len(h) else np.zeros(0)
    return A_eq, b_eq, G, h


class QpSolversBackend:
    """Dispatches to any solver known to qpsolvers (osqp by default)."""

    def __init__(self, solver="osqp", **options):
        self.solver = solver
        self.options = options

    def solve(self, Q, b, A, Al, Au, lb, ub, x0, scale):
        bad = invalid_data(Q, b, A, Al, Au, lb, ub, x0)
        if bad:
            return _rejected(np.asarray(scale).reshape(-1).shape[0], bad, self.solver)

        Qy, by, Ay, Al, Au, lby, uby, y0, s = _scaled(Q, b, A, Al, Au, lb, ub, x0, scale)
        Ay, Al, Au = prune_trivial_rows(Ay, Al, Au)
        A_eq, b_eq, G, h = split_rows(Ay, Al, Au)

        problem = Problem(
            csc_matrix(Qy), by,
            G=csc_matrix(G) if G.shape[0] else None,
            h=h if G.shape[0] else None,
            A=csc_matrix(A_eq) if A_eq.shape[0] else None,
            b=b_eq if A_eq.shape[0] else None,
            lb=lby, ub=uby)

        n = s.shape[0]
        try:
            solution = solve_problem(problem, solver=self.solver, initvals=y0, verbose=False, **self.options)
        except Exception as e:
            # osqp raises its own exception types on bad workspaces
            logger.error(f"QP backend {self.solver} raised: {e}")
            return np.full(n, np.nan), SolverDiagnostics(False, "error", True, self.solver)

        found = bool(solution.found)
        if solution.x is None:
            x = np.full(n, np.nan)
        else:
            x = np.asarray(solution.x, dtype=float).reshape(-1) * s

        status = "solved" if found else "failed"
        return x, SolverDiagnostics(found, status, bool(np.isnan(x).any()), self.solver)


class CvxpyBackend:
    """Same contract through a cvxpy problem, solved by OSQP unless told otherwise."""

    def __init__(self, solver="OSQP", **options):
        self.solver = solver
        self.options = options

    def solve(self, Q, b, A, Al, Au, lb, ub, x0, scale):
        bad = invalid_data(Q, b, A, Al, Au, lb, ub, x0)
        if bad:
            return _rejected(np.asarray(scale).reshape(-1).shape[0], bad, self.solver)

        Qy, by, Ay, Al, Au, lby, uby, y0, s = _scaled(Q, b, A, Al, Au, lb, ub, x0, scale)
        Ay, Al, Au = prune_trivial_rows(Ay, Al, Au)
        A_eq, b_eq, G, h = split_rows(Ay, Al, Au)

        n = s.shape[0]
        y = cp.Variable(n)
        y.value = y0

        objective = cp.Minimize(0.5 * cp.quad_form(y, cp.psd_wrap(Qy)) + by @ y)
        constraints = [y >= lby, y <= uby]
        if A_eq.shape[0]:
            constraints.append(A_eq @ y == b_eq)
        if G.shape[0]:
            constraints.append(G @ y <= h)

        prob = cp.Problem(objective, constraints)
        try:
            prob.solve(solver=self.solver, warm_start=True, **self.options)
        except (cp.error.SolverError, ValueError) as e:
            logger.error(f"cvxpy solver {self.solver} raised: {e}")
            return np.full(n, np.nan), SolverDiagnostics(False, "error", True, self.solver)

        found = prob.status in (cp.OPTIMAL, cp.OPTIMAL_INACCURATE)
        if y.value is None or not found:
            x = np.full(n, np.nan)
        else:
            x = np.asarray(y.value, dtype=float).reshape(-1) * s

        return x, SolverDiagnostics(found, str(prob.status), bool(np.isnan(x).any()), self.solver)


def make_backend(config):
    if config.solver.lower().startswith("cvxpy"):
        # "cvxpy" or "cvxpy:SCS"
        _, _, inner = config.solver.partition(":")
        inner = inner or "OSQP"
        # tolerances in solver_options are OSQP settings
        options = config.solver_options if inner.upper() == "OSQP" else {}
        return CvxpyBackend(inner, **options)
    return QpSolversBackend(config.solver, **config.solver_options)


def solve_tension_qp(problem, backend):
    return backend.solve(problem.Q, problem.linear, problem.A, problem.lower, problem.upper,
                         problem.lb, problem.ub, problem.x0, problem.scale)

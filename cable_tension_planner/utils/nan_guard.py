"""
Warm-start sanitation and NaN diagnostics for the tension solver.

A NaN in the previous tensions poisons both the initial guess and the
smoothness target, so the whole vector is replaced. A NaN in a solution is
only reported: the caller decides whether the output may reach the motors.
"""
import logging

import numpy as np

from cable_tension_planner.errors import ConfigurationError

logger = logging.getLogger(__name__)


def sanitize_warm_start(previous_tensions, minimum_tension, n_cables=None):
    t_prev = np.asarray(previous_tensions, dtype=float).reshape(-1)

    if n_cables is not None and t_prev.shape[0] != n_cables:
        raise ConfigurationError(
            f"previous tensions has {t_prev.shape[0]} entries, structure matrix has {n_cables} cables")

    if np.isnan(t_prev).any():
        logger.warning(f"Previous tensions {t_prev} contain NaN, resetting all cables to {minimum_tension}")
        return np.full(t_prev.shape, float(minimum_tension))

    return t_prev.copy()


def contains_nan(x):
    return bool(np.isnan(np.asarray(x, dtype=float)).any())


def log_nan_context(problem, force_columns, torque_columns, segment="segment"):
    logger.warning(
        f"Cable tension solver produced NaN result for {segment}. "
        f"linear term: {problem.linear}, quadratic diagonal: {problem.quadratic_diagonal}, "
        f"equality targets ({', '.join(r.value for r in problem.rows)}): {problem.targets}, "
        f"constraint band: [{problem.lower}, {problem.upper}]")

    for i, (f_col, t_col) in enumerate(zip(np.asarray(force_columns), np.asarray(torque_columns))):
        logger.warning(f"NaN context: structure matrix column {i} force {f_col} torque {t_col}")

    for i in range(problem.A.shape[1]):
        logger.warning(f"NaN context: equality matrix column {i} has elements {problem.A[:, i]}")

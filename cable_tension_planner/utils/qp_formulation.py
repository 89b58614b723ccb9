from dataclasses import dataclass

import numpy as np

from cable_tension_planner.errors import ConfigurationError
from cable_tension_planner.utils.model_params import TorqueBoundsPolicy
from cable_tension_planner.utils.nan_guard import sanitize_warm_start
from cable_tension_planner.utils.wrench_rows import WrenchRow, parse_rows


@dataclass(frozen=True, eq=False)
class QPProblem:
    """
    Bounded QP over the n cable tensions:

        min  1/2 t^T Q t + b^T t
        s.t. lower <= A t <= upper
             lb <= t <= ub

    Q is diagonal and stored as its diagonal. A holds the controlled rows of
    the structure matrix, in the order of `rows`.
    """
    quadratic_diagonal: np.ndarray
    linear: np.ndarray
    A: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    targets: np.ndarray
    rows: tuple
    lb: np.ndarray
    ub: np.ndarray
    scale: np.ndarray
    x0: np.ndarray

    @property
    def Q(self):
        return np.diag(self.quadratic_diagonal)

    @property
    def n_cables(self):
        return self.quadratic_diagonal.shape[0]


def check_tension_bounds(minimum_tension, maximum_tension):
    tmin = float(minimum_tension)
    if not np.isfinite(tmin) or tmin <= 0:
        raise ConfigurationError(f"minimum tension must be positive so cables stay taut, got {tmin}")
    if tmin > maximum_tension:
        raise ConfigurationError(f"minimum tension {tmin} exceeds the tension ceiling {maximum_tension}")
    return tmin


def pelvic_torque_band(config):
    if config.enforce_pelvic_torque_bounds == TorqueBoundsPolicy.ENFORCE:
        return config.tight_torque_band
    return config.loose_torque_band


def constraint_band(targets, rows, torque_band=None):
    """
    Lower and upper limits of the controlled rows. With no torque_band every
    row is an equality. Otherwise Tx/Ty may move torque_band either side of
    their requested value: the band is centred on the request, so a zero
    request gives the absolute limits [-band, band].
    """
    lower = np.array(targets, dtype=float)
    upper = np.array(targets, dtype=float)
    if torque_band is None:
        return lower, upper

    # only Tx/Ty get a band, every other controlled row stays an equality
    for i, row in enumerate(rows):
        if row in (WrenchRow.TX, WrenchRow.TY):
            lower[i] -= torque_band
            upper[i] += torque_band

    return lower, upper


def formulate_tension_qp(S, targets, controlled_rows, minimum_tension, previous_tensions, config,
                         torque_band=None):
    S = np.atleast_2d(np.asarray(S, dtype=float))
    targets = np.asarray(targets, dtype=float).reshape(-1)
    rows = parse_rows(controlled_rows)

    if S.shape[0] != len(rows) or targets.shape[0] != len(rows):
        raise ConfigurationError(
            f"{len(rows)} controlled rows but constraint matrix has {S.shape[0]} rows "
            f"and {targets.shape[0]} targets")

    n = S.shape[1]
    tmin = check_tension_bounds(minimum_tension, config.max_tension_per_cable)
    t_prev = sanitize_warm_start(previous_tensions, tmin, n)

    lower, upper = constraint_band(targets, rows, torque_band)

    return QPProblem(
        quadratic_diagonal=np.full(n, config.quadratic_diagonal),
        linear=-t_prev,
        A=S,
        lower=lower,
        upper=upper,
        targets=targets,
        rows=rows,
        lb=np.full(n, tmin),
        ub=np.full(n, config.max_tension_per_cable),
        scale=np.full(n, config.tension_scale_hint),
        x0=t_prev,
    )

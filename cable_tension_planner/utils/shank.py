import logging
from dataclasses import dataclass

import numpy as np

from cable_tension_planner.errors import ConfigurationError
from cable_tension_planner.utils.wrench_rows import as_vec3, build_targets, extract_row, parse_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SingleCableTension:
    tension: float
    element: float
    target: float
    degenerate: bool = False


def single_cable_tension(target, element, tolerance=1e-9):
    """
    One cable, one controlled row: the system is square, t = target / element.
    A vanishing structure element leaves the tension undefined and gives NaN.
    """
    element = float(element)
    target = float(target)
    if not np.isfinite(element) or abs(element) <= tolerance:
        logger.warning(f"Structure element {element} is too small to reach target {target}, tension undefined")
        return SingleCableTension(float("nan"), element, target, degenerate=True)
    return SingleCableTension(target / element, element, target)


def split_between_legs(desired_force, legs=2):
    # the force is shared evenly, torque is not split
    return as_vec3(desired_force, "desired force") / float(legs)


def shank_tension(per_leg_force, desired_torque, force_columns, torque_columns, controlled_rows, tolerance=1e-9):
    rows = parse_rows(controlled_rows)
    if len(rows) != 1:
        raise ConfigurationError(f"shank cables control exactly one wrench row, got {len(rows)}")

    row = extract_row(force_columns, torque_columns, rows[0])
    if row.shape[0] != 1:
        raise ConfigurationError(f"shank belt must have exactly one cable, got {row.shape[0]}")

    target = build_targets(per_leg_force, desired_torque, rows)[0]
    return single_cable_tension(target, row[0], tolerance)

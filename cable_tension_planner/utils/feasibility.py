"""
Feasibility floor for coupled wrench rows.

Pinning one row (the probed row, Fy on the pelvis belt) with bounded, taut
cables forces a minimum value on a coupled row (the floored row, Fz). If the
request for the floored row is below that floor the full equality system has
no solution, so the request is raised to floor + buffer before the final
solve. The request is never lowered.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from cable_tension_planner.utils.qp_backend import solve_tension_qp
from cable_tension_planner.utils.qp_formulation import formulate_tension_qp, pelvic_torque_band
from cable_tension_planner.utils.wrench_rows import (
    WrenchRow, as_vec3, build_targets, extract_row, parse_rows, stack_rows)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FloorRepair:
    probed_row: WrenchRow
    floored_row: WrenchRow
    requested_value: float
    target_value: float
    floor_value: float = float("nan")
    probe_tensions: Optional[np.ndarray] = None
    repaired: bool = False
    probe_failed: bool = False
    skipped: bool = False


class FeasibilityFloor:

    def __init__(self, probed_row=WrenchRow.FY, floored_row=WrenchRow.FZ, buffer=5.0):
        self.probed_row = WrenchRow.parse(probed_row)
        self.floored_row = WrenchRow.parse(floored_row)
        if self.probed_row == self.floored_row:
            raise ValueError("probed and floored rows must differ")
        self.buffer = float(buffer)

    def probe_system(self, S, targets, rows):
        """Keeps only the probed row: every other row becomes 0 . t = 0."""
        i = rows.index(self.probed_row)
        S_probe = np.zeros_like(S)
        S_probe[i, :] = S[i, :]
        targets_probe = np.zeros_like(targets)
        targets_probe[i] = targets[i]
        return S_probe, targets_probe

    def apply(self, desired_force, desired_torque, force_columns, torque_columns, controlled_rows,
              minimum_tension, previous_tensions, backend, config):
        """
        Returns the (possibly raised) desired force and torque together with a
        FloorRepair record. The probe is warm-started from previous_tensions,
        the same as the final solve.
        """
        wrench = np.hstack((as_vec3(desired_force, "desired force"), as_vec3(desired_torque, "desired torque")))
        rows = parse_rows(controlled_rows)
        requested = float(wrench[self.floored_row.index])

        if self.probed_row not in rows or self.floored_row not in rows:
            logger.debug(f"Feasibility floor skipped: {self.probed_row.value}/{self.floored_row.value} "
                         f"not both among controlled rows {[r.value for r in rows]}")
            return wrench[:3], wrench[3:], FloorRepair(self.probed_row, self.floored_row, requested, requested,
                                                       skipped=True)

        S = stack_rows(force_columns, torque_columns, rows)
        targets = build_targets(wrench[:3], wrench[3:], rows)
        S_probe, targets_probe = self.probe_system(S, targets, rows)

        problem = formulate_tension_qp(S_probe, targets_probe, rows, minimum_tension, previous_tensions, config,
                                       torque_band=pelvic_torque_band(config))
        t_probe, diagnostics = solve_tension_qp(problem, backend)

        if diagnostics.degraded:
            logger.warning(f"Probe solve with only {self.probed_row.value} = {targets[rows.index(self.probed_row)]} "
                           f"failed ({diagnostics.status}), keeping requested {self.floored_row.value} = {requested}")
            return wrench[:3], wrench[3:], FloorRepair(self.probed_row, self.floored_row, requested, requested,
                                                       probe_tensions=t_probe, probe_failed=True)

        floored = extract_row(force_columns, torque_columns, self.floored_row)
        for i in range(floored.shape[0]):
            logger.debug(f"Minimum {self.floored_row.value} computation, element {i}: "
                         f"row element {floored[i]} times tension {t_probe[i]}")
        floor_value = float(floored @ t_probe)
        logger.debug(f"Minimum {self.floored_row.value} is: {floor_value}")

        repaired = False
        if requested < floor_value + self.buffer:
            wrench[self.floored_row.index] = floor_value + self.buffer
            repaired = True
            logger.debug(f"Desired {self.floored_row.value}, {requested}, was smaller than minimum of {floor_value}. "
                         f"Increasing to {wrench[self.floored_row.index]}")

        return wrench[:3], wrench[3:], FloorRepair(
            self.probed_row, self.floored_row, requested, float(wrench[self.floored_row.index]),
            floor_value=floor_value, probe_tensions=t_probe, repaired=repaired)

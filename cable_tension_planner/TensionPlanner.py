import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from cable_tension_planner.utils.feasibility import FeasibilityFloor, FloorRepair
from cable_tension_planner.utils.model_params import PlannerConfig
from cable_tension_planner.utils.nan_guard import contains_nan, log_nan_context
from cable_tension_planner.utils.qp_backend import SolverDiagnostics, make_backend, solve_tension_qp
from cable_tension_planner.utils.qp_formulation import QPProblem, formulate_tension_qp, pelvic_torque_band
from cable_tension_planner.utils.shank import SingleCableTension, shank_tension, split_between_legs
from cable_tension_planner.utils.wrench_rows import (
    WrenchRow, as_columns, as_vec3, build_targets, parse_rows, stack_rows)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TensionPlan:
    segment: str
    desired_force: np.ndarray
    desired_torque: np.ndarray
    controlled_rows: tuple
    tensions: np.ndarray
    diagnostics: SolverDiagnostics
    problem: QPProblem


@dataclass(frozen=True, eq=False)
class PelvisTensionPlan(TensionPlan):
    requested_force: Optional[np.ndarray] = None
    floor: Optional[FloorRepair] = None


@dataclass(frozen=True, eq=False)
class ShankTensionPlan:
    per_leg_force: np.ndarray
    desired_torque: np.ndarray
    controlled_row: WrenchRow
    left: SingleCableTension
    right: SingleCableTension

    @property
    def tensions(self):
        return (self.left.tension, self.right.tension)

    @property
    def degenerate(self):
        return self.left.degenerate or self.right.degenerate


class TensionPlanner:
    """
    Turns a desired wrench on a body segment into cable tensions.

    The planner keeps no per-cycle state: every call takes the previous
    cycle's tensions explicitly and returns a plan holding the inputs it
    used, the formulated problem, the tensions and the solver diagnostics.
    The returned tensions are the caller's next previous_tensions.
    """

    def __init__(self, config=None, backend=None):
        self.config = config if config is not None else PlannerConfig()
        self.backend = backend if backend is not None else make_backend(self.config)
        self.pelvis_floor = FeasibilityFloor(WrenchRow.FY, WrenchRow.FZ, self.config.minimum_fz_buffer)

        if self.config.debug:
            logging.getLogger("cable_tension_planner").setLevel(logging.DEBUG)

    # ───────────────────────────────────────────────────────────────
    # Generic bounded allocation
    # ───────────────────────────────────────────────────────────────
    def allocate(self, desired_force, desired_torque, force_columns, torque_columns,
                 controlled_rows, minimum_tension, previous_tensions, segment="segment", torque_band=None):
        """
        Bounded allocation for any segment. Controlled rows are pinned
        exactly unless torque_band is given, which relaxes Tx/Ty only.
        """
        F, T = as_columns(force_columns, torque_columns)
        rows = parse_rows(controlled_rows)
        force = as_vec3(desired_force, "desired force")
        torque = as_vec3(desired_torque, "desired torque")

        S = stack_rows(F, T, rows)
        targets = build_targets(force, torque, rows)
        problem = formulate_tension_qp(S, targets, rows, minimum_tension, previous_tensions, self.config,
                                       torque_band=torque_band)

        self._trace(segment, force, torque, problem, F)

        tensions, diagnostics = solve_tension_qp(problem, self.backend)
        diagnostics = self._inspect(segment, tensions, diagnostics, problem, F, T)

        return TensionPlan(segment, force, torque, rows, tensions, diagnostics, problem)

    # ───────────────────────────────────────────────────────────────
    # Body segments
    # ───────────────────────────────────────────────────────────────
    def compute_trunk_tensions(self, desired_force, desired_torque, force_columns, torque_columns,
                               controlled_rows, minimum_tension, previous_tensions):
        plan = self.allocate(desired_force, desired_torque, force_columns, torque_columns,
                             controlled_rows, minimum_tension, previous_tensions, segment="trunk")

        for i, t in enumerate(plan.tensions):
            logger.debug(f"Computed chest cable tensions for chest force {plan.desired_force}, "
                         f"tension for cable {i} is: {t}")
        return plan

    def compute_pelvis_tensions(self, desired_force, desired_torque, force_columns, torque_columns,
                                controlled_rows, minimum_tension, previous_tensions):
        """
        Pelvis belt: Fy is pinned exactly while Fz is raised to the floor that
        Fy alone produces (plus the configured buffer) whenever the request
        is below it. Tx/Ty are held within the pelvic torque band, every
        other controlled row is exact. The returned plan carries the force
        actually used.
        """
        requested = as_vec3(desired_force, "desired force").copy()

        force, torque, floor = self.pelvis_floor.apply(
            requested, desired_torque, force_columns, torque_columns, controlled_rows,
            minimum_tension, previous_tensions, self.backend, self.config)

        plan = self.allocate(force, torque, force_columns, torque_columns,
                             controlled_rows, minimum_tension, previous_tensions, segment="pelvis",
                             torque_band=pelvic_torque_band(self.config))

        for i, t in enumerate(plan.tensions):
            logger.debug(f"Computed pelvic cable tensions for initial desired pelvic force {requested} "
                         f"and modified pelvic force {plan.desired_force}, cable {i}: {t}")

        return PelvisTensionPlan(plan.segment, plan.desired_force, plan.desired_torque, plan.controlled_rows,
                                 plan.tensions, plan.diagnostics, plan.problem,
                                 requested_force=requested, floor=floor)

    def compute_shank_tensions(self, desired_force, desired_torque,
                               left_force_columns, left_torque_columns,
                               right_force_columns, right_torque_columns, controlled_rows):
        """One cable per shank and one controlled row: no optimizer needed."""
        per_leg_force = split_between_legs(desired_force)
        torque = as_vec3(desired_torque, "desired torque")
        rows = parse_rows(controlled_rows)
        tol = self.config.singular_element_tolerance

        left = shank_tension(per_leg_force, torque, left_force_columns, left_torque_columns, rows, tol)
        right = shank_tension(per_leg_force, torque, right_force_columns, right_torque_columns, rows, tol)

        logger.debug(f"Shank tensions for per-leg force {per_leg_force}: left {left.tension}, right {right.tension}")
        return ShankTensionPlan(per_leg_force, torque, rows[0], left, right)

    # ───────────────────────────────────────────────────────────────
    # Diagnostics
    # ───────────────────────────────────────────────────────────────
    def _trace(self, segment, force, torque, problem, F):
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(f"Cable tension planner ({segment}): linear term: {problem.linear}")
        logger.debug(f"Cable tension planner ({segment}): quadratic term diags: {problem.quadratic_diagonal}")
        logger.debug(f"Cable tension planner ({segment}): equality targets {problem.targets}")
        logger.debug(f"Cable tension planner ({segment}): desired forces (Fx, Fy, Fz): {force}")
        logger.debug(f"Cable tension planner ({segment}): desired torques (Tx, Ty, Tz): {torque}")
        for i, col in enumerate(F):
            logger.debug(f"Cable tension planner ({segment}): structure matrix column {i} has elements: {col}")

    def _inspect(self, segment, tensions, diagnostics, problem, F, T):
        has_nan = contains_nan(tensions)
        if has_nan:
            # reported only, the caller filters before actuation
            log_nan_context(problem, F, T, segment)
        elif not diagnostics.found:
            logger.warning(f"Cable tension solver status for {segment} is {diagnostics.status}, "
                           f"tensions {tensions} may violate the requested wrench")
        else:
            logger.debug("Cable tension solution does NOT contain NaN. Success!")

        if has_nan != diagnostics.contains_nan:
            diagnostics = SolverDiagnostics(diagnostics.found, diagnostics.status, has_nan, diagnostics.solver)
        return diagnostics

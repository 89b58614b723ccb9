from cable_tension_planner.errors import ConfigurationError, InvalidRowError, PlannerError
from cable_tension_planner.TensionPlanner import (
    PelvisTensionPlan, ShankTensionPlan, TensionPlan, TensionPlanner)
from cable_tension_planner.utils.feasibility import FeasibilityFloor, FloorRepair
from cable_tension_planner.utils.model_params import PlannerConfig, TorqueBoundsPolicy, planner_dict
from cable_tension_planner.utils.qp_backend import (
    BoundedQPSolver, CvxpyBackend, QpSolversBackend, SolverDiagnostics)
from cable_tension_planner.utils.wrench_rows import WrenchRow, build_targets, extract_row

__version__ = "0.1.0"

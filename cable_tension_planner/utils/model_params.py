import logging
from dataclasses import dataclass, field, fields
from enum import Enum

import numpy as np
import yaml

from cable_tension_planner.errors import ConfigurationError

logger = logging.getLogger(__name__)


class TorqueBoundsPolicy(Enum):
    ENFORCE = "Enforce"
    DISABLED = "Disabled"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        for policy in cls:
            if str(value).lower() in (policy.value.lower(), policy.name.lower()):
                return policy
        raise ConfigurationError(f"unknown torque bounds policy: {value!r}")


planner_dict = {

  "enforce_pelvic_torque_bounds" : TorqueBoundsPolicy.ENFORCE,

  "tight_torque_band" : 1.0,       # Nm, Tx/Ty band when enforced
  "loose_torque_band" : 10000.0,   # Nm, Tx/Ty band when disabled

  "max_tension_per_cable" : 1000.0,  # N, numerical rail only, clipping happens downstream
  "tension_scale_hint" : 50.0,       # N, tensions live roughly in [15, 100]
  "minimum_fz_buffer" : 5.0,         # N, added on top of the Fy-only Fz floor
  "quadratic_diagonal" : 2.0,

  "singular_element_tolerance" : 1e-9,

  "solver" : "osqp",
  "solver_options" : {"eps_abs": 1e-7, "eps_rel": 1e-7, "max_iter": 100000},

  "debug" : False

}

# camelCase option names used by the rig's settings files
_ALIASES = {
    "enforcePelvicTorqueBounds": "enforce_pelvic_torque_bounds",
    "maxTensionPerCable": "max_tension_per_cable",
    "tensionScaleHint": "tension_scale_hint",
    "minimumFzBuffer": "minimum_fz_buffer",
}


@dataclass
class PlannerConfig:
    enforce_pelvic_torque_bounds: TorqueBoundsPolicy = planner_dict["enforce_pelvic_torque_bounds"]
    tight_torque_band: float = planner_dict["tight_torque_band"]
    loose_torque_band: float = planner_dict["loose_torque_band"]
    max_tension_per_cable: float = planner_dict["max_tension_per_cable"]
    tension_scale_hint: float = planner_dict["tension_scale_hint"]
    minimum_fz_buffer: float = planner_dict["minimum_fz_buffer"]
    quadratic_diagonal: float = planner_dict["quadratic_diagonal"]
    singular_element_tolerance: float = planner_dict["singular_element_tolerance"]
    solver: str = planner_dict["solver"]
    solver_options: dict = field(default_factory=lambda: dict(planner_dict["solver_options"]))
    debug: bool = planner_dict["debug"]

    def __post_init__(self):
        self.enforce_pelvic_torque_bounds = TorqueBoundsPolicy.parse(self.enforce_pelvic_torque_bounds)

        for name in ("tight_torque_band", "loose_torque_band", "max_tension_per_cable",
                     "tension_scale_hint", "quadratic_diagonal"):
            value = float(getattr(self, name))
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive number, got {value}")
            setattr(self, name, value)

        self.minimum_fz_buffer = float(self.minimum_fz_buffer)
        if not np.isfinite(self.minimum_fz_buffer) or self.minimum_fz_buffer < 0:
            raise ConfigurationError(f"minimum_fz_buffer must be >= 0, got {self.minimum_fz_buffer}")

        self.singular_element_tolerance = float(self.singular_element_tolerance)
        if self.singular_element_tolerance < 0:
            raise ConfigurationError("singular_element_tolerance must be >= 0")

    @classmethod
    def from_dict(cls, params):
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in params.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"unknown planner option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path, section="cable_tension_planner"):
        with open(path, "r") as fh:
            configs = yaml.safe_load(fh) or {}
        if section in configs:
            configs = configs[section]
        logger.info(f"Loaded planner configuration from {path}")
        return cls.from_dict(configs)

from enum import Enum

import numpy as np

from cable_tension_planner.errors import ConfigurationError, InvalidRowError


class WrenchRow(Enum):
    """Rows of the 6 x n structure matrix, in wrench order."""
    FX = "Fx"
    FY = "Fy"
    FZ = "Fz"
    TX = "Tx"
    TY = "Ty"
    TZ = "Tz"

    @property
    def index(self):
        return _ROW_ORDER.index(self)

    @property
    def is_force(self):
        return self.index < 3

    @property
    def axis(self):
        return self.index % 3

    @classmethod
    def from_legacy_index(cls, value):
        # 1 = Fx, 2 = Fy, 3 = Fz, 4 = Tx, 5 = Ty, 6 = Tz
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or not 1 <= value <= 6:
            raise InvalidRowError(f"legacy row index must be an integer in 1..6, got {value!r}")
        return _ROW_ORDER[int(value) - 1]

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for row in cls:
                if value.lower() in (row.value.lower(), row.name.lower()):
                    return row
            raise InvalidRowError(f"unknown wrench row: {value!r}")
        return cls.from_legacy_index(value)


_ROW_ORDER = (WrenchRow.FX, WrenchRow.FY, WrenchRow.FZ, WrenchRow.TX, WrenchRow.TY, WrenchRow.TZ)


def parse_rows(controlled_rows):
    rows = tuple(WrenchRow.parse(r) for r in controlled_rows)
    if len(set(rows)) != len(rows):
        raise ConfigurationError(f"duplicate controlled rows: {[r.value for r in rows]}")
    return rows


def as_columns(force_columns, torque_columns):
    """
    Validates the per-cable structure matrix columns and returns them as
    two (n, 3) float arrays.
    """
    F = np.asarray(force_columns, dtype=float)
    T = np.asarray(torque_columns, dtype=float)

    if F.ndim == 1 and F.shape[0] == 3:
        F = F.reshape((1, 3))
    if T.ndim == 1 and T.shape[0] == 3:
        T = T.reshape((1, 3))

    if F.ndim != 2 or F.shape[1] != 3:
        raise ConfigurationError(f"force columns must have shape (n, 3), got {F.shape}")
    if T.ndim != 2 or T.shape[1] != 3:
        raise ConfigurationError(f"torque columns must have shape (n, 3), got {T.shape}")
    if F.shape[0] != T.shape[0]:
        raise ConfigurationError(
            f"cable count mismatch: {F.shape[0]} force columns vs {T.shape[0]} torque columns")
    if F.shape[0] == 0:
        raise ConfigurationError("structure matrix has no cables")

    return F, T


def extract_row(force_columns, torque_columns, row):
    F, T = as_columns(force_columns, torque_columns)
    row = WrenchRow.parse(row)

    if row.is_force:
        return F[:, row.axis].copy()
    return T[:, row.axis].copy()


def stack_rows(force_columns, torque_columns, controlled_rows):
    """Returns the (m, n) block of the structure matrix for the controlled rows."""
    F, T = as_columns(force_columns, torque_columns)
    rows = parse_rows(controlled_rows)

    S = np.zeros((len(rows), F.shape[0]))
    for i, row in enumerate(rows):
        S[i, :] = extract_row(F, T, row)

    return S


def as_vec3(value, name="vector"):
    v = np.asarray(value, dtype=float).reshape(-1)
    if v.shape != (3,):
        raise ConfigurationError(f"{name} must have 3 components, got shape {v.shape}")
    return v


def build_targets(desired_force, desired_torque, controlled_rows):
    force = as_vec3(desired_force, "desired force")
    torque = as_vec3(desired_torque, "desired torque")
    wrench = np.hstack((force, torque))

    rows = parse_rows(controlled_rows)
    return np.array([wrench[row.index] for row in rows], dtype=float)

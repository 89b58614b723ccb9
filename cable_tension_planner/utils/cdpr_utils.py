from enum import Enum

import numpy as np
from numpy import cos, sin
from numpy.linalg import norm
from scipy.linalg import pinv

from cable_tension_planner.errors import ConfigurationError
from cable_tension_planner.utils.wrench_rows import as_columns, as_vec3


class BeltSize(Enum):
    SMALL = "Small"
    LARGE = "Large"


# (anterior-posterior, medial-lateral) shrink factors of the belt attachment points
BELT_FACTORS = {
    BeltSize.SMALL: (0.7, 0.8),
    BeltSize.LARGE: (0.85, 0.95),
}

# pulley frame corners, ordered front-right, front-left, back-left, back-right
PULLEY_HALF_SPAN = 0.4826


def skew(v):
    # cross-product matrix, skew(a)@b == a x b
    x, y, z = v[0], v[1], v[2]
    return np.array([[ 0, -z,  y],
                     [ z,  0, -x],
                     [-y,  x,  0]])


def Rbe(Th):
    """Body-to-world rotation from (roll, pitch, yaw), applied as Rz(yaw) Ry(pitch) Rx(roll)."""
    cr, sr = cos(Th[0]), sin(Th[0])
    cp, sp = cos(Th[1]), sin(Th[1])
    cy, sy = cos(Th[2]), sin(Th[2])

    Rx = np.array([[1, 0, 0], [0, cr, -sr], [0, sr, cr]])
    Ry = np.array([[cp, 0, sp], [0, 1, 0], [-sp, 0, cp]])
    Rz = np.array([[cy, -sy, 0], [sy, cy, 0], [0, 0, 1]])

    return Rz@Ry@Rx


def body_rotation(orientation):
    # rotation matrix as is, otherwise roll/pitch/yaw angles
    orientation = np.asarray(orientation, dtype=float)
    if orientation.shape == (3, 3):
        return orientation
    return Rbe(as_vec3(orientation, "orientation"))


def get_points(position, R, local_attachment, pulley):
    B = R@local_attachment
    belt_anchor = position + B
    U = pulley - belt_anchor
    li = norm(U)
    if li == 0:
        raise ConfigurationError(f"attachment point coincides with pulley at {pulley}")
    U = U/li

    return U,B,li


def structure_columns(position, orientation, attachment_points, pulley_positions):
    """
    Per-cable force and torque columns for a belt at the given pose.

    attachment_points are expressed in the body frame, pulley_positions in
    the world frame. Force column i is the unit vector from the attachment
    point to its pulley; torque column i is the rotated lever arm crossed with it.
    """
    position = as_vec3(position, "position")
    R = body_rotation(orientation)
    Ei = np.asarray(attachment_points, dtype=float)
    Ai = np.asarray(pulley_positions, dtype=float)

    if Ei.ndim != 2 or Ei.shape[1] != 3 or Ei.shape != Ai.shape:
        raise ConfigurationError(
            f"attachment points {Ei.shape} and pulley positions {Ai.shape} must both be (n, 3)")

    F = np.zeros(Ei.shape)
    T = np.zeros(Ei.shape)
    for i in range(Ei.shape[0]):
        U,B,li = get_points(position, R, Ei[i,:], Ai[i,:])

        F[i,:] = U
        T[i,:] = skew(B)@U

    return F, T


def Wrench(force_columns, torque_columns):
    F, T = as_columns(force_columns, torque_columns)
    W = np.zeros((6,F.shape[0]))
    W[:3,:] = F.T
    W[3:,:] = T.T

    return W


def belt_attachment_points(chest_ap_distance, chest_ml_distance, belt_size=BeltSize.SMALL):
    if chest_ap_distance <= 0 or chest_ml_distance <= 0:
        raise ConfigurationError("chest dimensions must be positive values")

    belt_size = BeltSize(belt_size) if not isinstance(belt_size, BeltSize) else belt_size
    ap_factor, ml_factor = BELT_FACTORS[belt_size]
    half_ap = 0.5*chest_ap_distance*ap_factor
    half_ml = 0.5*chest_ml_distance*ml_factor

    return np.array([[ half_ml, 0,  half_ap],
                     [-half_ml, 0,  half_ap],
                     [-half_ml, 0, -half_ap],
                     [ half_ml, 0, -half_ap]])


def pulley_positions(front_right_height, front_left_height, back_left_height, back_right_height):
    d = PULLEY_HALF_SPAN
    return np.array([[ d, front_right_height,  d],
                     [-d, front_left_height,   d],
                     [-d, back_left_height,   -d],
                     [ d, back_right_height,  -d]])


def pseudo_inverse_tensions(force_columns, torque_columns, desired_force, desired_torque):
    """Baseline allocation T = max(0, S+ W): no bounds, no smoothness."""
    W = Wrench(force_columns, torque_columns)
    w = np.hstack((as_vec3(desired_force, "desired force"), as_vec3(desired_torque, "desired torque")))

    t = pinv(W)@w
    return np.maximum(t, 0.0)

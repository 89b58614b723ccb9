import logging

import numpy as np

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from cable_tension_planner import PlannerConfig, TensionPlanner
from cable_tension_planner.logging_config import setup_logging
from cable_tension_planner.utils.cdpr_utils import (
    BeltSize, belt_attachment_points, pulley_positions, structure_columns)
from cable_tension_planner.utils.traj_gen import interpolate_trajectory

logger = logging.getLogger("cable_tension_planner.replay")


def run_pelvis_replay(planner, trajectory, attachment_points, pulleys, minimum_tension=15.0):
    """
    Replays a pelvis trajectory through the planner, one control cycle per
    sample. Each cycle's tensions become the next cycle's warm start.

    trajectory.xInterp columns: pelvis x, y, z, pelvis roll, pitch, yaw,
    then desired Fx, Fy, Fz.
    """
    controlled_rows = ("Fy", "Fz")
    t_prev = np.full(attachment_points.shape[0], minimum_tension)

    tensions, requested_fz, used_fz, degraded = [], [], [], []
    for sample in trajectory.xInterp:
        position, angles, desired_force = sample[:3], sample[3:6], sample[6:]

        F, T = structure_columns(position, angles, attachment_points, pulleys)
        plan = planner.compute_pelvis_tensions(desired_force, np.zeros(3), F, T,
                                               controlled_rows, minimum_tension, t_prev)

        tensions.append(plan.tensions)
        requested_fz.append(plan.requested_force[2])
        used_fz.append(plan.desired_force[2])
        degraded.append(plan.diagnostics.degraded)

        if plan.diagnostics.degraded:
            # never warm-start from a NaN solution
            logger.warning(f"Degraded solve at pelvis position {position.round(3)}, keeping previous tensions")
        else:
            t_prev = plan.tensions

    return np.array(tensions), np.array(requested_fz), np.array(used_fz), np.array(degraded)


def plot_replay(times, tensions, requested_fz, used_fz, filename="pelvis_replay.png"):
    fig, (ax_t, ax_f) = plt.subplots(2, 1, sharex=True)

    for i in range(tensions.shape[1]):
        ax_t.plot(times, tensions[:, i], label=f"Cable {i}")
    ax_t.set_ylabel("Tension (N)")
    ax_t.grid(True)
    ax_t.legend()

    ax_f.plot(times, requested_fz, "--", label="Requested Fz")
    ax_f.plot(times, used_fz, label="Fz after floor repair")
    ax_f.set_xlabel("Time [s]")
    ax_f.set_ylabel("Force (N)")
    ax_f.grid(True)
    ax_f.legend()

    fig.suptitle("Pelvis belt tension replay")
    fig.savefig(filename)
    plt.close(fig)
    logger.info(f"Plot saved to {filename}")


if __name__ == "__main__":
    setup_logging(logging.INFO)

    planner = TensionPlanner(PlannerConfig())

    attachment_points = belt_attachment_points(0.22, 0.34, BeltSize.SMALL)
    pulleys = pulley_positions(1.05, 1.05, 1.05, 1.05)

    # waypoints: pelvis sway in x with a sinking y and a small turn about the
    # vertical (y) axis, then desired (Fx, Fy, Fz) in N
    t = np.array([0.0, 2.0, 4.0, 6.0])
    pts = np.array([[ 0.00, 0.95, 0.0, 0.0,  0.00, 0.0, 0.0, 10.0,   0.0],
                    [ 0.05, 0.93, 0.0, 0.0,  0.08, 0.0, 0.0, 10.0, -20.0],
                    [-0.05, 0.93, 0.0, 0.0, -0.08, 0.0, 0.0, 15.0,  20.0],
                    [ 0.00, 0.95, 0.0, 0.0,  0.00, 0.0, 0.0, 10.0,   0.0]])

    traj = interpolate_trajectory(t, pts, 301)

    tensions, requested_fz, used_fz, degraded = run_pelvis_replay(planner, traj, attachment_points, pulleys)
    logger.info(f"{len(traj)} cycles, {int(degraded.sum())} degraded, "
                f"Fz raised on {int(np.sum(used_fz > requested_fz))} cycles")

    plot_replay(traj.tInterp[:, 0], tensions, requested_fz, used_fz)

import numpy as np
import pytest

from cable_tension_planner import ConfigurationError, PlannerConfig, TorqueBoundsPolicy, WrenchRow
from cable_tension_planner.utils.nan_guard import sanitize_warm_start
from cable_tension_planner.utils.qp_formulation import formulate_tension_qp, pelvic_torque_band


S = np.array([[0.0, 1.0, -1.0],
              [0.5, 0.5, 0.5],
              [0.2, -0.2, 0.0]])


def test_quadratic_linear_bounds_scale_and_warm_start():
    prev = np.array([20.0, 30.0, 40.0])
    problem = formulate_tension_qp(S[:1], [12.0], ["Fy"], 15.0, prev, PlannerConfig())

    np.testing.assert_array_equal(problem.Q, 2.0 * np.eye(3))
    np.testing.assert_array_equal(problem.linear, -prev)
    np.testing.assert_array_equal(problem.x0, prev)
    np.testing.assert_array_equal(problem.lb, [15.0, 15.0, 15.0])
    np.testing.assert_array_equal(problem.ub, [1000.0, 1000.0, 1000.0])
    np.testing.assert_array_equal(problem.scale, [50.0, 50.0, 50.0])
    np.testing.assert_array_equal(problem.lower, [12.0])
    np.testing.assert_array_equal(problem.upper, [12.0])


def test_nan_warm_start_replaces_every_entry():
    np.testing.assert_array_equal(sanitize_warm_start([np.nan, 3.0, 5.0], 15.0), [15.0, 15.0, 15.0])

    problem = formulate_tension_qp(S[:1], [0.0], ["Fy"], 15.0, [np.nan, 3.0, 5.0], PlannerConfig())
    np.testing.assert_array_equal(problem.x0, [15.0, 15.0, 15.0])
    np.testing.assert_array_equal(problem.linear, [-15.0, -15.0, -15.0])


def test_clean_warm_start_is_left_alone():
    np.testing.assert_array_equal(sanitize_warm_start([16.0, 3.0, 5.0], 15.0), [16.0, 3.0, 5.0])


def test_enforced_torque_rows_get_tight_band():
    config = PlannerConfig(enforce_pelvic_torque_bounds=TorqueBoundsPolicy.ENFORCE)
    problem = formulate_tension_qp(S, [10.0, 2.0, -0.5], ["Fy", "Tx", "Ty"], 15.0, np.full(3, 15.0), config,
                                   torque_band=pelvic_torque_band(config))

    np.testing.assert_array_equal(problem.lower, [10.0, 1.0, -1.5])
    np.testing.assert_array_equal(problem.upper, [10.0, 3.0, 0.5])


def test_disabled_torque_rows_get_loose_band():
    config = PlannerConfig(enforce_pelvic_torque_bounds="Disabled")
    problem = formulate_tension_qp(S, [10.0, 2.0, -0.5], ["Fy", "Tx", "Ty"], 15.0, np.full(3, 15.0), config,
                                   torque_band=pelvic_torque_band(config))

    np.testing.assert_array_equal(problem.lower, [10.0, -9998.0, -10000.5])
    np.testing.assert_array_equal(problem.upper, [10.0, 10002.0, 9999.5])


@pytest.mark.parametrize("policy", ["Enforce", "Disabled"])
def test_torque_rows_are_pinned_without_a_band(policy):
    problem = formulate_tension_qp(S, [10.0, 2.0, -0.5], ["Fy", "Tx", "Ty"], 15.0, np.full(3, 15.0),
                                   PlannerConfig(enforce_pelvic_torque_bounds=policy))

    np.testing.assert_array_equal(problem.lower, [10.0, 2.0, -0.5])
    np.testing.assert_array_equal(problem.upper, [10.0, 2.0, -0.5])


@pytest.mark.parametrize("policy", ["Enforce", "Disabled"])
def test_other_rows_stay_pinned_under_either_policy(policy):
    config = PlannerConfig(enforce_pelvic_torque_bounds=policy)
    problem = formulate_tension_qp(S, [1.0, 2.0, 3.0], ["Fx", "Fz", "Tz"], 15.0, np.full(3, 15.0), config,
                                   torque_band=pelvic_torque_band(config))

    np.testing.assert_array_equal(problem.lower, problem.upper)
    assert problem.rows == (WrenchRow.FX, WrenchRow.FZ, WrenchRow.TZ)


@pytest.mark.parametrize("tmin", [0.0, -1.0, np.nan, 2000.0])
def test_minimum_tension_must_be_positive_and_below_ceiling(tmin):
    with pytest.raises(ConfigurationError):
        formulate_tension_qp(S[:1], [0.0], ["Fy"], tmin, np.full(3, 15.0), PlannerConfig())


def test_previous_tensions_length_mismatch_fails_fast():
    with pytest.raises(ConfigurationError):
        formulate_tension_qp(S[:1], [0.0], ["Fy"], 15.0, np.full(4, 15.0), PlannerConfig())


def test_row_count_must_match_targets():
    with pytest.raises(ConfigurationError):
        formulate_tension_qp(S[:2], [0.0], ["Fy", "Fz"], 15.0, np.full(3, 15.0), PlannerConfig())

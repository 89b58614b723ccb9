import numpy as np
import pytest

from cable_tension_planner import ConfigurationError
from cable_tension_planner.utils.shank import shank_tension, single_cable_tension, split_between_legs


def test_closed_form_is_exact_division():
    result = single_cable_tension(20.0, 0.37)
    assert result.tension == 20.0 / 0.37
    assert not result.degenerate


@pytest.mark.parametrize("element", [0.0, 1e-12, np.nan])
def test_vanishing_element_gives_nan_and_flag(element):
    result = single_cable_tension(20.0, element)
    assert np.isnan(result.tension)
    assert result.degenerate


def test_force_is_split_evenly_between_legs():
    np.testing.assert_array_equal(split_between_legs([2.0, -4.0, 40.0]), [1.0, -2.0, 20.0])


def test_shank_requires_one_cable_and_one_row():
    F = np.array([[0.0, 0.0, 0.5]])
    T = np.zeros((1, 3))
    with pytest.raises(ConfigurationError):
        shank_tension([0.0, 0.0, 20.0], np.zeros(3), F, T, ["Fz", "Fy"])
    with pytest.raises(ConfigurationError):
        shank_tension([0.0, 0.0, 20.0], np.zeros(3), np.vstack((F, F)), np.vstack((T, T)), ["Fz"])


def test_torque_row_uses_full_torque():
    F = np.zeros((1, 3))
    T = np.array([[0.0, 0.25, 0.0]])
    result = shank_tension([0.0, 0.0, 0.0], [0.0, 5.0, 0.0], F, T, ["Ty"])
    assert result.tension == 20.0

import numpy as np
import pytest

from discretization import discretize


def test_values_on_a_cut_go_to_the_upper_bin():
    cut_points = np.array([1.0, 2.0, 3.0])
    values = np.array([0.5, 1.0, 1.5, 2.0, 3.0, 3.5, np.nan])

    np.testing.assert_array_equal(
        discretize(False, cut_points, values),
        [0, 1, 1, 2, 3, 3, -1],
    )
    np.testing.assert_array_equal(
        discretize(True, cut_points, values),
        [1, 2, 2, 3, 4, 4, 0],
    )


def test_no_cut_points_gives_single_bin():
    values = np.array([-4.0, np.nan, 7.0])

    np.testing.assert_array_equal(discretize(True, [], values), [1, 0, 1])
    np.testing.assert_array_equal(discretize(False, [], values), [0, -1, 0])


def test_infinite_values_fall_in_outer_bins():
    cut_points = np.array([-1.0, 1.0])
    values = np.array([-np.inf, np.inf])

    np.testing.assert_array_equal(discretize(False, cut_points, values), [0, 2])


def test_writes_into_caller_array():
    out = np.full(3, 99, dtype=np.int64)

    result = discretize(False, [0.0], np.array([-1.0, 0.0, 1.0]), out=out)

    assert result is out
    np.testing.assert_array_equal(out, [0, 1, 1])


def test_empty_values():
    assert discretize(True, [1.0], np.array([])).size == 0


def test_rejects_unordered_cut_points():
    with pytest.raises(AssertionError):
        discretize(False, [2.0, 1.0], np.array([1.5]))
    with pytest.raises(AssertionError):
        discretize(False, [1.0, 1.0], np.array([1.5]))

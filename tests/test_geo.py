from __future__ import annotations

import math

import pytest

from kollpaspar.geo import bounding_box_around, haversine


def test_haversine_zero_for_same_point() -> None:
    assert haversine(57.70, 11.96, 57.70, 11.96) == 0.0


def test_haversine_one_degree_of_latitude() -> None:
    # 6371 km * pi / 180
    assert haversine(57.0, 11.96, 58.0, 11.96) == pytest.approx(111_194.9, abs=0.5)


def test_haversine_is_symmetric() -> None:
    a = haversine(57.7089, 11.9745, 57.6928, 11.9301)
    b = haversine(57.6928, 11.9301, 57.7089, 11.9745)

    assert a == pytest.approx(b)
    assert 3000 < a < 3300


def test_haversine_antipodal_points_do_not_raise() -> None:
    assert haversine(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6_371_000)


def test_haversine_nan_propagates() -> None:
    assert math.isnan(haversine(math.nan, 11.96, 57.70, 11.96))


def test_bounding_box_around_goteborg() -> None:
    lower_left, upper_right = bounding_box_around(57.706924, 11.966192, 30.0)

    assert upper_right.lat - lower_left.lat == pytest.approx(60.0 / 111.0)
    expected_dlon = 30.0 / (111.320 * math.cos(math.radians(57.706924)))
    assert upper_right.long - 11.966192 == pytest.approx(expected_dlon)
    assert 11.966192 - lower_left.long == pytest.approx(expected_dlon)

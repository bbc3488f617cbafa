import math

import pytest

from core.exceptions import InvalidCoordinatesError
from tools.eta_calculator import calculate_distance, format_duration, validate_coordinates


def test_distance_same_point_is_zero():
    assert calculate_distance(25.0339, 121.5645, 25.0339, 121.5645) == 0
    assert calculate_distance(-33.8688, 151.2093, -33.8688, 151.2093) == 0


def test_distance_taipei_main_station_to_taipei_101():
    distance = calculate_distance(25.0478, 121.5170, 25.0339, 121.5645)
    assert 4500 < distance < 5500


def test_distance_is_symmetric():
    a = calculate_distance(25.0478, 121.5170, 25.0339, 121.5645)
    b = calculate_distance(25.0339, 121.5645, 25.0478, 121.5170)
    assert math.isclose(a, b)


@pytest.mark.parametrize("seconds, label", [
    (0, "即將到達"),
    (-100, "即將到達"),
    (60, "1 分鐘"),
    (300, "5 分鐘"),
    (1800, "30 分鐘"),
    (3600, "1 小時 0 分鐘"),
    (3900, "1 小時 5 分鐘"),
    (7200, "2 小時 0 分鐘"),
])
def test_format_duration(seconds, label):
    assert format_duration(seconds) == label


def test_format_duration_under_a_minute_rounds_down():
    assert format_duration(59) == "0 分鐘"


@pytest.mark.parametrize("lat, lng", [(90.1, 0), (-91, 0), (0, 180.5), (0, -181), (float("nan"), 0), ("abc", 0), (None, 1)])
def test_validate_coordinates_rejects_out_of_range(lat, lng):
    with pytest.raises(InvalidCoordinatesError):
        validate_coordinates(lat, lng)


def test_validate_coordinates_accepts_bounds():
    validate_coordinates(90, 180)
    validate_coordinates(-90, -180)
    validate_coordinates(25.0339, 121.5645)

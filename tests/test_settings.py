import json

import pytest

from errors import ConfigError
from settings import Settings, parse_active_period, read_active_periods, read_speed


@pytest.fixture
def settings():
    return Settings(
        {
            "Group": {"speed": "0.5, 1.5", "routeType": 1, "nrofHosts": 10},
            "students": {"routeType": 2, "activePeriod": [0, 100, 200, 300]},
            "staff": {"routeType": "x", "speed": "2, 1", "activePeriod": "5"},
            "granularity": 60,
        }
    )


def test_group_values_fall_back_to_defaults(settings):
    students = settings.for_group("students")
    assert students.get_int("routeType") == 2
    assert students.get_int("nrofHosts") == 10
    assert students.get_int("granularity") == 60
    assert students.contains("speed")
    assert not students.contains("coord")


def test_missing_and_defaults(settings):
    students = settings.for_group("students")
    with pytest.raises(ConfigError):
        students.get("routeFile")
    assert students.get("routeFile", None) is None
    assert students.get_int("firstStop", -1) == -1


def test_bad_values(settings):
    staff = settings.for_group("staff")
    with pytest.raises(ConfigError):
        staff.get_int("routeType")
    with pytest.raises(ConfigError):
        read_speed(staff)
    with pytest.raises(ConfigError):
        read_active_periods(staff)
    with pytest.raises(ConfigError):
        Settings({"x": 1.5}).get_int("x")


def test_csv_floats(settings):
    assert settings.for_group("students").get_csv_floats("speed", 2) == [0.5, 1.5]
    with pytest.raises(ConfigError):
        settings.for_group("students").get_csv_floats("speed", 3)
    with pytest.raises(ConfigError):
        Settings({"coord": "1, a"}).get_csv_floats("coord")


def test_active_periods(settings):
    assert read_active_periods(settings.for_group("students")) == [(0, 100), (200, 300)]
    assert read_active_periods(Settings({})) is None
    assert parse_active_period(["0", "10"]) == [(0.0, 10.0)]


@pytest.mark.parametrize("values", [[1, 2, 3], [5, 1], [0, 100, 50, 200], []])
def test_bad_active_periods(values):
    with pytest.raises(ConfigError):
        parse_active_period(values)


def test_from_json(tmp_path):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps({"Scenario": {"seed": 1}}))
    assert Settings.from_json(path).for_group("Scenario").get_int("seed") == 1

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(ConfigError):
        Settings.from_json(broken)
    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        Settings.from_json(listed)

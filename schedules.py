# schedules.py
"""
Built-in daily schedules for the campus building (t = 0 is 8am, seconds).

These are plain data documents for ``ScheduleDrivenDestinationPolicy.from_config``;
a scenario file can reference them by name or inline its own.
"""
import copy
from typing import Any, Dict

from errors import ConfigError

ENTRANCES = ["entranceN", "entranceE", "entranceW", "entranceS"]

CAMPUS_CATEGORIES = {
    "tutorial": ["tutorial1", "tutorial2", "tutorial3", "tutorial4"],
    "lecture": ["HS1", "HS2", "HS3"],
    "library": ["library"],
    "complab": ["computerlab"],
    "study": ["study"],
    "office": ["office1", "office2", "office3", "office4", "office5", "office6"],
}

STUDENT: Dict[str, Any] = {
    "categories": CAMPUS_CATEGORIES,
    "egress": ENTRANCES,
    # students that left after 2pm do not come back
    "no_return_after": 21600,
    "default": "stay",
    "initial": [
        ["study", 0.095],
        ["entranceN", 0.815],
        ["entranceE", 0.86],
        ["entranceW", 0.95],
        ["entranceS", 1.0],
    ],
    "windows": [
        # 8am - 10am
        {"start": 0, "end": 7200, "outcomes": [
            ["tutorial", 0.45], ["lecture", 0.90], ["library", 0.92],
            ["complab", 0.96], ["study", 1.0]]},
        # 10am - 12
        {"start": 7200, "end": 14400, "outcomes": [
            ["tutorial", 0.35], ["lecture", 0.70], ["library", 0.76],
            ["complab", 0.88], ["study", 1.0]]},
        # lunch
        {"start": 14400, "end": 18000, "outcomes": [
            ["entranceN", 0.70], ["cafeteria", 0.85], ["stay", 1.0]]},
        # 1pm - 4pm
        {"start": 18000, "end": 28800, "outcomes": [
            ["tutorial", 0.245], ["lecture", 0.49], ["library", 0.532],
            ["complab", 0.616], ["study", 0.70], ["stay", 1.0]]},
        # 4pm - 6pm
        {"start": 28800, "end": 36000, "outcomes": [
            ["tutorial", 0.105], ["lecture", 0.21], ["library", 0.308],
            ["complab", 0.504], ["study", 0.70], ["stay", 1.0]]},
        # 6pm - 8pm, most leave
        {"start": 36000, "end": 42000, "outcomes": [
            ["tutorial", 0.0175], ["lecture", 0.035], ["library", 0.042],
            ["complab", 0.056], ["study", 0.07], ["entranceN", 0.814],
            ["entranceE", 0.86], ["entranceW", 0.95], ["entranceS", 1.0]]},
        # closing
        {"start": 42000, "end": None, "outcomes": [
            ["entranceN", 0.28], ["entranceE", 0.2975], ["entranceW", 0.3325],
            ["entranceS", 0.35], ["entranceN", 1.0]]},
    ],
}

EMPLOYEE: Dict[str, Any] = {
    "categories": CAMPUS_CATEGORIES,
    "egress": ENTRANCES,
    "no_return_after": 36000,
    "default": "stay",
    "initial": [
        ["entranceN", 0.80], ["entranceE", 0.85], ["entranceW", 0.95], ["entranceS", 1.0]],
    "windows": [
        {"start": 0, "end": 14400, "outcomes": [["office", 1.0]]},
        # lunch, in percent
        {"start": 14400, "end": 18000, "outcomes": [
            ["entranceN", 70], ["cafeteria", 85], ["office", 100]]},
        {"start": 18000, "end": 36000, "outcomes": [["office", 1.0]]},
        {"start": 36000, "end": None, "outcomes": [
            ["entranceN", 80], ["entranceW", 90], ["entranceS", 95], ["entranceE", 100]]},
    ],
}

# Keeps some people walking the hallways all day long. "poi" is the set of
# stops of the group's own routes (see the ``stopsLabel`` group setting).
WANDERER: Dict[str, Any] = {
    "categories": {},
    "egress": ENTRANCES,
    "no_return_after": 42000,
    "default": "stay",
    "initial": [["poi", 1.0]],
    "windows": [
        {"start": 0, "end": 42000, "outcomes": [["poi", 1.0]]},
        {"start": 42000, "end": None, "outcomes": [
            ["entranceN", 0.80], ["entranceE", 0.90], ["entranceW", 0.95], ["entranceS", 1.0]]},
    ],
}

SCHEDULES = {
    "student": STUDENT,
    "employee": EMPLOYEE,
    "wanderer": WANDERER,
}


def get_schedule(name: str) -> Dict[str, Any]:
    try:
        return copy.deepcopy(SCHEDULES[name])
    except KeyError:
        raise ConfigError(
            f"Unknown schedule {name!r}, expected one of {sorted(SCHEDULES)}"
        ) from None

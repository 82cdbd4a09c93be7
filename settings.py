# settings.py
import json
import logging
from typing import Any, List, Mapping, Optional, Tuple

from errors import ConfigError

logger = logging.getLogger(__name__)

# Recognised per-group keys
ROUTE_FILE_S = "routeFile"
ROUTE_TYPE_S = "routeType"
FIRST_STOP_S = "firstStop"
ACTIVE_PERIOD_S = "activePeriod"
ACCESS_POINT_S = "accessPointIndex"
GRANULARITY_S = "granularity"
COORD_S = "coord"
SPEED_S = "speed"
SCHEDULE_S = "schedule"

DEFAULT_NAMESPACE = "Group"

_MISSING = object()


class Settings:
    """
    Read-only view over a (possibly nested) settings mapping.

    Keys are looked up in the settings' namespace first and then in the
    default namespace, so a group only has to spell out what differs from
    the shared ``Group`` section:

        {"Group": {"speed": "0.5, 1.5"}, "students": {"routeType": 1}}
    """

    def __init__(self, data: Mapping[str, Any], namespace: Optional[str] = None):
        self._data = dict(data)
        self.namespace = namespace

    @classmethod
    def from_json(cls, path, namespace: Optional[str] = None) -> "Settings":
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid settings file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must hold a JSON object")
        logger.debug("Loaded settings from %s", path)
        return cls(data, namespace)

    def for_group(self, name: str) -> "Settings":
        return Settings(self._data, namespace=name)

    def _sections(self) -> List[Mapping[str, Any]]:
        sections = []
        if self.namespace is not None:
            sec = self._data.get(self.namespace)
            if isinstance(sec, Mapping):
                sections.append(sec)
            sec = self._data.get(DEFAULT_NAMESPACE)
            if isinstance(sec, Mapping):
                sections.append(sec)
        sections.append(self._data)
        return sections

    def _full_name(self, key: str) -> str:
        return f"{self.namespace}.{key}" if self.namespace else key

    def contains(self, key: str) -> bool:
        return any(key in sec for sec in self._sections())

    def get(self, key: str, default: Any = _MISSING) -> Any:
        for sec in self._sections():
            if key in sec:
                return sec[key]
        if default is _MISSING:
            raise ConfigError(f"Missing setting {self._full_name(key)!r}")
        return default

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        value = self.get(key, default)
        if value is None:
            return value
        try:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(value)
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(
                f"Setting {self._full_name(key)!r} must be an integer, got {value!r}"
            ) from None

    def get_float(self, key: str, default: Any = _MISSING) -> float:
        value = self.get(key, default)
        if value is None:
            return value
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(
                f"Setting {self._full_name(key)!r} must be a number, got {value!r}"
            ) from None

    def get_csv_floats(self, key: str, count: Optional[int] = None) -> List[float]:
        """Read a comma separated value (or a JSON list) as floats."""
        raw = self.get(key)
        if isinstance(raw, str):
            parts = [p.strip() for p in raw.split(",") if p.strip()]
        elif isinstance(raw, (list, tuple)):
            parts = list(raw)
        else:
            parts = [raw]
        try:
            values = [float(p) for p in parts]
        except (TypeError, ValueError):
            raise ConfigError(
                f"Setting {self._full_name(key)!r} must be a list of numbers, got {raw!r}"
            ) from None
        if count is not None and len(values) != count:
            raise ConfigError(
                f"Setting {self._full_name(key)!r} needs {count} values, got {len(values)}"
            )
        return values


def parse_active_period(values) -> List[Tuple[float, float]]:
    """
    Turn 2 or 4 time bounds into a list of (start, end) intervals.

    ``[0, 100]`` is active between 0 and 100; ``[0, 100, 200, 300]`` is
    active in two separate periods.
    """
    values = [float(v) for v in values]
    if len(values) not in (2, 4):
        raise ConfigError(f"Active period needs 2 or 4 bounds, got {len(values)}")
    periods = []
    for start, end in zip(values[::2], values[1::2]):
        if start > end:
            raise ConfigError(f"Active period starts after it ends: {start} > {end}")
        periods.append((start, end))
    if len(periods) == 2 and periods[1][0] < periods[0][1]:
        raise ConfigError(f"Active periods overlap: {periods}")
    return periods


def read_active_periods(settings: Settings) -> Optional[List[Tuple[float, float]]]:
    if not settings.contains(ACTIVE_PERIOD_S):
        return None
    return parse_active_period(settings.get_csv_floats(ACTIVE_PERIOD_S))


def read_speed(settings: Settings) -> Tuple[float, float]:
    if not settings.contains(SPEED_S):
        return (0.5, 1.5)
    low, high = settings.get_csv_floats(SPEED_S, 2)
    if low <= 0 or high < low:
        raise ConfigError(f"Invalid speed range: {low}, {high}")
    return (low, high)


# errors.py
"""Exceptions raised by the mobility and connectivity modules.

Configuration errors are raised while a scenario is being built. Everything
else is raised while the simulation runs and is meant to stop it.
"""


class SimulationError(Exception):
    """Base class for every error raised by this project."""


class ConfigError(SimulationError, ValueError):
    """Bad, missing or inconsistent settings."""


class UnknownLabelError(SimulationError, KeyError):
    def __init__(self, label):
        super().__init__(label)
        self.label = label

    def __str__(self):
        return f"Unknown location label: {self.label!r}"


class DuplicateLabelError(SimulationError):
    def __init__(self, label):
        super().__init__(f"Location label already registered: {label!r}")
        self.label = label


class UnreachableError(SimulationError):
    """No path exists between two points of the building graph."""

    def __init__(self, source, target, reason=None):
        msg = f"No path from {source} to {target}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.source = source
        self.target = target


class ParseError(SimulationError, ValueError):
    """A host identifier does not carry a well formed access point index."""


class RangeError(SimulationError, IndexError):
    """An access point index is outside the configured counter array."""


class StateError(SimulationError, RuntimeError):
    """The event stream or an object's prior state is inconsistent."""

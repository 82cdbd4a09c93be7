# schedule_policy.py
"""
Time-of-day driven choice of an agent's next destination.

A schedule is a list of time windows. Each window holds an outcome table of
``(category, cumulative_upper_bound)`` pairs; a uniform draw ``r`` in [0, 1)
selects the first category whose bound is >= ``r``. Categories map to one or
more location labels, and a second uniform draw picks among them.

The policy keeps no clock state of its own: the active window is recomputed
from the simulated time on every call.
"""
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from errors import ConfigError, StateError

logger = logging.getLogger(__name__)

STAY = "stay"
BOUND_TOLERANCE = 1e-6

Outcome = Tuple[str, float]


def normalize_table(outcomes: Sequence[Sequence[Any]]) -> Tuple[Outcome, ...]:
    """
    Check an outcome table and scale it to [0, 1].

    Bounds must be strictly increasing and end at 1.0 (or 100 for tables
    written in percent).
    """
    if not outcomes:
        raise ConfigError("Outcome table is empty")
    table = []
    for item in outcomes:
        try:
            category, bound = item
            bound = float(bound)
        except (TypeError, ValueError):
            raise ConfigError(f"Bad outcome entry {item!r}") from None
        if not isinstance(category, str) or not category:
            raise ConfigError(f"Outcome category must be a non empty string: {item!r}")
        table.append((category, bound))

    last = table[-1][1]
    if abs(last - 1.0) <= BOUND_TOLERANCE:
        scale = 1.0
    elif abs(last - 100.0) <= 100.0 * BOUND_TOLERANCE:
        scale = 100.0
    else:
        raise ConfigError(f"Outcome table must end at 1.0 (or 100), ends at {last}")

    prev = 0.0
    for _, bound in table:
        if bound <= prev:
            raise ConfigError(f"Outcome bounds must be strictly increasing: {table}")
        prev = bound
    table = [(c, b / scale) for c, b in table]
    table[-1] = (table[-1][0], 1.0)
    return tuple(table)


def pick_category(table: Sequence[Outcome], r: float) -> str:
    """First category whose cumulative bound is >= r (earliest wins on ties)."""
    for category, bound in table:
        if bound >= r:
            return category
    # r can only exceed the last bound through rounding
    return table[-1][0]


def pick_label(labels: Sequence[str], r: float) -> str:
    """Uniform choice among ``labels`` driven by the draw ``r`` in [0, 1)."""
    n = len(labels)
    for i, label in enumerate(labels):
        if (i + 1) / n >= r:
            return label
    return labels[-1]


@dataclass(frozen=True)
class TimeWindow:
    start: float
    end: Optional[float]
    outcomes: Tuple[Outcome, ...]

    def __post_init__(self):
        end = math.inf if self.end is None else self.end
        if self.start >= end:
            raise ConfigError(f"Time window starts at or after its end: [{self.start}, {self.end})")
        object.__setattr__(self, "outcomes", normalize_table(self.outcomes))

    @property
    def stop(self) -> float:
        return math.inf if self.end is None else self.end

    def contains(self, t: float) -> bool:
        return self.start <= t < self.stop


def check_windows(windows: Sequence[TimeWindow]) -> List[TimeWindow]:
    """Sort windows by start and fail on overlaps (gaps are fine)."""
    ordered = sorted(windows, key=lambda w: w.start)
    for a, b in zip(ordered[:-1], ordered[1:]):
        if b.start < a.stop:
            raise ConfigError(
                f"Time windows overlap: [{a.start}, {a.end}) and [{b.start}, {b.end})"
            )
    return ordered


class ScheduleDrivenDestinationPolicy:
    """
    Decide where an agent goes next.

    windows: time windows with their outcome tables
    categories: category name -> equivalent labels (e.g. "tutorial" ->
        tutorial1..4). A category missing here is used as a label as is.
    default: category used when no window contains the current time
    egress_labels: labels where agents leave the building
    no_return_after: once the clock is past this time, agents standing on
        an egress label stay there for the rest of the run
    initial: outcome table for the agent's first location
    rng: random source, anything with a ``random()`` method
    """

    def __init__(
        self,
        windows: Sequence[TimeWindow],
        categories: Optional[Mapping[str, Sequence[str]]] = None,
        default: str = STAY,
        egress_labels: Sequence[str] = (),
        no_return_after: Optional[float] = None,
        initial: Optional[Sequence[Sequence[Any]]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.windows = check_windows(windows)
        self.categories: Dict[str, Tuple[str, ...]] = {}
        for name, labels in (categories or {}).items():
            labels = tuple(labels)
            if not labels:
                raise ConfigError(f"Category {name!r} has no labels")
            if name == STAY:
                raise ConfigError(f"{STAY!r} is reserved and cannot be redefined")
            self.categories[name] = labels
        self.default = default
        self.egress_labels = frozenset(egress_labels)
        self.no_return_after = no_return_after
        self.initial = normalize_table(initial) if initial else None
        if self.initial and any(c == STAY for c, _ in self.initial):
            raise ConfigError(f"{STAY!r} cannot be an initial location")
        self.rng = rng or random.Random()

    # -------------------------
    # Construction from data
    # -------------------------
    @classmethod
    def from_config(cls, document: Mapping[str, Any], rng=None) -> "ScheduleDrivenDestinationPolicy":
        """
        Build a policy from a JSON-like document::

            {
              "windows": [{"start": 0, "end": 7200,
                           "outcomes": [["tutorial", 0.45], ["lecture", 1.0]]}],
              "categories": {"tutorial": ["tutorial1", "tutorial2"]},
              "default": "stay",
              "egress": ["entranceN"],
              "no_return_after": 21600,
              "initial": [["entranceN", 1.0]]
            }
        """
        try:
            raw_windows = document["windows"]
        except KeyError:
            raise ConfigError("Schedule has no 'windows'") from None
        windows = []
        for w in raw_windows:
            try:
                windows.append(TimeWindow(float(w["start"]), w.get("end"), tuple(w["outcomes"])))
            except KeyError as e:
                raise ConfigError(f"Time window {w} misses {e}") from None
        return cls(
            windows,
            categories=document.get("categories"),
            default=document.get("default", STAY),
            egress_labels=document.get("egress", ()),
            no_return_after=document.get("no_return_after"),
            initial=document.get("initial"),
            rng=rng,
        )

    # -------------------------
    # Queries
    # -------------------------
    def window_at(self, t: float) -> Optional[TimeWindow]:
        for w in self.windows:
            if w.contains(t):
                return w
        return None

    def labels_of(self, category: str) -> Tuple[str, ...]:
        return self.categories.get(category, (category,))

    def referenced_labels(self) -> Set[str]:
        """Every concrete label this policy can return (``stay`` excluded)."""
        cats = {c for w in self.windows for c, _ in w.outcomes}
        cats.add(self.default)
        if self.initial:
            cats.update(c for c, _ in self.initial)
        labels = set(self.egress_labels)
        for c in cats:
            if c != STAY:
                labels.update(self.labels_of(c))
        return labels

    # -------------------------
    # Decisions
    # -------------------------
    def _update_sticky(self, t: float, state) -> None:
        if state.sticky_terminal or self.no_return_after is None:
            return
        if t > self.no_return_after and state.current_label in self.egress_labels:
            state.sticky_terminal = True
            logger.debug("Agent %s left through %s at t=%s", state.id, state.current_label, t)

    def _concrete(self, category: str) -> str:
        labels = self.labels_of(category)
        if len(labels) == 1:
            return labels[0]
        return pick_label(labels, self.rng.random())

    def decide(self, t: float, state) -> Tuple[Optional[str], bool]:
        """
        ``(label, stays)`` for the agent's next move.

        ``stays`` is true when the agent keeps its current place (``stay``
        drawn, or it has left for good); the label is then its current one,
        which may be None for an agent that started on an unlabelled stop.
        """
        window = self.window_at(t)
        if window is None:
            category = self.default
        else:
            category = pick_category(window.outcomes, self.rng.random())

        self._update_sticky(t, state)
        if state.sticky_terminal or category == STAY:
            if state.current_coordinate is None and state.current_label is None:
                raise StateError(f"Agent {state.id} has to stay but has no location yet")
            return state.current_label, True
        return self._concrete(category), False

    def next_destination(self, t: float, state) -> str:
        label, _ = self.decide(t, state)
        if label is None:
            raise StateError(f"Agent {state.id} stays on a stop without a label")
        return label

    def initial_label(self) -> Optional[str]:
        if self.initial is None:
            return None
        category = pick_category(self.initial, self.rng.random())
        labels = self.labels_of(category)
        if len(labels) == 1:
            return labels[0]
        return pick_label(labels, self.rng.random())

# connectivity_report.py
"""
Connectivity statistics from the stream of connection and message events.

Two reports share the same listener interface:

- ``ConnectedTimeAggregator`` (single cutoff): counts, per host, the
  connections it opened up to ``cutoff`` and writes ``"<host> <count>"`` for
  every host the first time the clock goes past ``cutoff``. After that it
  ignores everything.
- ``BucketedConnectivityAggregator``: keeps the number of hosts connected to
  each access point and writes ``"<time> <count>"`` whenever the event time
  moves on, for bucket times that are a multiple of ``granularity``.

Events must arrive in non-decreasing time order. Events sharing a time stamp
are applied to the same bucket before it is written out.
"""
import enum
import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd

from errors import ConfigError, ParseError, RangeError, StateError
from settings import ACCESS_POINT_S, GRANULARITY_S

logger = logging.getLogger(__name__)

ACCESS_POINT_PREFIX = "AccessPoint"
DEFAULT_CUTOFF = 43200
DEFAULT_ACCESS_POINT_COUNT = 18

# extra info of message transfer events
MESSAGE_TRANS_RELAYED = "R"
MESSAGE_TRANS_DELIVERED = "D"
MESSAGE_TRANS_DELIVERED_AGAIN = "A"

_DIGITS = re.compile(r"[0-9]+")


class EventKind(enum.Enum):
    CONNECT_UP = "up"
    CONNECT_DOWN = "down"
    MESSAGE_RELAYED = "relayed"
    MESSAGE_DELIVERED = "delivered"
    MESSAGE_DELIVERED_AGAIN = "delivered_again"
    MESSAGE_CREATED = "created"
    MESSAGE_ABORTED = "aborted"
    MESSAGE_TRANSFER_STARTED = "started"
    MESSAGE_DELETED = "deleted"
    MESSAGE_DROPPED = "dropped"

    @property
    def is_connection(self) -> bool:
        return self in (EventKind.CONNECT_UP, EventKind.CONNECT_DOWN)


class ReportMode(enum.Enum):
    SINGLE_CUTOFF = "cutoff"
    BUCKETED = "bucketed"


@dataclass(frozen=True)
class ConnectivityEvent:
    kind: EventKind
    timestamp: float
    host_a: Any
    host_b: Any = None
    extra: Optional[str] = None


def format_time(t: float) -> str:
    t = float(t)
    return str(int(t)) if t.is_integer() else repr(t)


class ReportWriter:
    """
    Append-only sink for report lines.

    Lines are kept in memory and, when ``path`` is given, appended to that
    file as they are written.
    """

    def __init__(self, path=None):
        self.path = path
        self.lines: List[str] = []
        self._fh = open(path, "a") if path is not None else None

    def write(self, line: str):
        self.lines.append(line)
        if self._fh is not None:
            self._fh.write(line + "\n")
            self._fh.flush()

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def to_frame(self, columns=("key", "value")) -> pd.DataFrame:
        rows = [line.split(None, 1) for line in self.lines]
        df = pd.DataFrame(rows, columns=list(columns))
        df[columns[1]] = pd.to_numeric(df[columns[1]])
        return df


class ConnectivityEventAggregator:
    """
    Common listener interface of the connectivity reports.

    The listener methods stamp events with ``clock()``; ``process`` takes
    ready-made events. Event application and flushing run under one lock so
    that events delivered from several threads are still applied one at a
    time.
    """

    mode: ReportMode

    def __init__(
        self,
        sink,
        clock: Optional[Callable[[], float]] = None,
        access_point_prefix: str = ACCESS_POINT_PREFIX,
    ):
        self.sink = sink
        self._clock = clock
        self.access_point_prefix = access_point_prefix
        self._lock = threading.RLock()

    def is_access_point(self, host) -> bool:
        return host is not None and self.access_point_prefix in str(host)

    def _now(self) -> float:
        if self._clock is None:
            raise StateError(f"{type(self).__name__} has no clock to stamp events with")
        return float(self._clock())

    def process(self, event: ConnectivityEvent):
        with self._lock:
            self._process(event)

    def process_all(self, events: Iterable[ConnectivityEvent]):
        with self._lock:
            for event in events:
                self._process(event)

    def update(self, now: float):
        """Called by the scheduler as the clock advances."""

    def done(self):
        """Called once at the end of the run."""

    def _process(self, event: ConnectivityEvent):
        raise NotImplementedError

    def _emit(self, kind, host_a, host_b=None, extra=None):
        self.process(ConnectivityEvent(kind, self._now(), host_a, host_b, extra))

    # -------------------------
    # Listener interface
    # -------------------------
    def hosts_connected(self, host1, host2):
        self._emit(EventKind.CONNECT_UP, host1, host2, "up")

    def hosts_disconnected(self, host1, host2):
        self._emit(EventKind.CONNECT_DOWN, host1, host2, "down")

    def message_transferred(self, message, from_host, to_host, first_delivery: bool,
                            final_recipient: bool = False):
        if first_delivery:
            kind, extra = EventKind.MESSAGE_DELIVERED, MESSAGE_TRANS_DELIVERED
        elif final_recipient:
            kind, extra = EventKind.MESSAGE_DELIVERED_AGAIN, MESSAGE_TRANS_DELIVERED_AGAIN
        else:
            kind, extra = EventKind.MESSAGE_RELAYED, MESSAGE_TRANS_RELAYED
        self._emit(kind, from_host, to_host, extra)

    def new_message(self, message, from_host):
        self._emit(EventKind.MESSAGE_CREATED, from_host, None, str(message))

    def message_transfer_aborted(self, message, from_host, to_host):
        self._emit(EventKind.MESSAGE_ABORTED, from_host, to_host, str(message))

    def message_transfer_started(self, message, from_host, to_host):
        self._emit(EventKind.MESSAGE_TRANSFER_STARTED, from_host, to_host, str(message))

    def message_deleted(self, message, where, dropped: bool):
        kind = EventKind.MESSAGE_DROPPED if dropped else EventKind.MESSAGE_DELETED
        self._emit(kind, where, None, str(message))


class ConnectedTimeAggregator(ConnectivityEventAggregator):
    mode = ReportMode.SINGLE_CUTOFF

    def __init__(
        self,
        sink,
        cutoff: float = DEFAULT_CUTOFF,
        hosts: Iterable[Any] = (),
        clock: Optional[Callable[[], float]] = None,
        access_point_prefix: str = ACCESS_POINT_PREFIX,
    ):
        super().__init__(sink, clock, access_point_prefix)
        if cutoff < 0:
            raise ConfigError(f"Cutoff must not be negative, got {cutoff}")
        self.cutoff = cutoff
        self.connected_time: Dict[str, int] = {str(h): 0 for h in hosts}
        self.is_done = False

    def _counted_host(self, event: ConnectivityEvent) -> Optional[str]:
        if not self.is_access_point(event.host_a):
            return str(event.host_a)
        if event.host_b is not None and not self.is_access_point(event.host_b):
            return str(event.host_b)
        return None

    def _past_cutoff(self, now: float) -> bool:
        if now <= self.cutoff:
            return False
        for host, total in self.connected_time.items():
            self.sink.write(f"{host} {total}")
        self.is_done = True
        logger.info("Connected time of %d hosts written at t=%s", len(self.connected_time), now)
        return True

    def _process(self, event: ConnectivityEvent):
        if self.is_done or self._past_cutoff(float(event.timestamp)):
            return
        if event.kind is EventKind.CONNECT_UP:
            host = self._counted_host(event)
            if host is not None:
                self.connected_time[host] = self.connected_time.get(host, 0) + 1

    def update(self, now: float):
        with self._lock:
            if not self.is_done:
                self._past_cutoff(float(now))

    def done(self):
        if not self.is_done:
            logger.warning("Run ended before the cutoff (%s); no connected time written", self.cutoff)


class BucketedConnectivityAggregator(ConnectivityEventAggregator):
    mode = ReportMode.BUCKETED

    def __init__(
        self,
        sink,
        granularity: int = 1,
        access_point_index: Optional[int] = None,
        access_point_count: int = DEFAULT_ACCESS_POINT_COUNT,
        access_point_prefix: str = ACCESS_POINT_PREFIX,
        index_width: int = 2,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(sink, clock, access_point_prefix)
        if granularity is None or granularity <= 0:
            raise ConfigError(f"Granularity must be positive, got {granularity}")
        if access_point_count <= 0:
            raise ConfigError(f"Access point count must be positive, got {access_point_count}")
        if access_point_index is not None and not 0 <= access_point_index < access_point_count:
            raise ConfigError(
                f"Access point index {access_point_index} outside 0..{access_point_count - 1}"
            )
        if index_width <= 0:
            raise ConfigError(f"Index width must be positive, got {index_width}")
        self.granularity = granularity
        self.access_point_index = access_point_index
        self.index_width = index_width
        self.counts: List[int] = [0] * access_point_count
        self._counter_owners: Dict[int, str] = {}
        self.bucket = 0.0
        self.total_hosts_connected = 0
        self.closed = False

    def parse_access_point_index(self, host) -> int:
        """
        Counter index of an access point id.

        The id must end in at least ``index_width`` digits after the prefix;
        the last ``index_width`` of them pick the counter, so
        ``AccessPoint117`` counts on counter 17. Two different access points
        that end up on the same counter raise ``RangeError``.
        """
        name = str(host)
        pos = name.find(self.access_point_prefix)
        if pos < 0:
            raise ParseError(f"{name!r} is not an access point")
        suffix = name[pos + len(self.access_point_prefix):]
        if len(suffix) < self.index_width or not _DIGITS.fullmatch(suffix):
            raise ParseError(
                f"Access point {name!r} has no {self.index_width}-digit numeric suffix"
            )
        index = int(suffix[-self.index_width:])
        if index >= len(self.counts):
            raise RangeError(
                f"Access point {name!r} maps to counter {index}, only {len(self.counts)} exist"
            )
        owner = self._counter_owners.setdefault(index, name)
        if owner != name:
            raise RangeError(f"Access points {owner!r} and {name!r} share counter {index}")
        return index

    def value(self) -> int:
        if self.access_point_index is None:
            return sum(self.counts)
        return self.counts[self.access_point_index]

    def _flush_bucket(self):
        self.total_hosts_connected = sum(self.counts)
        if self.bucket % self.granularity == 0:
            self.sink.write(f"{format_time(self.bucket)} {self.value()}")

    def _apply(self, event: ConnectivityEvent):
        if not event.kind.is_connection:
            return
        if self.is_access_point(event.host_a):
            index = self.parse_access_point_index(event.host_a)
        elif self.is_access_point(event.host_b):
            index = self.parse_access_point_index(event.host_b)
        else:
            return

        if event.kind is EventKind.CONNECT_UP:
            self.counts[index] += 1
        elif self.counts[index] == 0:
            raise StateError(
                f"Disconnect at t={event.timestamp} from access point {index} "
                f"({event.host_a}, {event.host_b}) without a matching connect"
            )
        else:
            self.counts[index] -= 1

    def _process(self, event: ConnectivityEvent):
        if self.closed:
            raise StateError("Event received after the report was closed")
        t = float(event.timestamp)
        if t < self.bucket:
            raise StateError(f"Event at t={t} arrived after bucket t={self.bucket}")
        if t != self.bucket:
            self._flush_bucket()
            self.bucket = t
        self._apply(event)

    def done(self):
        with self._lock:
            if not self.closed:
                self._flush_bucket()
                self.closed = True


def from_settings(settings, sink, clock=None) -> ConnectivityEventAggregator:
    """Build the report configured in ``settings`` (``reportMode`` picks the variant)."""
    mode = settings.get("reportMode", ReportMode.BUCKETED.value)
    prefix = settings.get("accessPointPrefix", ACCESS_POINT_PREFIX)
    if mode == ReportMode.SINGLE_CUTOFF.value:
        return ConnectedTimeAggregator(
            sink,
            cutoff=settings.get_float("cutoff", DEFAULT_CUTOFF),
            hosts=settings.get("hosts", ()),
            clock=clock,
            access_point_prefix=prefix,
        )
    if mode == ReportMode.BUCKETED.value:
        return BucketedConnectivityAggregator(
            sink,
            granularity=settings.get_int(GRANULARITY_S, 1),
            access_point_index=settings.get_int(ACCESS_POINT_S, None),
            access_point_count=settings.get_int("accessPointCount", DEFAULT_ACCESS_POINT_COUNT),
            access_point_prefix=prefix,
            clock=clock,
        )
    raise ConfigError(f"Unknown report mode {mode!r}")

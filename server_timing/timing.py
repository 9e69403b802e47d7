from __future__ import annotations

import asyncio
import inspect
import logging
import math
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Tuple, TypeVar, Union

from .schemas.timing_label import LabelSpec, TimingLabel
from .utils.errors import NestingError, NotStartedError
from .utils.formatting import format_duration, format_number
from .utils.validation import normalize_label, validate_precision

logger = logging.getLogger(__name__)

HEADER_KEY = "Server-Timing"
MAX_GROUP_DEPTH = 1

T = TypeVar("T")
RawTiming = Union[str, Tuple[str, Union[float, str]], List[Any]]


async def _resolve(awaitable: Awaitable[T]) -> T:
    return await awaitable


@dataclass
class TimingEntry:
    label: str
    description: Optional[str] = None
    duration: Optional[float] = None
    started_at: Optional[int] = None
    ended_at: Optional[int] = None

    @property
    def running(self) -> bool:
        return self.started_at is not None and self.ended_at is None and self.duration is None

    @property
    def finished(self) -> bool:
        return self.ended_at is not None

    @property
    def instantaneous(self) -> bool:
        return self.duration is not None and self.started_at is None

    @property
    def is_note(self) -> bool:
        return self.duration is None and self.started_at is None

    @property
    def display_label(self) -> str:
        if self.description:
            return f"{self.label} ({self.description})"
        return self.label


class ServerTiming:
    """Collect latency measurements for one request and render them as a
    ``Server-Timing`` header value.

    Usage:
      timing = ServerTiming()
      timing.start("db"); ...work...; timing.end("db")
      users = timing.track({"label": "cache", "desc": "Cache Read"}, cache.get, "users")
      rows = await timing.track("db.orders", fetch_orders)
      with timing.measure("render"):
          ...
      response.headers[timing.header_key] = str(timing)  # "db;dur=12.3, ..."

    Mutators return the ledger so calls can be chained. Reading the header is
    side effect free: timers that are still running are rendered against the
    current clock, so repeated reads show growing durations.
    """

    header_key = HEADER_KEY

    def __init__(
        self,
        precision: Union[int, float] = math.inf,
        *,
        clock: Callable[[], int] = time.perf_counter_ns,
    ) -> None:
        self.precision = validate_precision(precision)
        self.depth = 0
        self._clock = clock
        self._timings: List[Union[TimingEntry, ServerTiming]] = []

    @property
    def entries(self) -> Tuple[Union[TimingEntry, "ServerTiming"], ...]:
        return tuple(self._timings)

    def _append(self, detailed: TimingLabel, started_at: Optional[int] = None) -> TimingEntry:
        entry = TimingEntry(
            label=detailed.label,
            description=detailed.description,
            duration=detailed.duration,
            started_at=started_at,
        )
        self._timings.append(entry)
        return entry

    def _stop(self, entry: TimingEntry) -> None:
        entry.ended_at = self._clock()

    def _find(self, label: str) -> Optional[TimingEntry]:
        # earliest running match wins; otherwise the earliest entry with the label
        fallback: Optional[TimingEntry] = None
        for item in self._timings:
            if isinstance(item, ServerTiming) or item.label != label:
                continue
            if item.running:
                return item
            if fallback is None:
                fallback = item
        return fallback

    def add(self, spec: LabelSpec) -> "ServerTiming":
        """Add an entry without starting a timer.

        Useful for notes such as ``"cache.miss"`` or for durations measured
        elsewhere: ``timing.add({"label": "db", "dur": 53})``.
        """
        self._append(normalize_label(spec))
        return self

    def start(self, spec: LabelSpec) -> "ServerTiming":
        detailed = normalize_label(spec)
        self._append(detailed, started_at=self._clock())
        return self

    def end(self, spec: LabelSpec) -> "ServerTiming":
        """Stop the timer started for this label.

        Raises :class:`NotStartedError` if nothing in this ledger carries the
        label. Nested groups are not searched.
        """
        label = normalize_label(spec).label
        entry = self._find(label)
        if entry is None:
            logger.debug("end called for unknown timing %s", label)
            raise NotStartedError(label)
        self._stop(entry)
        return self

    def track(self, spec: LabelSpec, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Time ``fn(*args, **kwargs)`` and return its result.

        When ``fn`` is a coroutine function, or returns an awaitable, a
        coroutine is returned instead:

          rows = await timing.track("db", fetch_rows, user_id)

        Its entry is only added once that coroutine starts running, so a task
        cancelled before its first step leaves nothing behind. Futures returned
        by ``fn`` are timed until they are done.

        The timer is stopped whether the call succeeds, raises or is
        cancelled, and the original exception propagates unchanged.
        """
        detailed = normalize_label(spec)
        if inspect.iscoroutinefunction(fn):
            return self._track_async(detailed, fn, *args, **kwargs)  # type: ignore[return-value]

        entry = self._append(detailed, started_at=self._clock())
        try:
            result = fn(*args, **kwargs)
        except BaseException:
            self._stop(entry)
            raise
        if asyncio.isfuture(result):
            result.add_done_callback(lambda _: self._stop(entry))
            return result
        if inspect.isawaitable(result):
            # the coroutine has not run yet; time it from its first step
            self._discard(entry)
            return self._track_async(detailed, _resolve, result)  # type: ignore[return-value]
        self._stop(entry)
        return result

    async def _track_async(
        self, detailed: TimingLabel, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        entry = self._append(detailed, started_at=self._clock())
        try:
            return await fn(*args, **kwargs)
        finally:
            self._stop(entry)

    def _discard(self, entry: TimingEntry) -> None:
        for index, item in enumerate(self._timings):
            if item is entry:
                del self._timings[index]
                return

    @contextmanager
    def measure(self, spec: LabelSpec) -> Iterator["ServerTiming"]:
        """Time the body of a ``with`` block."""
        entry = self._append(normalize_label(spec), started_at=self._clock())
        try:
            yield self
        finally:
            self._stop(entry)

    def group(self) -> "ServerTiming":
        """Append a nested ledger and return it.

        The group renders as a single fragment at its position. Groups cannot
        contain groups.
        """
        if self.depth >= MAX_GROUP_DEPTH:
            raise NestingError()
        nested = ServerTiming(self.precision, clock=self._clock)
        nested.depth = self.depth + 1
        self._timings.append(nested)
        return nested

    def _render_entry(self, entry: TimingEntry, now: int) -> str:
        value = entry.label
        if entry.description:
            value += f';desc="{entry.description}"'
        if entry.duration is not None:
            value += f";dur={format_number(entry.duration)}"
        elif entry.started_at is not None:
            ended_at = entry.ended_at if entry.ended_at is not None else now
            value += f";dur={format_number(format_duration(entry.started_at, ended_at, self.precision))}"
        return value

    def _fragments(self, now: int) -> List[str]:
        fragments = []
        for item in self._timings:
            if isinstance(item, ServerTiming):
                joined = ", ".join(item._fragments(now))
                if joined:
                    fragments.append(joined)
            else:
                fragments.append(self._render_entry(item, now))
        return fragments

    def fragments(self) -> List[str]:
        return self._fragments(self._clock())

    def render(self) -> str:
        """The full ``Server-Timing`` header value, entries joined by ``", "``."""
        return ", ".join(self.fragments())

    def headers(self) -> List[Tuple[str, str]]:
        """One ``(header_key, value)`` pair per top-level entry.

        Appending every pair to a multi-valued header container is
        equivalent to setting :meth:`render` once:

          for key, value in timing.headers():
              response.headers.append(key, value)
        """
        return [(self.header_key, fragment) for fragment in self.fragments()]

    def _raw(self, now: int) -> List[RawTiming]:
        raw: List[RawTiming] = []
        for item in self._timings:
            if isinstance(item, ServerTiming):
                raw.append(item._raw(now))
            elif item.duration is not None:
                raw.append((item.display_label, item.duration))
            elif item.started_at is not None:
                ended_at = item.ended_at if item.ended_at is not None else now
                raw.append((item.display_label, format_duration(item.started_at, ended_at, self.precision)))
            else:
                raw.append(item.display_label)
        return raw

    def raw_timings(self) -> List[RawTiming]:
        """Timings for programmatic use rather than as a header.

        Notes become their label, timed entries a ``(label, duration)`` pair
        where the label carries the description as ``"label (description)"``.
        A group becomes a list of its own raw timings.
        """
        return self._raw(self._clock())

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"<ServerTiming depth={self.depth} entries={len(self._timings)}>"

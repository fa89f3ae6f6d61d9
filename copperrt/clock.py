"""Robot time: nanosecond durations, optional times, ranges and clocks."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Iterable, Optional, Union

from copperrt.codec import Decoder, Encoder

NONE_VALUE = 0xFFFF_FFFF_FFFF_FFFF

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000
_NS_PER_MIN = 60_000_000_000
_NS_PER_H = 3_600_000_000_000
_NS_PER_DAY = 86_400_000_000_000


@dataclass(frozen=True, order=True)
class CuDuration:
    """A non-negative duration in nanoseconds."""

    nanos: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.nanos, int) or isinstance(self.nanos, bool):
            raise TypeError(f"CuDuration needs an int, got {type(self.nanos).__name__}")
        if self.nanos < 0 or self.nanos > NONE_VALUE:
            raise OverflowError(f"{self.nanos} ns is out of range for a CuDuration")

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "CuDuration":
        """Build a duration from a timedelta."""
        seconds = delta.days * 86_400 + delta.seconds
        return cls(seconds * _NS_PER_S + delta.microseconds * _NS_PER_US)

    def to_timedelta(self) -> timedelta:
        """Convert to a timedelta (microsecond resolution)."""
        seconds, rest = divmod(self.nanos, _NS_PER_S)
        return timedelta(seconds=seconds, microseconds=rest // _NS_PER_US)

    def max(self, other: "CuDuration") -> "CuDuration":
        return self if self.nanos > other.nanos else other

    def min(self, other: "CuDuration") -> "CuDuration":
        return self if self.nanos < other.nanos else other

    def encode(self, encoder: Encoder) -> None:
        encoder.write_u64(self.nanos)

    @classmethod
    def decode(cls, decoder: Decoder) -> "CuDuration":
        return cls(decoder.read_u64())

    def __int__(self) -> int:
        return self.nanos

    def __add__(self, other: "CuDuration") -> "CuDuration":
        if not isinstance(other, CuDuration):
            return NotImplemented
        return CuDuration(self.nanos + other.nanos)

    def __sub__(self, other: "CuDuration") -> "CuDuration":
        if not isinstance(other, CuDuration):
            return NotImplemented
        return CuDuration(self.nanos - other.nanos)

    def __mul__(self, factor: int) -> "CuDuration":
        if not isinstance(factor, int) or isinstance(factor, bool):
            return NotImplemented
        return CuDuration(self.nanos * factor)

    __rmul__ = __mul__

    def __floordiv__(self, divisor: int) -> "CuDuration":
        if not isinstance(divisor, int) or isinstance(divisor, bool):
            return NotImplemented
        return CuDuration(self.nanos // divisor)

    __truediv__ = __floordiv__

    def __str__(self) -> str:
        n = self.nanos
        if n >= _NS_PER_DAY:
            return f"{n / _NS_PER_DAY:.3f} d"
        if n >= _NS_PER_H:
            return f"{n / _NS_PER_H:.3f} h"
        if n >= _NS_PER_MIN:
            return f"{n / _NS_PER_MIN:.3f} m"
        if n >= _NS_PER_S:
            return f"{n / _NS_PER_S:.3f} s"
        if n >= _NS_PER_MS:
            return f"{n / _NS_PER_MS:.3f} ms"
        if n >= _NS_PER_US:
            return f"{n / _NS_PER_US:.3f} µs"
        return f"{n} ns"


CuDuration.MIN = CuDuration(0)
CuDuration.MAX = CuDuration(NONE_VALUE - 1)

CuTime = CuDuration


@dataclass(frozen=True)
class OptionCuTime:
    """An optional time using the maximum value as the missing marker."""

    value: CuDuration = field(default_factory=lambda: CuDuration(NONE_VALUE))

    @classmethod
    def none(cls) -> "OptionCuTime":
        return cls(CuDuration(NONE_VALUE))

    def is_none(self) -> bool:
        return self.value.nanos == NONE_VALUE

    def unwrap(self) -> CuDuration:
        """Return the time, raising ValueError when it is missing."""
        if self.is_none():
            raise ValueError("called unwrap() on a missing OptionCuTime")
        return self.value

    @classmethod
    def from_optional(cls, value: Optional[CuDuration]) -> "OptionCuTime":
        return cls.none() if value is None else cls(value)

    def to_optional(self) -> Optional[CuDuration]:
        return None if self.is_none() else self.value

    def __str__(self) -> str:
        return "None" if self.is_none() else str(self.value)


@dataclass(frozen=True)
class CuTimeRange:
    """A closed range of times."""

    start: CuDuration
    end: CuDuration

    @classmethod
    def from_times(cls, times: Iterable[CuDuration]) -> "CuTimeRange":
        """Build the range spanning all given times."""
        collected = list(times)
        if not collected:
            raise ValueError("cannot build a time range from no times")
        return cls(start=min(collected), end=max(collected))


@dataclass
class PartialCuTimeRange:
    """A time range whose bounds may be missing."""

    start: OptionCuTime = field(default_factory=OptionCuTime.none)
    end: OptionCuTime = field(default_factory=OptionCuTime.none)


_Amount = Union[timedelta, CuDuration, int]


def _to_nanos(amount: _Amount) -> int:
    if isinstance(amount, timedelta):
        return CuDuration.from_timedelta(amount).nanos
    if isinstance(amount, CuDuration):
        return amount.nanos
    if isinstance(amount, int) and not isinstance(amount, bool):
        return amount
    raise TypeError(f"cannot use {type(amount).__name__} as a time amount")


class _MockTime:
    """A shared, manually driven time source."""

    def __init__(self) -> None:
        self._nanos = 0
        self._lock = threading.Lock()

    def read(self) -> int:
        with self._lock:
            return self._nanos

    def shift(self, delta: int) -> None:
        with self._lock:
            updated = self._nanos + delta
            if updated < 0 or updated > NONE_VALUE:
                raise OverflowError("mock time out of range")
            self._nanos = updated

    def set(self, value: int) -> None:
        if value < 0 or value > NONE_VALUE:
            raise OverflowError("mock time out of range")
        with self._lock:
            self._nanos = value


class RobotClockMock:
    """Controls the time seen by every copy of a mocked RobotClock."""

    def __init__(self, source: _MockTime) -> None:
        self._source = source

    def increment(self, amount: _Amount) -> None:
        self._source.shift(_to_nanos(amount))

    def decrement(self, amount: _Amount) -> None:
        """Move time backwards; this breaks monotonicity."""
        self._source.shift(-_to_nanos(amount))

    def value(self) -> int:
        return self._source.read()

    def now(self) -> CuDuration:
        return CuDuration(self._source.read())

    def set_value(self, value: int) -> None:
        self._source.set(value)


class RobotClock:
    """A monotonic clock counting from a reference instant.

    Copies share the same time source, so a mocked clock stays controlled
    by its mock after being copied.
    """

    def __init__(self) -> None:
        self._source: Callable[[], int] = time.monotonic_ns
        self._ref_time = self._source()

    @classmethod
    def from_ref_time(cls, ref_time_ns: int) -> "RobotClock":
        """A clock whose current reading starts at ref_time_ns."""
        clock = cls()
        clock._ref_time -= ref_time_ns
        return clock

    @classmethod
    def mock(cls) -> tuple["RobotClock", RobotClockMock]:
        """A clock starting at zero that only moves when the mock says so."""
        source = _MockTime()
        clock = cls()
        clock._source = source.read
        clock._ref_time = source.read()
        return clock, RobotClockMock(source)

    def now(self) -> CuDuration:
        return CuDuration(self._source() - self._ref_time)

    def recent(self) -> CuDuration:
        """A possibly less precise reading of the current time."""
        return self.now()


class ClockProvider(ABC):
    """Something that can hand out the clock it runs on."""

    @abstractmethod
    def get_clock(self) -> RobotClock:
        """Return the clock."""
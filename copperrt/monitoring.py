"""Monitoring hooks and live statistics for the runtime and its tasks."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Sequence

from copperrt.clock import CuDuration, RobotClock
from copperrt.config import CuConfig, CuError
from copperrt.cutask import CuMsgMetadata

_log = logging.getLogger(__name__)


class CuTaskState(Enum):
    """The lifecycle step a task was in."""

    START = "start"
    PREPROCESS = "preprocess"
    PROCESS = "process"
    POSTPROCESS = "postprocess"
    STOP = "stop"


class Decision(Enum):
    """What the runtime should do after a task failed."""

    ABORT = "abort"
    IGNORE = "ignore"
    SHUTDOWN = "shutdown"


class CuMonitor(ABC):
    """Base class for monitors; constructors may raise ``CuError``."""

    def __init__(self, config: Optional[CuConfig] = None, taskids: Sequence[str] = ()) -> None:
        self.config = config
        self.taskids = tuple(taskids)

    def start(self, clock: RobotClock) -> None:
        """Called when the runtime starts."""

    @abstractmethod
    def process_copperlist(self, msgs: Sequence[CuMsgMetadata]) -> None:
        """Called at the end of every copper list."""

    @abstractmethod
    def process_error(self, taskid: int, step: CuTaskState, error: CuError) -> Decision:
        """Decide what to do about a task failure."""

    def stop(self, clock: RobotClock) -> None:
        """Called when the runtime stops."""


class NoMonitor(CuMonitor):
    """Monitor that watches nothing and asks to carry on after errors."""

    def process_copperlist(self, msgs: Sequence[CuMsgMetadata]) -> None:
        return None

    def process_error(self, taskid: int, step: CuTaskState, error: CuError) -> Decision:
        return Decision.IGNORE


# Histogram layout for 3 significant digits and a lowest discernible value of 1.
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF
_UNIT_MAGNITUDE = 0
_SUB_BUCKET_COUNT_MAGNITUDE = (2 * 10**3 - 1).bit_length()
_SUB_BUCKET_COUNT = 1 << _SUB_BUCKET_COUNT_MAGNITUDE
_SUB_BUCKET_HALF_COUNT_MAGNITUDE = _SUB_BUCKET_COUNT_MAGNITUDE - 1
_SUB_BUCKET_HALF_COUNT = _SUB_BUCKET_COUNT // 2
_SUB_BUCKET_MASK = (_SUB_BUCKET_COUNT - 1) << _UNIT_MAGNITUDE


def _bucket_index(value: int) -> int:
    return (value | _SUB_BUCKET_MASK).bit_length() - (_UNIT_MAGNITUDE + _SUB_BUCKET_COUNT_MAGNITUDE)


def _sub_bucket_index(value: int, bucket: int) -> int:
    return value >> (bucket + _UNIT_MAGNITUDE)


def _counts_index(value: int) -> int:
    bucket = _bucket_index(value)
    sub = _sub_bucket_index(value, bucket)
    return ((bucket + 1) << _SUB_BUCKET_HALF_COUNT_MAGNITUDE) + sub - _SUB_BUCKET_HALF_COUNT


def _value_for_index(index: int) -> int:
    bucket = (index >> _SUB_BUCKET_HALF_COUNT_MAGNITUDE) - 1
    sub = (index & (_SUB_BUCKET_HALF_COUNT - 1)) + _SUB_BUCKET_HALF_COUNT
    if bucket < 0:
        sub -= _SUB_BUCKET_HALF_COUNT
        bucket = 0
    return sub << (bucket + _UNIT_MAGNITUDE)


def _lowest_equivalent(value: int) -> int:
    bucket = _bucket_index(value)
    return _sub_bucket_index(value, bucket) << (bucket + _UNIT_MAGNITUDE)


def _range_size(value: int) -> int:
    bucket = _bucket_index(value)
    if _sub_bucket_index(value, bucket) >= _SUB_BUCKET_COUNT:
        bucket += 1
    return 1 << (_UNIT_MAGNITUDE + bucket)


def _highest_equivalent(value: int) -> int:
    return min(_lowest_equivalent(value) + _range_size(value) - 1, _U64_MAX)


def _median_equivalent(value: int) -> int:
    return _lowest_equivalent(value) + (_range_size(value) >> 1)


def _buckets_to_cover(value: int) -> int:
    smallest_untrackable = _SUB_BUCKET_COUNT << _UNIT_MAGNITUDE
    needed = 1
    while smallest_untrackable <= value:
        if smallest_untrackable > _U64_MAX // 2:
            return needed + 1
        smallest_untrackable <<= 1
        needed += 1
    return needed


class _Histogram:
    """A high dynamic range histogram keeping 3 significant digits."""

    def __init__(self, highest: Optional[int]) -> None:
        self._limit = (
            None
            if highest is None
            else (_buckets_to_cover(highest) + 1) * _SUB_BUCKET_HALF_COUNT
        )
        self.reset()

    def reset(self) -> None:
        self._counts: dict[int, int] = {}
        self.total = 0
        self._max_value = 0
        self._min_non_zero = _U64_MAX

    def record(self, value: int) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"cannot record {type(value).__name__}")
        if value < 0 or value > _U64_MAX:
            raise ValueError(f"value {value} is out of range")
        index = _counts_index(value)
        if self._limit is not None and index >= self._limit:
            raise ValueError(f"value {value} is beyond the trackable range")
        self._counts[index] = self._counts.get(index, 0) + 1
        self.total += 1
        self._max_value = max(self._max_value, value)
        if value != 0:
            self._min_non_zero = min(self._min_non_zero, value)

    def _recorded(self) -> list[tuple[int, int]]:
        return [(_value_for_index(i), self._counts[i]) for i in sorted(self._counts)]

    def min(self) -> int:
        if self.total == 0 or self._counts.get(0, 0) != 0:
            return 0
        return _lowest_equivalent(self._min_non_zero)

    def max(self) -> int:
        if self._max_value == 0:
            return 0
        return _highest_equivalent(self._max_value)

    def mean(self) -> float:
        if self.total == 0:
            return 0.0
        weighted = sum(_median_equivalent(v) * c for v, c in self._recorded())
        return weighted / self.total

    def stdev(self) -> float:
        if self.total == 0:
            return 0.0
        mean = self.mean()
        deviations = sum(
            (_median_equivalent(v) - mean) ** 2 * c for v, c in self._recorded()
        )
        return math.sqrt(deviations / self.total)

    def value_at_quantile(self, quantile: float) -> int:
        quantile = min(quantile, 1.0)
        wanted = max(1, math.ceil(quantile * self.total))
        running = 0
        for value, count in self._recorded():
            running += count
            if running >= wanted:
                if quantile == 0.0:
                    return _lowest_equivalent(value)
                return _highest_equivalent(value)
        return 0


class LiveStatistics:
    """Accumulating statistics over non-negative integer samples."""

    def __init__(self, max_value: Optional[int] = None) -> None:
        if max_value is not None and (max_value < 2 or max_value > _U64_MAX // 2):
            raise ValueError(f"invalid highest trackable value {max_value}")
        self._hist = _Histogram(max_value)

    @classmethod
    def new_unbounded(cls) -> "LiveStatistics":
        return cls()

    @classmethod
    def new_with_max(cls, max_value: int) -> "LiveStatistics":
        return cls(max_value)

    def min(self) -> int:
        return self._hist.min()

    def max(self) -> int:
        return self._hist.max()

    def mean(self) -> float:
        return self._hist.mean()

    def stddev(self) -> float:
        return self._hist.stdev()

    def percentile(self, percentile: float) -> int:
        """Value at the given quantile, with percentile between 0 and 1."""
        return self._hist.value_at_quantile(percentile)

    def record(self, value: int) -> None:
        """Add a sample; samples outside the range are logged and dropped."""
        try:
            self._hist.record(value)
        except (ValueError, TypeError) as exc:
            _log.debug("stats.record errored out: %s", exc)

    def _record_strict(self, value: int) -> None:
        self._hist.record(value)

    def __len__(self) -> int:
        return self._hist.total

    def is_empty(self) -> bool:
        return self._hist.total == 0

    def reset(self) -> None:
        self._hist.reset()


class CuDurationStatistics:
    """Statistics over durations, also tracking the jitter between samples."""

    def __init__(self, max_duration: CuDuration) -> None:
        self.bare = LiveStatistics.new_with_max(max_duration.nanos)
        self.jitter = LiveStatistics.new_with_max(max_duration.nanos)
        self.last_value = CuDuration()

    def min(self) -> CuDuration:
        return CuDuration(self.bare.min())

    def max(self) -> CuDuration:
        return CuDuration(self.bare.max())

    def mean(self) -> CuDuration:
        return CuDuration(int(self.bare.mean()))

    def percentile(self, percentile: float) -> CuDuration:
        return CuDuration(self.bare.percentile(percentile))

    def stddev(self) -> CuDuration:
        return CuDuration(int(self.bare.stddev()))

    def __len__(self) -> int:
        return len(self.bare)

    def is_empty(self) -> bool:
        return self.bare.is_empty()

    def jitter_min(self) -> CuDuration:
        return CuDuration(self.jitter.min())

    def jitter_max(self) -> CuDuration:
        return CuDuration(self.jitter.max())

    def jitter_mean(self) -> CuDuration:
        return CuDuration(int(self.jitter.mean()))

    def jitter_stddev(self) -> CuDuration:
        return CuDuration(int(self.jitter.stddev()))

    def jitter_percentile(self, percentile: float) -> CuDuration:
        return CuDuration(self.jitter.percentile(percentile))

    def record(self, value: CuDuration) -> None:
        """Add a sample; raises ValueError when it is out of range."""
        if self.bare.is_empty():
            self.bare._record_strict(value.nanos)
            self.last_value = value
            return
        self.bare._record_strict(value.nanos)
        self.jitter._record_strict(abs(value.nanos - self.last_value.nanos))
        self.last_value = value

    def reset(self) -> None:
        self.bare.reset()
        self.jitter.reset()
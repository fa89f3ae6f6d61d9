"""Messages exchanged between tasks and the base classes tasks derive from."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, Optional, Tuple, TypeVar, Union

from copperrt.clock import CuDuration, CuTimeRange, PartialCuTimeRange, RobotClock
from copperrt.codec import Decoder, DecodeError, Encoder

T = TypeVar("T")

# Time of validity: nothing, a single instant or a range of instants.
Tov = Optional[Union[CuDuration, CuTimeRange]]


@dataclass(frozen=True)
class CuCompactString:
    """A short status string carried in message metadata."""

    text: str = ""

    def __str__(self) -> str:
        return self.text

    def encode(self, encoder: Encoder) -> None:
        """Write the string as length-prefixed UTF-8 bytes."""
        encoder.write_bytes(self.text.encode("utf-8"))

    @classmethod
    def decode(cls, decoder: Decoder) -> "CuCompactString":
        """Read a string written by ``encode``."""
        raw = decoder.read_bytes()
        try:
            return cls(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid UTF-8 in string: {exc}") from exc


@dataclass
class CuMsgMetadata:
    """Metadata common to every message."""

    process_time: PartialCuTimeRange = field(default_factory=PartialCuTimeRange)
    tov: Tov = None
    status_txt: CuCompactString = field(default_factory=CuCompactString)

    def set_status(self, status: Any) -> None:
        """Set the short status text shown for live feedback."""
        self.status_txt = CuCompactString(str(status))

    def __str__(self) -> str:
        return (
            f"process_time start: {self.process_time.start}, "
            f"process_time end: {self.process_time.end}"
        )


@dataclass
class CuMsg(Generic[T]):
    """The envelope holding a payload and its metadata."""

    payload: Optional[T] = None
    metadata: CuMsgMetadata = field(default_factory=CuMsgMetadata)

    def set_payload(self, payload: T) -> None:
        self.payload = payload

    def clear_payload(self) -> None:
        self.payload = None


class Freezable:
    """State that the framework can snapshot and restore.

    ``frozen_fields`` names the attributes that make up the state; each must
    hold a value with ``encode(encoder)`` and a ``decode(decoder)`` class
    method. The default is stateless: nothing is written and nothing is
    read back.
    """

    frozen_fields: ClassVar[Tuple[str, ...]] = ()

    def freeze(self, encoder: Encoder) -> None:
        """Write the task state to encoder."""
        for name in self.frozen_fields:
            getattr(self, name).encode(encoder)

    def thaw(self, decoder: Decoder) -> None:
        """Restore the task state from decoder."""
        for name in self.frozen_fields:
            current = getattr(self, name)
            setattr(self, name, type(current).decode(decoder))


class CuSrcTask(Freezable, ABC):
    """A task that only produces messages, such as a sensor driver.

    Subclasses take their optional ``ComponentConfig`` in the constructor.
    Failures are reported by raising ``CuError``. ``running`` tells whether
    the task is between ``start`` and ``stop``; ``last_cycle_time`` is the
    clock time of the latest pre- or postprocess call.
    """

    running: bool = False
    last_cycle_time: Optional[CuDuration] = None

    def start(self, clock: RobotClock) -> None:
        """Called once before the first preprocess/process."""
        self.running = True

    def preprocess(self, clock: RobotClock) -> None:
        """Best-effort work done before process."""
        self.last_cycle_time = clock.now()

    @abstractmethod
    def process(self, clock: RobotClock, new_msg: CuMsg) -> None:
        """Fill new_msg as quickly as possible."""

    def postprocess(self, clock: RobotClock) -> None:
        """Best-effort work done after process."""
        self.last_cycle_time = clock.now()

    def stop(self, clock: RobotClock) -> None:
        """Called when process will not be called until the next start."""
        self.running = False


class CuTask(Freezable, ABC):
    """A task deriving an output message from its input messages."""

    running: bool = False
    last_cycle_time: Optional[CuDuration] = None

    def start(self, clock: RobotClock) -> None:
        """Called once before the first preprocess/process."""
        self.running = True

    def preprocess(self, clock: RobotClock) -> None:
        """Best-effort work done before process."""
        self.last_cycle_time = clock.now()

    @abstractmethod
    def process(self, clock: RobotClock, input: Any, output: CuMsg) -> None:
        """Compute output from input as quickly as possible."""

    def postprocess(self, clock: RobotClock) -> None:
        """Best-effort work done after process."""
        self.last_cycle_time = clock.now()

    def stop(self, clock: RobotClock) -> None:
        """Called when process will not be called until the next start."""
        self.running = False


class CuSinkTask(Freezable, ABC):
    """A task that only consumes messages, such as an actuator driver."""

    running: bool = False
    last_cycle_time: Optional[CuDuration] = None

    def start(self, clock: RobotClock) -> None:
        """Called once before the first preprocess/process."""
        self.running = True

    def preprocess(self, clock: RobotClock) -> None:
        """Best-effort work done before process."""
        self.last_cycle_time = clock.now()

    @abstractmethod
    def process(self, clock: RobotClock, input: Any) -> None:
        """Consume input as quickly as possible."""

    def postprocess(self, clock: RobotClock) -> None:
        """Best-effort work done after process."""
        self.last_cycle_time = clock.now()

    def stop(self, clock: RobotClock) -> None:
        """Called when process will not be called until the next start."""
        self.running = False
"""Hooks for running tasks under a simulator.

A simulator receives a ``CuTaskCallbackState`` at each lifecycle step of a
task and answers with a ``SimOverride`` telling the runtime whether the
simulator handled the step, whether the real implementation should run,
or whether the step should be treated as failed.

``CuSimSrcTask`` and ``CuSimSinkTask`` stand in for hardware drivers: they
initialise nothing, and their ``process`` must always be taken over by the
simulator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from copperrt.clock import RobotClock
from copperrt.config import ComponentConfig, CuError
from copperrt.cutask import CuMsg, CuSinkTask, CuSrcTask


class CallbackStep(Enum):
    """The lifecycle step being reported to the simulator."""

    NEW = "new"
    START = "start"
    PREPROCESS = "preprocess"
    PROCESS = "process"
    POSTPROCESS = "postprocess"
    STOP = "stop"


@dataclass
class CuTaskCallbackState:
    """A lifecycle step with the data that goes with it.

    ``config`` is only given for ``NEW``; ``input`` and ``output`` only for
    ``PROCESS``. A source task gets an empty message as input and a sink
    task an empty message as output.
    """

    step: CallbackStep
    config: Optional[ComponentConfig] = None
    input: Any = None
    output: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.step, CallbackStep):
            raise TypeError(f"step must be a CallbackStep, got {self.step!r}")
        if self.config is not None and self.step is not CallbackStep.NEW:
            raise ValueError("only the NEW step carries a configuration")
        if (self.input is not None or self.output is not None) and (
            self.step is not CallbackStep.PROCESS
        ):
            raise ValueError("only the PROCESS step carries messages")


class SimOverrideKind(Enum):
    """How the simulator answered a callback."""

    EXECUTED_BY_SIM = "executed_by_sim"
    EXECUTE_BY_RUNTIME = "execute_by_runtime"
    ERRORED = "errored"


@dataclass(frozen=True)
class SimOverride:
    """The simulator's answer; ``message`` is set only for errors."""

    kind: SimOverrideKind
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, SimOverrideKind):
            raise TypeError(f"kind must be a SimOverrideKind, got {self.kind!r}")
        if self.kind is SimOverrideKind.ERRORED:
            if not isinstance(self.message, str):
                raise ValueError("an errored override needs a message")
        elif self.message is not None:
            raise ValueError("only an errored override carries a message")

    @classmethod
    def errored(cls, message: str) -> "SimOverride":
        """Make the step behave as if the task had failed with message."""
        return cls(SimOverrideKind.ERRORED, message)


SimOverride.EXECUTED_BY_SIM = SimOverride(SimOverrideKind.EXECUTED_BY_SIM)
SimOverride.EXECUTE_BY_RUNTIME = SimOverride(SimOverrideKind.EXECUTE_BY_RUNTIME)


def _unhandled_process(role: str) -> CuError:
    return CuError(
        f"A placeholder for sim was called for a {role}, you need answer "
        "SimOverride to ExecutedBySim for the Process step."
    )


class CuSimSrcTask(CuSrcTask):
    """Placeholder source task that touches no hardware.

    ``unhandled_process_calls`` counts the process calls the simulator
    failed to take over.
    """

    def __init__(self, config: Optional[ComponentConfig] = None) -> None:
        self.config = config
        self.unhandled_process_calls = 0

    def process(self, clock: RobotClock, new_msg: CuMsg) -> None:
        self.unhandled_process_calls += 1
        raise _unhandled_process("source")


class CuSimSinkTask(CuSinkTask):
    """Placeholder sink task that touches no hardware.

    ``unhandled_process_calls`` counts the process calls the simulator
    failed to take over.
    """

    def __init__(self, config: Optional[ComponentConfig] = None) -> None:
        self.config = config
        self.unhandled_process_calls = 0

    def process(self, clock: RobotClock, input: Any) -> None:
        self.unhandled_process_calls += 1
        raise _unhandled_process("sink")
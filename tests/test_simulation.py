import pytest

from copperrt.clock import RobotClock
from copperrt.codec import Encoder
from copperrt.config import ComponentConfig, CuError
from copperrt.cutask import CuMsg
from copperrt.simulation import (
    CallbackStep,
    CuSimSinkTask,
    CuSimSrcTask,
    CuTaskCallbackState,
    SimOverride,
    SimOverrideKind,
)


def test_new_state_carries_config():
    config = ComponentConfig({"rate": 10})
    state = CuTaskCallbackState(CallbackStep.NEW, config=config)
    assert state.config is config
    assert state.input is None and state.output is None


def test_process_state_carries_messages():
    incoming = CuMsg(payload=3)
    outgoing = CuMsg()
    state = CuTaskCallbackState(CallbackStep.PROCESS, input=incoming, output=outgoing)
    state.output.set_payload(state.input.payload)
    assert outgoing.payload == 3


def test_config_outside_new_is_rejected():
    with pytest.raises(ValueError):
        CuTaskCallbackState(CallbackStep.START, config=ComponentConfig())


def test_messages_outside_process_is_rejected():
    with pytest.raises(ValueError):
        CuTaskCallbackState(CallbackStep.STOP, input=CuMsg())


def test_step_must_be_enum():
    with pytest.raises(TypeError):
        CuTaskCallbackState("start")


def test_errored_keeps_message():
    answer = SimOverride.errored("sensor unplugged")
    assert answer.kind is SimOverrideKind.ERRORED
    assert answer.message == "sensor unplugged"


def test_overrides_compare_by_value():
    assert SimOverride(SimOverrideKind.EXECUTED_BY_SIM) == SimOverride.EXECUTED_BY_SIM
    assert SimOverride.errored("a") == SimOverride.errored("a")
    assert SimOverride.EXECUTE_BY_RUNTIME.kind is SimOverrideKind.EXECUTE_BY_RUNTIME


def test_errored_without_message_is_rejected():
    with pytest.raises(ValueError):
        SimOverride(SimOverrideKind.ERRORED)


def test_message_on_non_error_is_rejected():
    with pytest.raises(ValueError):
        SimOverride(SimOverrideKind.EXECUTED_BY_SIM, "oops")


def test_callback_dispatch():
    def callback(state):
        if state.step is CallbackStep.PROCESS:
            state.output.set_payload(42)
            return SimOverride.EXECUTED_BY_SIM
        return SimOverride.EXECUTE_BY_RUNTIME

    out = CuMsg()
    assert callback(CuTaskCallbackState(CallbackStep.PROCESS, input=CuMsg(), output=out)) \
        == SimOverride.EXECUTED_BY_SIM
    assert out.payload == 42
    assert callback(CuTaskCallbackState(CallbackStep.START)) == SimOverride.EXECUTE_BY_RUNTIME


def test_sim_source_process_raises():
    clock, _ = RobotClock.mock()
    task = CuSimSrcTask(ComponentConfig({"a": 1}))
    assert task.config == {"a": 1}
    with pytest.raises(CuError, match="source"):
        task.process(clock, CuMsg())


def test_sim_sink_process_raises():
    clock, _ = RobotClock.mock()
    task = CuSimSinkTask()
    assert task.config is None
    with pytest.raises(CuError, match="sink"):
        task.process(clock, CuMsg(payload=1))


def test_sim_tasks_lifecycle_defaults_and_stateless_freeze():
    clock, _ = RobotClock.mock()
    for task in (CuSimSrcTask(), CuSimSinkTask()):
        assert task.start(clock) is None
        assert task.preprocess(clock) is None
        assert task.postprocess(clock) is None
        assert task.stop(clock) is None
        encoder = Encoder()
        task.freeze(encoder)
        assert encoder.getvalue() == b""
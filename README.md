# copperrt

Building blocks for a deterministic task-graph runtime, such as the
processing pipeline of a robot. Tasks are described in a RON configuration
file, ordered into an execution plan, and exchange their messages through
preallocated "copper lists".

## What is in the package

- `copperrt.config`: the configuration graph. `CuConfig` holds tasks
  (`Node`), connections (`Cnx`) and an optional `MonitorConfig`. Read one
  with `read_configuration(path)`, `read_configuration_str(text)` or
  `CuConfig.deserialize_ron(text)`; write it with `CuConfig.serialize_ron()`;
  draw it in the Graphviz dot format with `CuConfig.render(stream)`.
  Problems are raised as `CuError`.
- `copperrt.ron`: a RON reader and writer, `loads(text)` and
  `dumps(value, indent)`, raising `RonError` on bad input.
- `copperrt.curuntime`: `compute_runtime_plan(config)` orders the tasks from
  sources to sinks and gives every output a slot in the copper list, as a
  `CuExecutionLoop` of `CuExecutionStep`s. `CuRuntime` builds the tasks and
  the monitor, owns the copper lists and the clock, and through
  `end_of_processing(id)` hands finished lists to a `WriteStream` and frees
  them.
- `copperrt.copperlist`: `CuListsManager`, a fixed-capacity circular store of
  `CopperList` records with `create`, `peek`, `pop`, `clear`, `iter`
  (newest first) and `asc_iter` (oldest first).
- `copperrt.clock`: `CuDuration` (nanoseconds, with arithmetic and
  human-readable `str`), `OptionCuTime`, `CuTimeRange`, `PartialCuTimeRange`,
  and `RobotClock` with a controllable `RobotClockMock` for tests.
- `copperrt.cutask`: the `CuSrcTask`, `CuTask` and `CuSinkTask` base classes,
  `CuMsg` envelopes with `CuMsgMetadata`, and `Freezable` state snapshots.
- `copperrt.monitoring`: the `CuMonitor` base class, `NoMonitor` (always
  answers `Decision.IGNORE`), `LiveStatistics` (a histogram keeping three
  significant digits) and `CuDurationStatistics`, which also tracks the
  jitter between consecutive samples.
- `copperrt.simulation`: `CuSimSrcTask` and `CuSimSinkTask` placeholders,
  `CuTaskCallbackState` and the `SimOverride` answers a simulator gives.
- `copperrt.codec` and `copperrt.payload`: a compact varint binary
  `Encoder`/`Decoder` and the fixed-capacity `CuArray`.

## Installation

```
pip install copperrt
```

## Example

```python
from datetime import timedelta

from copperrt.clock import CuDuration, RobotClock
from copperrt.config import CuConfig, Node
from copperrt.curuntime import compute_runtime_plan

config = CuConfig()
camera = config.add_node(Node("camera", "drivers::Camera"))
detector = config.add_node(Node("detector", "vision::Detector"))
config.connect(camera, detector, "vision::Image")

text = config.serialize_ron()
again = CuConfig.deserialize_ron(text)

plan = compute_runtime_plan(again)
for step in plan.steps:
    print(step.node.id, step.task_type, step.output_msg_index_type)

clock, mock = RobotClock.mock()
mock.increment(timedelta(seconds=1))
assert clock.now() == CuDuration(1_000_000_000)
print(clock.now())  # 1.000 s
```

## Rendering a configuration

The `copperrt-rendercfg` command turns a configuration file into an SVG
graph. It needs Graphviz's `dot` program on the `PATH`.

```
copperrt-rendercfg copperconfig.ron
```

This writes `output.svg` in the current directory. With `--open` the SVG is
instead written to a temporary file and opened in Inkscape. The command
exits with status 1 when the file cannot be read or `dot` fails.

## What the package does not do

It plans the order of the tasks but contains no loop that runs that plan:
calling the tasks' `start`, `process` and `stop` methods is left to the
application. `WriteStream` is only a base class; no log file format is
provided for the copper lists handed to it.

## Running the tests

```
pip install copperrt[test]
pytest
```
"""The runtime core: the copper list lifecycle and the execution plan."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar, Union

from copperrt.clock import ClockProvider, RobotClock
from copperrt.config import ComponentConfig, CuConfig, CuError, Node, NodeId
from copperrt.copperlist import CopperList, CopperListState, CuListsManager
from copperrt.monitoring import CuMonitor

CT = TypeVar("CT")


class WriteStream(ABC):
    """A sink the runtime serializes finished copper lists into."""

    @abstractmethod
    def log(self, obj: Any) -> None:
        """Record obj; raise CuError on failure."""


class CuRuntime(ClockProvider, Generic[CT]):
    """Holds the tasks, the monitor, the copper lists and the clock."""

    def __init__(
        self,
        clock: RobotClock,
        config: CuConfig,
        tasks_instanciator: Callable[[list[Optional[ComponentConfig]]], CT],
        monitor_instanciator: Callable[[CuConfig], CuMonitor],
        logger: WriteStream,
        copper_list_count: int,
        msgs_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.tasks: CT = tasks_instanciator(config.get_all_instances_configs())
        self.monitor = monitor_instanciator(config)
        self.copper_lists_manager: CuListsManager = CuListsManager(
            copper_list_count, msgs_factory
        )
        self.clock = clock
        self._logger = logger

    def get_clock(self) -> RobotClock:
        return self.clock

    def available_copper_lists(self) -> int:
        """How many more copper lists can be created right now."""
        return self.copper_lists_manager.capacity - len(self.copper_lists_manager)

    def end_of_processing(self, culistid: int) -> None:
        """Mark a list done; serialize and free the done lists on top of the buffer."""
        is_top = True
        nb_done = 0
        for cl in self.copper_lists_manager.iter():
            if cl.id == culistid and cl.state is CopperListState.PROCESSING:
                cl.change_state(CopperListState.DONE_PROCESSING)
            if is_top and cl.state is CopperListState.DONE_PROCESSING:
                cl.change_state(CopperListState.BEING_SERIALIZED)
                self._logger.log(cl)
                cl.change_state(CopperListState.FREE)
                nb_done += 1
            else:
                is_top = False
        for _ in range(nb_done):
            self.copper_lists_manager.pop()


class CuTaskType(Enum):
    """Where a task sits in the graph."""

    SOURCE = "source"
    REGULAR = "regular"
    SINK = "sink"


@dataclass
class CuExecutionStep:
    """One task to run, with the copper list slots it reads and writes."""

    node_id: NodeId
    node: Node
    task_type: CuTaskType
    input_msg_indices_types: list[tuple[int, str]] = field(default_factory=list)
    output_msg_index_type: Optional[tuple[int, str]] = None

    def __str__(self) -> str:
        return (
            f"   CuExecutionStep: Node Id: {self.node_id}\n"
            f"                  task_type: {self.node.type_name!r}\n"
            f"                       task: {self.task_type.name}\n"
            f"              input_msg_types: {self.input_msg_indices_types!r}\n"
            f"       output_msg_type: {self.output_msg_index_type!r}\n"
        )


@dataclass
class CuExecutionLoop:
    """A sequence of steps or loops run loop_count times, forever if None."""

    steps: list[Union[CuExecutionStep, "CuExecutionLoop"]] = field(default_factory=list)
    loop_count: Optional[int] = None

    def __str__(self) -> str:
        body = "".join(str(step) for step in self.steps)
        return f"CuExecutionLoop:\n{body}   count: {self.loop_count!r}"


ExecutionUnit = Union[CuExecutionStep, CuExecutionLoop]


def _find_output_index_type(
    node_id: NodeId, steps: Sequence[ExecutionUnit]
) -> Optional[tuple[int, str]]:
    for unit in steps:
        if isinstance(unit, CuExecutionLoop):
            found = _find_output_index_type(node_id, unit.steps)
            if found is not None:
                return found
        elif unit.node_id == node_id:
            return unit.output_msg_index_type
    return None


def find_task_type_for_id(config: CuConfig, node_id: NodeId) -> CuTaskType:
    """Source without inputs, sink without outputs, regular otherwise."""
    if not config.get_dst_edges(node_id):
        return CuTaskType.SOURCE
    if not config.get_src_edges(node_id):
        return CuTaskType.SINK
    return CuTaskType.REGULAR


def _successors(config: CuConfig, node_id: NodeId) -> list[NodeId]:
    return [config.edges[e][1] for e in config.get_src_edges(node_id)]


def _parents(config: CuConfig, node_id: NodeId) -> list[NodeId]:
    return [config.edges[e][0] for e in config.get_dst_edges(node_id)]


def _first_output_msg(config: CuConfig, node_id: NodeId) -> str:
    edges = config.get_src_edges(node_id)
    if not edges:
        node = config.get_node(node_id)
        name = node.id if node is not None else node_id
        raise CuError(f"Task {name} has no outgoing connection")
    return config.edges[edges[0]][2].msg


def _plan_branch(
    config: CuConfig, next_index: int, start: NodeId, plan: list[ExecutionUnit]
) -> int:
    discovered = {start}
    queue = deque([start])
    while queue:
        node_id = queue.popleft()
        for succ in _successors(config, node_id):
            if succ not in discovered:
                discovered.add(succ)
                queue.append(succ)

        node = config.get_node(node_id)
        task_type = find_task_type_for_id(config, node_id)
        inputs: list[tuple[int, str]] = []

        if task_type is CuTaskType.SOURCE:
            output = (next_index, _first_output_msg(config, node_id))
        else:
            for parent in _parents(config, node_id):
                found = _find_output_index_type(parent, plan)
                if found is None:
                    # Wait until every input has been produced earlier in the list.
                    return next_index
                inputs.append(found)
            if task_type is CuTaskType.SINK:
                output = (next_index, "()")
            else:
                output = (next_index, _first_output_msg(config, node_id))
        next_index += 1

        inputs.sort(key=lambda item: item[0])

        position = next(
            (
                i
                for i, unit in enumerate(plan)
                if isinstance(unit, CuExecutionStep) and unit.node_id == node_id
            ),
            None,
        )
        if position is not None:
            step = plan.pop(position)
            step.input_msg_indices_types = inputs
            plan.append(step)
        else:
            plan.append(
                CuExecutionStep(
                    node_id=node_id,
                    node=copy.deepcopy(node),
                    task_type=task_type,
                    input_msg_indices_types=inputs,
                    output_msg_index_type=output,
                )
            )
    return next_index


def compute_runtime_plan(config: CuConfig) -> CuExecutionLoop:
    """Order the tasks so every task runs after the tasks feeding it."""
    sources = [
        node_id
        for node_id, _ in config.get_all_nodes()
        if find_task_type_for_id(config, node_id) is CuTaskType.SOURCE
    ]
    plan: list[ExecutionUnit] = []
    next_index = 0
    for source in sources:
        next_index = _plan_branch(config, next_index, source, plan)
    return CuExecutionLoop(steps=plan, loop_count=None)
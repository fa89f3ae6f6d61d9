"""The task graph configuration: tasks, connections and the monitor."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TextIO, Union

from copperrt import ron
from copperrt.ron import RonError

NodeId = int


class CuError(Exception):
    """An error reported by the runtime, with an optional cause."""

    def __init__(self, message: str, cause: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def add_cause(self, cause: str) -> "CuError":
        """Attach a cause and return self."""
        self.cause = cause
        return self

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}\n   cause: {self.cause}"


def _display_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    if isinstance(value, tuple) and not value:
        return "unit"
    return repr(value)


class ComponentConfig(dict):
    """Key-value settings handed to a task or monitor."""

    def __str__(self) -> str:
        body = ", ".join(f"{key}: {_display_value(value)}" for key, value in self.items())
        return "{" + body + "}"


@dataclass
class Node:
    """A task in the configuration graph."""

    id: str
    type_name: Optional[str] = field(default=None, metadata={"ron": "type", "skip_none": True})
    config: Optional[ComponentConfig] = field(default=None, metadata={"skip_none": True})

    def get_param(self, key: str) -> Any:
        """Return the parameter value, or None when it is not set."""
        if self.config is None:
            return None
        return self.config.get(key)

    def set_param(self, key: str, value: Any) -> None:
        if self.config is None:
            self.config = ComponentConfig()
        self.config[key] = value


@dataclass
class Cnx:
    """A connection between two tasks."""

    src: str
    dst: str
    msg: str
    batch: Optional[int] = None
    store: Optional[bool] = None


@dataclass
class MonitorConfig:
    """Which monitor to run and its settings."""

    type_name: str = field(default="", metadata={"ron": "type"})
    config: Optional[ComponentConfig] = field(default=None, metadata={"skip_none": True})


@dataclass
class _Representation:
    tasks: list
    cnx: list
    monitor: Optional[MonitorConfig] = None


def _get(raw: dict, key: str, what: str, check: Callable[[Any], bool], kind: str,
         required: bool = False) -> Any:
    value = raw.get(key)
    if value is None:
        if required:
            raise CuError(f"missing field `{key}` in {what}")
        return None
    if not check(value):
        raise CuError(f"field `{key}` in {what} must be {kind}")
    return value


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _as_struct(raw: Any, what: str) -> dict:
    if not isinstance(raw, dict):
        raise CuError(f"{what} must be a struct")
    return raw


def _component_config(raw: dict, what: str) -> Optional[ComponentConfig]:
    value = raw.get("config")
    if value is None:
        return None
    if not isinstance(value, dict) or not all(isinstance(k, str) for k in value):
        raise CuError(f"config of {what} must be a map with string keys")
    return ComponentConfig(value)


def _node_from_ron(raw: Any) -> Node:
    entry = _as_struct(raw, "task")
    return Node(
        id=_get(entry, "id", "task", _is_str, "a string", required=True),
        type_name=_get(entry, "type", "task", _is_str, "a string"),
        config=_component_config(entry, "task"),
    )


def _cnx_from_ron(raw: Any) -> Cnx:
    entry = _as_struct(raw, "connection")
    return Cnx(
        src=_get(entry, "src", "connection", _is_str, "a string", required=True),
        dst=_get(entry, "dst", "connection", _is_str, "a string", required=True),
        msg=_get(entry, "msg", "connection", _is_str, "a string", required=True),
        batch=_get(entry, "batch", "connection", _is_int, "an integer"),
        store=_get(entry, "store", "connection", _is_bool, "a boolean"),
    )


def _monitor_from_ron(raw: Any) -> MonitorConfig:
    entry = _as_struct(raw, "monitor")
    return MonitorConfig(
        type_name=_get(entry, "type", "monitor", _is_str, "a string", required=True),
        config=_component_config(entry, "monitor"),
    )


class CuConfig:
    """A directed graph of tasks (nodes) and connections (edges)."""

    def __init__(self) -> None:
        self.nodes: list[Node] = []
        self.edges: list[tuple[NodeId, NodeId, Cnx]] = []
        self.monitor: Optional[MonitorConfig] = None

    def add_node(self, node: Node) -> NodeId:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def get_node(self, node_id: NodeId) -> Optional[Node]:
        if 0 <= node_id < len(self.nodes):
            return self.nodes[node_id]
        return None

    def _find_node(self, name: str) -> Optional[NodeId]:
        return next((index for index, node in enumerate(self.nodes) if node.id == name), None)

    def _first_edge_msg(self, name: str, edges_of: Callable[[NodeId], list[int]],
                        complaint: str) -> Optional[str]:
        index = self._find_node(name)
        if index is None:
            return None
        edges = edges_of(index)
        if not edges:
            raise CuError(complaint)
        return self.edges[edges[0]][2].msg

    def get_node_output_msg_type(self, node_id: str) -> Optional[str]:
        """Message type sent by the named task, inferred from its connections."""
        return self._first_edge_msg(
            node_id, self.get_src_edges,
            "A CuSrcTask is configured with no task connected to it.",
        )

    def get_node_input_msg_type(self, node_id: str) -> Optional[str]:
        """Message type received by the named task, inferred from its connections."""
        return self._first_edge_msg(
            node_id, self.get_dst_edges,
            "A CuSinkTask is configured with no task connected to it.",
        )

    def get_src_edges(self, node_id: NodeId) -> list[int]:
        """Indices of edges leaving the node, most recently added first."""
        return [i for i in reversed(range(len(self.edges))) if self.edges[i][0] == node_id]

    def get_dst_edges(self, node_id: NodeId) -> list[int]:
        """Indices of edges entering the node, most recently added first."""
        return [i for i in reversed(range(len(self.edges))) if self.edges[i][1] == node_id]

    def get_edge_weight(self, index: int) -> Optional[Cnx]:
        if 0 <= index < len(self.edges):
            return dataclasses.replace(self.edges[index][2])
        return None

    def get_all_nodes(self) -> list[tuple[NodeId, Node]]:
        return list(enumerate(self.nodes))

    def connect_ext(self, source: NodeId, target: NodeId, msg_type: str,
                    batch: Optional[int] = None, store: Optional[bool] = None) -> None:
        """Connect two tasks, optionally batching and logging the messages."""
        src = self.get_node(source)
        if src is None:
            raise CuError("Source node not found")
        dst = self.get_node(target)
        if dst is None:
            raise CuError("Target node not found")
        self.edges.append((source, target, Cnx(src.id, dst.id, msg_type, batch, store)))

    def connect(self, source: NodeId, target: NodeId, msg_type: str) -> None:
        self.connect_ext(source, target, msg_type)

    def serialize_ron(self) -> str:
        representation = _Representation(
            tasks=list(self.nodes),
            cnx=[cnx for _, _, cnx in self.edges],
            monitor=self.monitor,
        )
        return ron.dumps(representation)

    @classmethod
    def deserialize_ron(cls, text: str) -> "CuConfig":
        try:
            raw = ron.loads(text)
        except RonError as exc:
            raise CuError("Syntax Error in config").add_cause(str(exc)) from exc
        top = _as_struct(raw, "configuration")
        lists = {}
        for key in ("tasks", "cnx"):
            value = top.get(key)
            if not isinstance(value, list):
                raise CuError(f"missing or invalid field `{key}` in configuration")
            lists[key] = value

        config = cls()
        for entry in lists["tasks"]:
            config.add_node(_node_from_ron(entry))
        for entry in lists["cnx"]:
            cnx = _cnx_from_ron(entry)
            src = config._find_node(cnx.src)
            if src is None:
                raise CuError("Source node not found")
            dst = config._find_node(cnx.dst)
            if dst is None:
                raise CuError(f"Destination {cnx.dst} node not found")
            config.connect_ext(src, dst, cnx.msg, cnx.batch, cnx.store)
        monitor = top.get("monitor")
        config.monitor = None if monitor is None else _monitor_from_ron(monitor)
        return config

    def render(self, output: TextIO) -> None:
        """Write the graph in the dot format."""
        write = output.write
        write("digraph G {\n")
        for index, node in enumerate(self.nodes):
            if node.type_name is None:
                raise CuError(f"Task {node.id} has no type")
            if node.config is not None:
                lines = "\n".join(
                    f'<B>{key}</B> = {_display_value(value)}<BR ALIGN="LEFT"/>'
                    for key, value in node.config.items()
                )
                config_str = f'<BR/>____________<BR ALIGN="LEFT"/>{lines}'
            else:
                config_str = ""
            write(f"{index} [\n")
            write("shape=box,\n")
            write('style="rounded, filled",\n')
            write('fontname="Noto Sans"\n')
            if not self.get_dst_edges(index):
                write("fillcolor=lightgreen,\n")
            elif not self.get_src_edges(index):
                write("fillcolor=lightblue,\n")
            else:
                write("fillcolor=lightgrey,\n")
            write("color=grey,\n")
            write("labeljust=l,\n")
            write(
                f'label=< <FONT COLOR="red"><B>{node.id}</B></FONT><BR ALIGN="LEFT"/>'
                f'<BR ALIGN="RIGHT"/><FONT COLOR="dimgray">{node.type_name}</FONT>'
                f'<BR ALIGN="LEFT"/>{config_str} >\n'
            )
            write("];\n")
        for src, dst, cnx in self.edges:
            batch = 1 if cnx.batch is None else cnx.batch
            store = "true" if cnx.store else "false"
            write(
                f'{src} -> {dst} [label=< <B><FONT COLOR="gray">'
                f"{cnx.msg}/{batch}/{store}</FONT></B> >];\n"
            )
        write("}\n")

    def get_all_instances_configs(self) -> list[Optional[ComponentConfig]]:
        return [node.config for node in self.nodes]


def read_configuration(config_filename: Union[str, os.PathLike]) -> CuConfig:
    """Read a configuration from a file."""
    try:
        with open(config_filename, encoding="utf-8") as handle:
            content = handle.read()
    except OSError as exc:
        raise CuError(
            f'Failed to read configuration file: "{os.fspath(config_filename)}"'
        ).add_cause(str(exc)) from exc
    return read_configuration_str(content)


def read_configuration_str(config_content: str) -> CuConfig:
    """Read a configuration from RON text."""
    return CuConfig.deserialize_ron(config_content)
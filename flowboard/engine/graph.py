"""
Graph Model for FlowBoard.

Nodes and connections are passive, immutable data. Every helper in this
module is a pure function over node/connection sequences: lookups return
``None`` instead of raising, and validation is local, performed only when
a caller needs a specific node or edge.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """Types of nodes on the board."""
    START = "start"
    TASK = "task"
    DECISION = "decision"
    END = "end"


class Port(str, Enum):
    """Named attachment points on a node."""
    OUTPUT = "output"
    OUTPUT_TRUE = "output-true"
    OUTPUT_FALSE = "output-false"
    INPUT = "input"


class TaskAction(str, Enum):
    """Side effects a task node can perform."""
    LOG = "log"
    ALERT = "alert"
    SET_VAR = "set_var"


DECISION_PORTS = (Port.OUTPUT_TRUE, Port.OUTPUT_FALSE)


class Node(BaseModel):
    """
    A node placed on the board.

    ``data`` is the persisted, loosely-typed property bag edited by the
    properties panel. Use :func:`node_config` to read it as the typed
    configuration for the node's type.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    type: NodeType
    x: float = 0
    y: float = 0
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


class Connection(BaseModel):
    """A directed edge from a source node port to a target node port."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    source: str
    target: str
    source_port: Port = Field(Port.OUTPUT, alias="sourcePort")
    target_port: Port = Field(Port.INPUT, alias="targetPort")

    @property
    def edge_key(self) -> Tuple[str, str, str]:
        """Identity used to reject duplicate edges."""
        return (self.source, self.target, self.source_port.value)


# ============================================================
# Typed node configuration
# ============================================================

@dataclass(frozen=True)
class StartData:
    label: str = ""


@dataclass(frozen=True)
class EndData:
    label: str = ""


@dataclass(frozen=True)
class TaskData:
    """
    Configuration of a task node.

    ``action`` is kept as the raw string so an unknown action stays a
    harmless no-op instead of a parse failure.
    """
    label: str = ""
    action: str = TaskAction.LOG.value
    message: str = ""
    var_name: str = ""
    var_value: Any = None


@dataclass(frozen=True)
class DecisionData:
    label: str = ""
    variable: str = "x"
    value: str = "true"


NodeConfig = Union[StartData, TaskData, DecisionData, EndData]


def as_text(value: Any) -> str:
    """
    String representation used when comparing variables to decision values.

    Booleans render lowercase and integral floats drop their fraction, so
    ``True`` matches ``"true"`` and ``1.0`` matches ``"1"``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _text(data: Dict[str, Any], key: str, default: str = "") -> str:
    # Empty values count as "not configured"
    text = as_text(data.get(key))
    return text if text else default


def node_config(node: Node) -> NodeConfig:
    """Read a node's ``data`` bag as the typed configuration for its type."""
    data = node.data
    label = _text(data, "label")

    if node.type == NodeType.TASK:
        return TaskData(
            label=label,
            action=_text(data, "action", TaskAction.LOG.value),
            message=_text(data, "message"),
            var_name=_text(data, "varName"),
            var_value=data.get("varValue"),
        )
    if node.type == NodeType.DECISION:
        return DecisionData(
            label=label,
            variable=_text(data, "variable", "x"),
            value=_text(data, "value", "true"),
        )
    if node.type == NodeType.START:
        return StartData(label=label)
    return EndData(label=label)


# ============================================================
# Lookup helpers
# ============================================================

def find_node(nodes: Sequence[Node], node_id: Optional[str]) -> Optional[Node]:
    """Get a node by id."""
    if node_id is None:
        return None
    for node in nodes:
        if node.id == node_id:
            return node
    return None


def find_connection(
    connections: Sequence[Connection],
    connection_id: str
) -> Optional[Connection]:
    """Get a connection by id."""
    for connection in connections:
        if connection.id == connection_id:
            return connection
    return None


def outgoing_connections(
    connections: Sequence[Connection],
    node_id: str
) -> List[Connection]:
    """Connections leaving ``node_id``, in insertion order."""
    return [c for c in connections if c.source == node_id]


def find_start_node(nodes: Sequence[Node]) -> Optional[Node]:
    """The first start node on the board, if any."""
    for node in nodes:
        if node.type == NodeType.START:
            return node
    return None


def validate_connection(
    nodes: Sequence[Node],
    connection: Connection
) -> Optional[str]:
    """
    Check a connection against the nodes it joins.

    Returns:
        An error message, or None if the connection is valid
    """
    source = find_node(nodes, connection.source)
    if source is None:
        return f"Source node '{connection.source}' not found"
    if find_node(nodes, connection.target) is None:
        return f"Target node '{connection.target}' not found"

    if connection.target_port != Port.INPUT:
        return f"Target port must be '{Port.INPUT.value}'"

    if source.type == NodeType.DECISION:
        if connection.source_port not in DECISION_PORTS:
            return (
                f"Decision node '{source.id}' connects through "
                f"'{Port.OUTPUT_TRUE.value}' or '{Port.OUTPUT_FALSE.value}'"
            )
    elif connection.source_port != Port.OUTPUT:
        return (
            f"Port '{connection.source_port.value}' is only valid on "
            f"decision nodes"
        )

    return None


# ============================================================
# Export
# ============================================================

def to_mermaid(nodes: Sequence[Node], connections: Sequence[Connection]) -> str:
    """Generate a Mermaid diagram of the board."""
    lines = ["graph TD"]

    for node in nodes:
        label = node_config(node).label or node.type.value.title()
        if node.type == NodeType.DECISION:
            lines.append(f'    {node.id}{{"{label}"}}')
        elif node.type in (NodeType.START, NodeType.END):
            lines.append(f'    {node.id}(["{label}"])')
        else:
            lines.append(f'    {node.id}["{label}"]')

    for connection in connections:
        if connection.source_port == Port.OUTPUT_TRUE:
            lines.append(f"    {connection.source} -->|true| {connection.target}")
        elif connection.source_port == Port.OUTPUT_FALSE:
            lines.append(f"    {connection.source} -->|false| {connection.target}")
        else:
            lines.append(f"    {connection.source} --> {connection.target}")

    return "\n".join(lines)

"""
Versioned State Store for FlowBoard.

The store owns the live board (graph + execution state), applies a fixed
vocabulary of named mutations and keeps a bounded undo/redo history of
graph edits. States are immutable: every mutation produces a new
``BoardState`` and history entries are the previous state objects, so
unchanged nodes and connections are shared between snapshots.
"""

from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Union
from collections import deque
from enum import Enum
import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from flowboard.engine.graph import (
    Connection,
    Node,
    find_node,
    validate_connection,
)


logger = logging.getLogger(__name__)


MAX_HISTORY = 50


class FlowStatus(str, Enum):
    """Lifecycle of a workflow run."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class ActionKind(str, Enum):
    """The named mutations understood by the store."""
    # Structural (undoable)
    ADD_NODE = "ADD_NODE"
    MOVE_NODE = "MOVE_NODE"
    DELETE_NODE = "DELETE_NODE"
    CONNECT_NODES = "CONNECT_NODES"
    DELETE_CONNECTION = "DELETE_CONNECTION"
    LOAD_WORKFLOW = "LOAD_WORKFLOW"
    UPDATE_NODE_DATA = "UPDATE_NODE_DATA"
    CLEAR_CANVAS = "CLEAR_CANVAS"

    # Execution (bypass history)
    SET_FLOW_STATUS = "SET_FLOW_STATUS"
    SET_ACTIVE_NODE = "SET_ACTIVE_NODE"
    MARK_NODE_COMPLETED = "MARK_NODE_COMPLETED"
    RESET_EXECUTION = "RESET_EXECUTION"

    # History
    UNDO = "UNDO"
    REDO = "REDO"


STRUCTURAL_ACTIONS = frozenset({
    ActionKind.ADD_NODE,
    ActionKind.MOVE_NODE,
    ActionKind.DELETE_NODE,
    ActionKind.CONNECT_NODES,
    ActionKind.DELETE_CONNECTION,
    ActionKind.LOAD_WORKFLOW,
    ActionKind.UPDATE_NODE_DATA,
    ActionKind.CLEAR_CANVAS,
})

EXECUTION_ACTIONS = frozenset({
    ActionKind.SET_FLOW_STATUS,
    ActionKind.SET_ACTIVE_NODE,
    ActionKind.MARK_NODE_COMPLETED,
    ActionKind.RESET_EXECUTION,
})


class BoardState(BaseModel):
    """
    The complete state of a board at one point in time.

    Attributes:
        nodes: Nodes in insertion order
        connections: Connections in insertion order
        flow_status: Current run status
        active_node_id: Node the engine will execute next
        completed_nodes: Ids of nodes executed in this run, in order
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    nodes: Tuple[Node, ...] = ()
    connections: Tuple[Connection, ...] = ()
    flow_status: FlowStatus = Field(FlowStatus.IDLE, alias="flowStatus")
    active_node_id: Optional[str] = Field(None, alias="activeNodeId")
    completed_nodes: Tuple[str, ...] = Field((), alias="completedNodes")

    def graph(self) -> Dict[str, Any]:
        """The persisted part of the board: nodes and connections only."""
        return {
            "nodes": [n.model_dump(mode="json") for n in self.nodes],
            "connections": [
                c.model_dump(mode="json", by_alias=True) for c in self.connections
            ],
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the state using the wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================
# Payloads
# ============================================================

class NodeRef(BaseModel):
    id: str


class ConnectionRef(BaseModel):
    id: str


class MoveNodePayload(BaseModel):
    id: str
    x: float
    y: float


class NodeDataPatch(BaseModel):
    id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class WorkflowPayload(BaseModel):
    """A graph to load; extra keys such as a saved name are ignored."""
    nodes: List[Node] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)


_PAYLOAD_ADAPTERS: Dict[ActionKind, TypeAdapter] = {
    ActionKind.ADD_NODE: TypeAdapter(Node),
    ActionKind.MOVE_NODE: TypeAdapter(MoveNodePayload),
    ActionKind.DELETE_NODE: TypeAdapter(NodeRef),
    ActionKind.CONNECT_NODES: TypeAdapter(Connection),
    ActionKind.DELETE_CONNECTION: TypeAdapter(ConnectionRef),
    ActionKind.LOAD_WORKFLOW: TypeAdapter(WorkflowPayload),
    ActionKind.UPDATE_NODE_DATA: TypeAdapter(NodeDataPatch),
    ActionKind.SET_FLOW_STATUS: TypeAdapter(FlowStatus),
    ActionKind.SET_ACTIVE_NODE: TypeAdapter(Optional[str]),
    ActionKind.MARK_NODE_COMPLETED: TypeAdapter(str),
}


Listener = Callable[[BoardState], None]


class WorkflowStore:
    """
    State container with transactional undo/redo.

    Every ``dispatch`` applies one mutation synchronously and then calls
    each subscriber with the new state, in subscription order. Structural
    actions snapshot the whole previous state onto the undo stack; execution
    actions never touch history, so undo/redo steps between the states
    recorded around graph edits.

    Usage:
        store = WorkflowStore()
        unsubscribe = store.subscribe(lambda state: print(state.flow_status))
        store.dispatch(ActionKind.ADD_NODE, {"id": "a", "type": "start"})
        store.dispatch("UNDO")
    """

    def __init__(
        self,
        initial: Optional[BoardState] = None,
        max_history: int = MAX_HISTORY
    ):
        self._state = initial or BoardState()
        self._history: Deque[BoardState] = deque(maxlen=max_history)
        self._future: List[BoardState] = []
        self._listeners: List[Listener] = []

    # ----------------------------------------------------------
    # Read API
    # ----------------------------------------------------------

    def get_state(self) -> BoardState:
        """Get the current state."""
        return self._state

    @property
    def history(self) -> Tuple[BoardState, ...]:
        """Undo stack, oldest first."""
        return tuple(self._history)

    @property
    def future(self) -> Tuple[BoardState, ...]:
        """Redo stack, oldest first."""
        return tuple(self._future)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def clear_history(self) -> None:
        """Drop both history stacks without touching the state."""
        self._history.clear()
        self._future.clear()

    # ----------------------------------------------------------
    # Observers
    # ----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every dispatch.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.warning(f"Store listener failed: {e}")

    # ----------------------------------------------------------
    # Write API
    # ----------------------------------------------------------

    def dispatch(
        self,
        kind: Union[ActionKind, str],
        payload: Any = None
    ) -> BoardState:
        """
        Apply a named mutation and notify subscribers.

        Invalid payloads, unknown ids and unknown action kinds leave the
        state unchanged; subscribers are notified regardless.

        Args:
            kind: Action kind (enum member or its name)
            payload: Action payload (dict, model or scalar)

        Returns:
            The state after the mutation
        """
        try:
            action = ActionKind(kind)
        except ValueError:
            logger.debug(f"Ignoring unknown action: {kind}")
            action = None

        if action is not None:
            self._apply(action, payload)

        self._notify()
        return self._state

    def _apply(self, action: ActionKind, payload: Any) -> None:
        if action == ActionKind.UNDO:
            self._undo()
            return
        if action == ActionKind.REDO:
            self._redo()
            return

        adapter = _PAYLOAD_ADAPTERS.get(action)
        if adapter is not None:
            try:
                payload = adapter.validate_python(payload)
            except ValidationError as e:
                logger.warning(f"Rejected {action.value} payload: {e}")
                return

        if action in STRUCTURAL_ACTIONS:
            self._history.append(self._state)
            self._future.clear()

        reducer = getattr(self, f"_reduce_{action.value.lower()}")
        self._state = reducer(self._state, payload)

    # ----------------------------------------------------------
    # History
    # ----------------------------------------------------------

    def _undo(self) -> None:
        if not self._history:
            return
        self._future.append(self._state)
        self._state = self._history.pop()

    def _redo(self) -> None:
        if not self._future:
            return
        self._history.append(self._state)
        self._state = self._future.pop()

    # ----------------------------------------------------------
    # Structural reducers
    # ----------------------------------------------------------

    def _reduce_add_node(self, state: BoardState, node: Node) -> BoardState:
        if find_node(state.nodes, node.id) is not None:
            logger.warning(f"Node '{node.id}' already exists")
            return state
        return state.model_copy(update={"nodes": state.nodes + (node,)})

    def _reduce_move_node(self, state: BoardState, move: MoveNodePayload) -> BoardState:
        node = find_node(state.nodes, move.id)
        if node is None:
            return state
        moved = node.model_copy(update={"x": move.x, "y": move.y})
        return state.model_copy(update={
            "nodes": tuple(moved if n.id == move.id else n for n in state.nodes)
        })

    def _reduce_delete_node(self, state: BoardState, ref: NodeRef) -> BoardState:
        return state.model_copy(update={
            "nodes": tuple(n for n in state.nodes if n.id != ref.id),
            "connections": tuple(
                c for c in state.connections
                if c.source != ref.id and c.target != ref.id
            ),
        })

    def _reduce_connect_nodes(self, state: BoardState, connection: Connection) -> BoardState:
        if any(c.edge_key == connection.edge_key for c in state.connections):
            return state

        error = validate_connection(state.nodes, connection)
        if error:
            logger.warning(f"Rejected connection '{connection.id}': {error}")
            return state

        return state.model_copy(update={
            "connections": state.connections + (connection,)
        })

    def _reduce_delete_connection(self, state: BoardState, ref: ConnectionRef) -> BoardState:
        return state.model_copy(update={
            "connections": tuple(c for c in state.connections if c.id != ref.id)
        })

    def _reduce_update_node_data(self, state: BoardState, patch: NodeDataPatch) -> BoardState:
        node = find_node(state.nodes, patch.id)
        if node is None:
            return state
        updated = node.model_copy(update={"data": {**node.data, **patch.data}})
        return state.model_copy(update={
            "nodes": tuple(updated if n.id == patch.id else n for n in state.nodes)
        })

    def _reduce_load_workflow(self, state: BoardState, workflow: WorkflowPayload) -> BoardState:
        node_ids = {n.id for n in workflow.nodes}
        connections = tuple(
            c for c in workflow.connections
            if c.source in node_ids and c.target in node_ids
        )
        if len(connections) != len(workflow.connections):
            logger.warning(
                f"Dropped {len(workflow.connections) - len(connections)} "
                f"dangling connection(s) while loading workflow"
            )
        return BoardState(nodes=tuple(workflow.nodes), connections=connections)

    def _reduce_clear_canvas(self, state: BoardState, _payload: Any) -> BoardState:
        return BoardState()

    # ----------------------------------------------------------
    # Execution reducers
    # ----------------------------------------------------------

    def _reduce_set_flow_status(self, state: BoardState, status: FlowStatus) -> BoardState:
        return state.model_copy(update={"flow_status": status})

    def _reduce_set_active_node(self, state: BoardState, node_id: Optional[str]) -> BoardState:
        return state.model_copy(update={"active_node_id": node_id})

    def _reduce_mark_node_completed(self, state: BoardState, node_id: str) -> BoardState:
        if node_id in state.completed_nodes:
            return state
        return state.model_copy(update={
            "completed_nodes": state.completed_nodes + (node_id,)
        })

    def _reduce_reset_execution(self, state: BoardState, _payload: Any) -> BoardState:
        return state.model_copy(update={
            "flow_status": FlowStatus.IDLE,
            "active_node_id": None,
            "completed_nodes": (),
        })

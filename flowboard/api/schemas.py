"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation. Field names on the
wire are camelCase, matching the board's JSON format.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from flowboard.engine.graph import Connection, Node, NodeType, Port
from flowboard.engine.store import FlowStatus
from flowboard.engine.executor import RunOutcome


# ============================================================
# Board State
# ============================================================

class BoardStateResponse(BaseModel):
    """The current board: graph, execution state and history flags."""
    model_config = ConfigDict(populate_by_name=True)

    nodes: List[Node]
    connections: List[Connection]
    flow_status: FlowStatus = Field(..., alias="flowStatus")
    active_node_id: Optional[str] = Field(None, alias="activeNodeId")
    completed_nodes: List[str] = Field(default_factory=list, alias="completedNodes")
    can_undo: bool = Field(False, alias="canUndo")
    can_redo: bool = Field(False, alias="canRedo")


class WorkflowGraph(BaseModel):
    """A graph without execution state, as exported and imported."""
    nodes: List[Node] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "nodes": [
                {"id": "s", "type": "start", "x": 50, "y": 100, "data": {}},
                {"id": "e", "type": "end", "x": 300, "y": 100, "data": {}},
            ],
            "connections": [
                {"id": "c1", "source": "s", "target": "e",
                 "sourcePort": "output", "targetPort": "input"},
            ],
        }
    })


# ============================================================
# Node Schemas
# ============================================================

class NodeCreateRequest(BaseModel):
    """Request to place a new node on the board."""
    id: Optional[str] = Field(None, description="Node id (generated if omitted)")
    type: NodeType
    x: float = 0
    y: float = 0
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "type": "task",
            "x": 300,
            "y": 100,
            "data": {"label": "Say hi", "action": "log", "message": "Hi!"},
        }
    })


class NodeMoveRequest(BaseModel):
    x: float
    y: float


class NodeDataUpdateRequest(BaseModel):
    """Partial node data, shallow-merged into the existing data."""
    data: Dict[str, Any]


# ============================================================
# Connection Schemas
# ============================================================

class ConnectionCreateRequest(BaseModel):
    """Request to connect two nodes."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, description="Connection id (generated if omitted)")
    source: str
    target: str
    source_port: Port = Field(Port.OUTPUT, alias="sourcePort")
    target_port: Port = Field(Port.INPUT, alias="targetPort")


# ============================================================
# Execution Schemas
# ============================================================

class RunResponse(BaseModel):
    """Response after a run control request."""
    outcome: Optional[RunOutcome] = None
    state: BoardStateResponse


class VariablesResponse(BaseModel):
    variables: Dict[str, Any]


class LogEntryResponse(BaseModel):
    timestamp: str
    source: str
    message: str
    level: str


class LogListResponse(BaseModel):
    entries: List[LogEntryResponse]
    total: int


# ============================================================
# Library Schemas
# ============================================================

class SaveWorkflowRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Display name of the saved workflow")


class SavedWorkflowInfo(BaseModel):
    workflow_id: str
    name: str
    saved_at: str
    node_count: int
    connection_count: int


class SavedWorkflowListResponse(BaseModel):
    workflows: List[SavedWorkflowInfo]
    total: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

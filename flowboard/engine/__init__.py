"""
Engine package - Graph model, versioned store and step executor.
"""

from flowboard.engine.graph import Node, Connection, NodeType, Port, TaskAction
from flowboard.engine.store import WorkflowStore, BoardState, ActionKind, FlowStatus
from flowboard.engine.executor import WorkflowEngine, RunOutcome, StepOutcome
from flowboard.engine.logs import ExecutionLog, LogEntry

__all__ = [
    "Node",
    "Connection",
    "NodeType",
    "Port",
    "TaskAction",
    "WorkflowStore",
    "BoardState",
    "ActionKind",
    "FlowStatus",
    "WorkflowEngine",
    "RunOutcome",
    "StepOutcome",
    "ExecutionLog",
    "LogEntry",
]

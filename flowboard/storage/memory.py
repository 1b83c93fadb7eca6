"""
In-Memory Workflow Library for FlowBoard.

Keeps named snapshots of board graphs so a user can save the current
workflow and load it back later. Only nodes and connections are stored;
execution state is never persisted.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from dataclasses import dataclass, field
import asyncio
import uuid


@dataclass
class SavedWorkflow:
    """A named, saved workflow graph."""
    workflow_id: str
    name: str
    nodes: List[Dict[str, Any]]
    connections: List[Dict[str, Any]]
    saved_at: datetime = field(default_factory=datetime.now)
    
    def graph(self) -> Dict[str, Any]:
        """The payload accepted by ``LOAD_WORKFLOW``."""
        return {"nodes": self.nodes, "connections": self.connections}
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "name": self.name,
            "saved_at": self.saved_at.isoformat(),
            "nodes": self.nodes,
            "connections": self.connections,
        }


class WorkflowLibrary:
    """
    Thread-safe in-memory library of saved workflows.
    
    Entries are kept in save order. Can be easily replaced with a
    database implementation.
    """
    
    def __init__(self):
        self._workflows: Dict[str, SavedWorkflow] = {}
        self._lock = asyncio.Lock()
    
    async def save(self, name: str, graph: Dict[str, Any]) -> SavedWorkflow:
        """
        Save a workflow graph under a name.
        
        Args:
            name: Display name
            graph: ``{"nodes": [...], "connections": [...]}``
            
        Returns:
            The saved workflow
        """
        async with self._lock:
            saved = SavedWorkflow(
                workflow_id=str(uuid.uuid4()),
                name=name,
                nodes=list(graph.get("nodes", [])),
                connections=list(graph.get("connections", [])),
            )
            self._workflows[saved.workflow_id] = saved
            return saved
    
    async def get(self, workflow_id: str) -> Optional[SavedWorkflow]:
        """Get a saved workflow by ID."""
        async with self._lock:
            return self._workflows.get(workflow_id)
    
    async def delete(self, workflow_id: str) -> bool:
        """Delete a saved workflow."""
        async with self._lock:
            if workflow_id in self._workflows:
                del self._workflows[workflow_id]
                return True
            return False
    
    async def list_all(self) -> List[SavedWorkflow]:
        """List all saved workflows."""
        async with self._lock:
            return list(self._workflows.values())
    
    def __len__(self) -> int:
        return len(self._workflows)

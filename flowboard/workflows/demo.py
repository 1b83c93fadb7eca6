"""
Demo Workflow.

A small board showing every node type:
1. Start
2. Log a greeting
3. Decide on ``x == "1"``
4. End on the true or the false branch

Nothing sets ``x``, so a plain run ends on the false branch. Insert a
``set_var`` task before the decision to take the other one.
"""

from typing import Any, Dict
import logging

from flowboard.engine.store import ActionKind, WorkflowStore


logger = logging.getLogger(__name__)


DEMO_WORKFLOW: Dict[str, Any] = {
    "nodes": [
        {"id": "node_start", "type": "start", "x": 50, "y": 100,
         "data": {"label": "Start"}},
        {"id": "node_task1", "type": "task", "x": 300, "y": 100,
         "data": {"label": "Log Hello", "action": "log",
                  "message": "Hello World from FlowBoard!"}},
        {"id": "node_dec", "type": "decision", "x": 550, "y": 100,
         "data": {"label": "Is Active?", "variable": "x", "value": "1"}},
        {"id": "node_end", "type": "end", "x": 800, "y": 50,
         "data": {"label": "End True"}},
        {"id": "node_end2", "type": "end", "x": 800, "y": 200,
         "data": {"label": "End False"}},
    ],
    "connections": [
        {"id": "c1", "source": "node_start", "target": "node_task1",
         "sourcePort": "output", "targetPort": "input"},
        {"id": "c2", "source": "node_task1", "target": "node_dec",
         "sourcePort": "output", "targetPort": "input"},
        {"id": "c3", "source": "node_dec", "target": "node_end",
         "sourcePort": "output-true", "targetPort": "input"},
        {"id": "c4", "source": "node_dec", "target": "node_end2",
         "sourcePort": "output-false", "targetPort": "input"},
    ],
}


def load_demo_workflow(store: WorkflowStore) -> bool:
    """
    Load the demo workflow onto an empty board.
    
    Returns:
        True if the demo was loaded
    """
    if store.get_state().nodes:
        return False
    
    store.dispatch(ActionKind.LOAD_WORKFLOW, DEMO_WORKFLOW)
    store.clear_history()
    logger.info("Loaded demo workflow")
    return True

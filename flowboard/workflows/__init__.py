"""
Workflows package - Sample workflows shipped with FlowBoard.
"""

from flowboard.workflows.demo import DEMO_WORKFLOW, load_demo_workflow

__all__ = ["DEMO_WORKFLOW", "load_demo_workflow"]

"""
Storage package - Saved workflow library and autosave.
"""

from flowboard.storage.memory import SavedWorkflow, WorkflowLibrary
from flowboard.storage.autosave import AutosaveFile

__all__ = [
    "SavedWorkflow",
    "WorkflowLibrary",
    "AutosaveFile",
]

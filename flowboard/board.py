"""
Board composition.

A ``Board`` wires one store, one engine, one execution log, the saved
workflow library and the optional autosave together. The application
owns the board's lifecycle; nothing here is a module-level singleton.
"""

from typing import Callable, List, Optional
from dataclasses import dataclass, field
from pathlib import Path
import logging

from flowboard.config import Settings
from flowboard.engine.executor import WorkflowEngine
from flowboard.engine.logs import ExecutionLog
from flowboard.engine.store import ActionKind, WorkflowStore
from flowboard.storage.autosave import AutosaveFile
from flowboard.storage.memory import WorkflowLibrary
from flowboard.workflows.demo import load_demo_workflow


logger = logging.getLogger(__name__)


@dataclass
class Board:
    """Everything one editing session works with."""
    store: WorkflowStore
    engine: WorkflowEngine
    log: ExecutionLog
    library: WorkflowLibrary
    autosave: Optional[AutosaveFile] = None
    _unsubscribers: List[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        """Stop the engine timer and detach store listeners."""
        self.engine.cancel_pending()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()


def create_board(settings: Settings) -> Board:
    """
    Build a board from configuration.

    The autosaved graph is restored if there is one; otherwise the demo
    workflow is loaded when enabled. Neither load is undoable.
    """
    store = WorkflowStore(max_history=settings.MAX_HISTORY)
    log = ExecutionLog(max_entries=settings.MAX_LOG_ENTRIES)
    engine = WorkflowEngine(
        store,
        log=log,
        step_delay=settings.STEP_DELAY_MS / 1000,
    )
    board = Board(store=store, engine=engine, log=log, library=WorkflowLibrary())

    if settings.AUTOSAVE_PATH:
        board.autosave = AutosaveFile(Path(settings.AUTOSAVE_PATH))
        saved = board.autosave.load()
        if saved and saved["nodes"]:
            store.dispatch(ActionKind.LOAD_WORKFLOW, saved)
            store.clear_history()
            logger.info(f"Restored {len(saved['nodes'])} nodes from {settings.AUTOSAVE_PATH}")

    if settings.LOAD_DEMO_WORKFLOW:
        load_demo_workflow(store)

    if board.autosave is not None:
        board._unsubscribers.append(store.subscribe(board.autosave))

    return board

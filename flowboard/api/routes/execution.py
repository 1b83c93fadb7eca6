"""
Execution API Routes.

Endpoints for running the board step by step and observing the run:
start/resume, pause, reset, variable bindings and the execution log.
"""

from fastapi import APIRouter, Depends, status
import logging

from flowboard.api.deps import get_board, state_response
from flowboard.api.schemas import (
    LogEntryResponse,
    LogListResponse,
    RunResponse,
    VariablesResponse,
)
from flowboard.board import Board
from flowboard.engine.executor import RunOutcome


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/execution", tags=["Execution"])


@router.post("/start", response_model=RunResponse)
async def start_run(board: Board = Depends(get_board)) -> RunResponse:
    """
    Start a fresh run, or resume a paused one.
    
    The engine advances one node per step, with the configured delay
    between steps. Poll `GET /workflow/state` or connect to `/ws/board`
    to follow the run. If the board has no start node the outcome is
    `no_start_node` and the run does not begin.
    """
    outcome = board.engine.start()
    if outcome == RunOutcome.NO_START_NODE:
        logger.info("Run requested on a board without a start node")
    return RunResponse(outcome=outcome, state=state_response(board))


@router.post("/pause", response_model=RunResponse)
async def pause_run(board: Board = Depends(get_board)) -> RunResponse:
    """Pause the run. The pending step is cancelled."""
    board.engine.pause()
    return RunResponse(state=state_response(board))


@router.post("/reset", response_model=RunResponse)
async def reset_run(board: Board = Depends(get_board)) -> RunResponse:
    """Stop the run and clear execution state and variables."""
    board.engine.reset()
    return RunResponse(state=state_response(board))


@router.get("/variables", response_model=VariablesResponse)
async def get_variables(board: Board = Depends(get_board)) -> VariablesResponse:
    """Get the variable bindings of the current run."""
    return VariablesResponse(variables=board.engine.variables)


@router.get("/logs", response_model=LogListResponse)
async def get_logs(board: Board = Depends(get_board)) -> LogListResponse:
    """Get the execution log, oldest entry first."""
    entries = [LogEntryResponse(**entry.to_dict()) for entry in board.log.entries]
    return LogListResponse(entries=entries, total=len(entries))


@router.delete("/logs", status_code=status.HTTP_204_NO_CONTENT)
async def clear_logs(board: Board = Depends(get_board)):
    """Clear the execution log."""
    board.log.clear()

"""
Library API Routes.

Endpoints for saving the current graph under a name and loading saved
workflows back onto the board.
"""

from fastapi import APIRouter, Depends, HTTPException, status
import logging

from flowboard.api.deps import get_board, state_response
from flowboard.api.schemas import (
    BoardStateResponse,
    ErrorResponse,
    SavedWorkflowInfo,
    SavedWorkflowListResponse,
    SaveWorkflowRequest,
)
from flowboard.board import Board
from flowboard.engine.store import ActionKind
from flowboard.storage.memory import SavedWorkflow


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/library", tags=["Library"])


def _info(saved: SavedWorkflow) -> SavedWorkflowInfo:
    return SavedWorkflowInfo(
        workflow_id=saved.workflow_id,
        name=saved.name,
        saved_at=saved.saved_at.isoformat(),
        node_count=len(saved.nodes),
        connection_count=len(saved.connections),
    )


@router.get("/", response_model=SavedWorkflowListResponse)
async def list_saved(board: Board = Depends(get_board)) -> SavedWorkflowListResponse:
    """List saved workflows in save order."""
    saved = await board.library.list_all()
    infos = [_info(s) for s in saved]
    return SavedWorkflowListResponse(workflows=infos, total=len(infos))


@router.post(
    "/",
    response_model=SavedWorkflowInfo,
    status_code=status.HTTP_201_CREATED,
)
async def save_current(
    request: SaveWorkflowRequest,
    board: Board = Depends(get_board),
) -> SavedWorkflowInfo:
    """Save the current nodes and connections under a name."""
    saved = await board.library.save(request.name, board.store.get_state().graph())
    logger.info(f"Saved workflow: {saved.workflow_id} ({saved.name})")
    return _info(saved)


@router.post(
    "/{workflow_id}/load",
    response_model=BoardStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def load_saved(workflow_id: str, board: Board = Depends(get_board)) -> BoardStateResponse:
    """Replace the board with a saved workflow. Undoable."""
    saved = await board.library.get(workflow_id)
    if not saved:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    
    board.engine.cancel_pending()
    board.store.dispatch(ActionKind.LOAD_WORKFLOW, saved.graph())
    return state_response(board)


@router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_saved(workflow_id: str, board: Board = Depends(get_board)):
    """Delete a saved workflow."""
    deleted = await board.library.delete(workflow_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    logger.info(f"Deleted saved workflow: {workflow_id}")

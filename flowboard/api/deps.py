"""
Shared helpers for API routes.
"""

from fastapi import HTTPException, Request

from flowboard.board import Board
from flowboard.api.schemas import BoardStateResponse
from flowboard.engine.graph import find_node


def get_board(request: Request) -> Board:
    """FastAPI dependency returning the application's board."""
    return request.app.state.board


def state_response(board: Board) -> BoardStateResponse:
    """Snapshot the board into an API response."""
    state = board.store.get_state()
    return BoardStateResponse(
        nodes=list(state.nodes),
        connections=list(state.connections),
        flow_status=state.flow_status,
        active_node_id=state.active_node_id,
        completed_nodes=list(state.completed_nodes),
        can_undo=board.store.can_undo,
        can_redo=board.store.can_redo,
    )


def require_node(board: Board, node_id: str):
    """Get a node or raise 404."""
    node = find_node(board.store.get_state().nodes, node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node '{node_id}' not found")
    return node

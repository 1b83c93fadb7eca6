"""
Workflow API Routes.

Endpoints for editing the board graph: nodes, connections, loading,
clearing and undo/redo. Every edit goes through the store's dispatch.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from uuid import uuid4
import logging

from flowboard.api.deps import get_board, require_node, state_response
from flowboard.api.schemas import (
    BoardStateResponse,
    ConnectionCreateRequest,
    ErrorResponse,
    NodeCreateRequest,
    NodeDataUpdateRequest,
    NodeMoveRequest,
    WorkflowGraph,
)
from flowboard.board import Board
from flowboard.engine.graph import (
    Connection,
    find_connection,
    find_node,
    to_mermaid,
    validate_connection,
)
from flowboard.engine.store import ActionKind


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflow", tags=["Workflow"])


DUPLICATE_OFFSET = 20


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:8]}"


@router.get("/state", response_model=BoardStateResponse)
async def get_state(board: Board = Depends(get_board)) -> BoardStateResponse:
    """Get the current board: graph, execution state and undo/redo flags."""
    return state_response(board)


# ============================================================
# Nodes
# ============================================================

@router.post(
    "/nodes",
    response_model=BoardStateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Node id already used"}},
)
async def add_node(
    request: NodeCreateRequest,
    board: Board = Depends(get_board),
) -> BoardStateResponse:
    """Place a new node on the board."""
    node_id = request.id or _new_id("node")
    if find_node(board.store.get_state().nodes, node_id) is not None:
        raise HTTPException(status_code=409, detail=f"Node '{node_id}' already exists")

    board.store.dispatch(ActionKind.ADD_NODE, {
        "id": node_id,
        "type": request.type,
        "x": request.x,
        "y": request.y,
        "data": request.data,
    })
    logger.info(f"Added {request.type.value} node: {node_id}")
    return state_response(board)


@router.post(
    "/nodes/{node_id}/duplicate",
    response_model=BoardStateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def duplicate_node(node_id: str, board: Board = Depends(get_board)) -> BoardStateResponse:
    """Copy a node (type and data) next to the original. Connections are not copied."""
    original = require_node(board, node_id)
    board.store.dispatch(ActionKind.ADD_NODE, {
        "id": _new_id("node"),
        "type": original.type,
        "x": original.x + DUPLICATE_OFFSET,
        "y": original.y + DUPLICATE_OFFSET,
        "data": dict(original.data),
    })
    return state_response(board)


@router.patch(
    "/nodes/{node_id}/position",
    response_model=BoardStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def move_node(
    node_id: str,
    request: NodeMoveRequest,
    board: Board = Depends(get_board),
) -> BoardStateResponse:
    """Move a node."""
    require_node(board, node_id)
    board.store.dispatch(ActionKind.MOVE_NODE, {"id": node_id, "x": request.x, "y": request.y})
    return state_response(board)


@router.patch(
    "/nodes/{node_id}/data",
    response_model=BoardStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_node_data(
    node_id: str,
    request: NodeDataUpdateRequest,
    board: Board = Depends(get_board),
) -> BoardStateResponse:
    """Merge new values into a node's data."""
    require_node(board, node_id)
    board.store.dispatch(ActionKind.UPDATE_NODE_DATA, {"id": node_id, "data": request.data})
    return state_response(board)


@router.delete(
    "/nodes/{node_id}",
    response_model=BoardStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_node(node_id: str, board: Board = Depends(get_board)) -> BoardStateResponse:
    """Delete a node and every connection attached to it."""
    require_node(board, node_id)
    board.store.dispatch(ActionKind.DELETE_NODE, {"id": node_id})
    logger.info(f"Deleted node: {node_id}")
    return state_response(board)


# ============================================================
# Connections
# ============================================================

@router.post(
    "/connections",
    response_model=BoardStateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid port for the source node"},
        404: {"model": ErrorResponse, "description": "Source or target not found"},
    },
)
async def connect_nodes(
    request: ConnectionCreateRequest,
    board: Board = Depends(get_board),
) -> BoardStateResponse:
    """
    Connect two nodes.

    Connecting the same source, target and source port twice is a no-op.
    """
    nodes = board.store.get_state().nodes
    for node_id in (request.source, request.target):
        if find_node(nodes, node_id) is None:
            raise HTTPException(status_code=404, detail=f"Node '{node_id}' not found")

    connection = Connection(
        id=request.id or _new_id("conn"),
        source=request.source,
        target=request.target,
        source_port=request.source_port,
        target_port=request.target_port,
    )
    error = validate_connection(nodes, connection)
    if error:
        raise HTTPException(status_code=400, detail=error)

    board.store.dispatch(ActionKind.CONNECT_NODES, connection)
    return state_response(board)


@router.delete(
    "/connections/{connection_id}",
    response_model=BoardStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_connection(
    connection_id: str,
    board: Board = Depends(get_board),
) -> BoardStateResponse:
    """Delete a connection."""
    if find_connection(board.store.get_state().connections, connection_id) is None:
        raise HTTPException(
            status_code=404,
            detail=f"Connection '{connection_id}' not found"
        )
    board.store.dispatch(ActionKind.DELETE_CONNECTION, {"id": connection_id})
    return state_response(board)


# ============================================================
# Whole-board operations
# ============================================================

@router.post("/load", response_model=BoardStateResponse)
async def load_workflow(
    request: WorkflowGraph,
    board: Board = Depends(get_board),
) -> BoardStateResponse:
    """Replace the graph and reset execution. Undoable."""
    board.engine.cancel_pending()
    board.store.dispatch(ActionKind.LOAD_WORKFLOW, request.model_dump(by_alias=True))
    logger.info(f"Loaded workflow with {len(request.nodes)} nodes")
    return state_response(board)


@router.post("/clear", response_model=BoardStateResponse)
async def clear_canvas(board: Board = Depends(get_board)) -> BoardStateResponse:
    """Remove every node and connection. Undoable."""
    board.engine.cancel_pending()
    board.store.dispatch(ActionKind.CLEAR_CANVAS)
    return state_response(board)


@router.post("/undo", response_model=BoardStateResponse)
async def undo(board: Board = Depends(get_board)) -> BoardStateResponse:
    """Undo the last graph edit."""
    board.store.dispatch(ActionKind.UNDO)
    return state_response(board)


@router.post("/redo", response_model=BoardStateResponse)
async def redo(board: Board = Depends(get_board)) -> BoardStateResponse:
    """Redo the last undone graph edit."""
    board.store.dispatch(ActionKind.REDO)
    return state_response(board)


@router.get("/export", response_model=WorkflowGraph)
async def export_workflow(board: Board = Depends(get_board)) -> WorkflowGraph:
    """Export nodes and connections. Execution state is never exported."""
    state = board.store.get_state()
    return WorkflowGraph(nodes=list(state.nodes), connections=list(state.connections))


@router.get("/mermaid", response_class=PlainTextResponse)
async def export_mermaid(board: Board = Depends(get_board)) -> str:
    """Export the board as a Mermaid diagram."""
    state = board.store.get_state()
    return to_mermaid(state.nodes, state.connections)

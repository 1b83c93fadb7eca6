"""
WebSocket Routes for Live Board Updates.

Streams every store notification and every execution log entry to
connected clients, and accepts run/history commands.
"""

from typing import Any, Callable, Dict, Set
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import asyncio
import logging

from flowboard.board import Board
from flowboard.engine.logs import LogEntry
from flowboard.engine.store import ActionKind, BoardState


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


class ConnectionManager:
    """Tracks open WebSocket connections."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"WebSocket connected ({len(self.active_connections)} open)")

    def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        self.active_connections.discard(websocket)
        logger.info(f"WebSocket disconnected ({len(self.active_connections)} open)")

    def __len__(self) -> int:
        return len(self.active_connections)


# Global connection manager
manager = ConnectionManager()


def _commands(board: Board) -> Dict[str, Callable[[], Any]]:
    return {
        "start": board.engine.start,
        "pause": board.engine.pause,
        "reset": board.engine.reset,
        "undo": lambda: board.store.dispatch(ActionKind.UNDO),
        "redo": lambda: board.store.dispatch(ActionKind.REDO),
    }


@router.websocket("/ws/board")
async def websocket_board(websocket: WebSocket):
    """
    WebSocket endpoint for live board updates.

    On connect the current state is sent, then one message per change.

    Message format (server -> client):
    ```json
    {"type": "state", "state": {"nodes": [...], "flowStatus": "running", ...}}
    {"type": "log", "source": "Task", "message": "...", "level": "info", "timestamp": "..."}
    {"type": "error", "error": "..."}
    ```

    Message format (client -> server):
    ```json
    {"action": "start"}
    ```
    Supported actions: start, pause, reset, undo, redo.
    """
    board: Board = websocket.app.state.board
    await manager.connect(websocket)

    queue: asyncio.Queue = asyncio.Queue()

    def on_state(state: BoardState) -> None:
        queue.put_nowait({"type": "state", "state": state.to_dict()})

    def on_log(entry: LogEntry) -> None:
        queue.put_nowait({"type": "log", **entry.to_dict()})

    unsubscribe_state = board.store.subscribe(on_state)
    unsubscribe_log = board.log.subscribe(on_log)

    try:
        await websocket.send_json({
            "type": "state",
            "state": board.store.get_state().to_dict(),
        })

        sender = asyncio.create_task(_send_updates(websocket, queue))
        receiver = asyncio.create_task(_receive_commands(websocket, board, queue))

        done, pending = await asyncio.wait(
            {sender, receiver},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        for task in done:
            task.result()

    except WebSocketDisconnect:
        logger.info("Client disconnected from board")
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
    finally:
        unsubscribe_state()
        unsubscribe_log()
        manager.disconnect(websocket)


async def _send_updates(websocket: WebSocket, queue: asyncio.Queue):
    """Forward queued messages to the client."""
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def _receive_commands(websocket: WebSocket, board: Board, queue: asyncio.Queue):
    """Apply commands sent by the client."""
    commands = _commands(board)

    while True:
        data = await websocket.receive_json()
        action = data.get("action") if isinstance(data, dict) else None
        command = commands.get(action)

        if command is None:
            queue.put_nowait({
                "type": "error",
                "error": f"Unknown action '{action}'. Expected one of: {sorted(commands)}",
            })
            continue

        command()

"""
FlowBoard - FastAPI Application Entry Point.

Serves one board: a graph editor with undo/redo and a step-by-step
workflow interpreter.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from flowboard.config import settings
from flowboard.board import create_board
from flowboard.api.routes import execution, library, websocket, workflow


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    app.state.board = create_board(settings)
    
    yield
    
    # Shutdown
    app.state.board.close()
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## FlowBoard API

Build a workflow from start, task, decision and end nodes, then run it
one node at a time and watch it progress.

### Features
- **Nodes**: start, task (log / alert / set_var), decision, end
- **Connections**: `output` ports, or `output-true` / `output-false` on decisions
- **Undo/Redo**: every graph edit is undoable; execution progress is not
- **Stepwise execution**: start, pause, resume and reset a run
- **Real-time Updates**: WebSocket feed of state changes and log entries

### Quick Start
1. Inspect the board: `GET /workflow/state`
2. Add nodes: `POST /workflow/nodes`
3. Connect them: `POST /workflow/connections`
4. Run: `POST /execution/start`
5. Follow along: `GET /execution/logs` or `ws://.../ws/board`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(workflow.router)
app.include_router(execution.router)
app.include_router(library.router)
app.include_router(websocket.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "A step-by-step visual workflow interpreter",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "workflow": "/workflow",
            "execution": "/execution",
            "library": "/library",
            "websocket": "/ws/board",
        },
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    board = app.state.board
    state = board.store.get_state()
    
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "flow_status": state.flow_status.value,
        "nodes_count": len(state.nodes),
        "saved_workflows_count": len(board.library),
        "websocket_clients": len(websocket.manager),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )

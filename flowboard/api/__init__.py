"""
API package - FastAPI routes and schemas.
"""

from flowboard.api.routes import execution, library, websocket, workflow

__all__ = ["execution", "library", "websocket", "workflow"]

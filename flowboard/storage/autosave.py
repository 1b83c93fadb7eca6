"""
Autosave of the board graph to a JSON file.

Registered as a store subscriber: whenever the nodes or connections
change, the graph is written to disk. Execution state is never saved.
"""

from typing import Any, Dict, Optional, Tuple
from pathlib import Path
import json
import logging

from flowboard.engine.store import BoardState


logger = logging.getLogger(__name__)


class AutosaveFile:
    """Persist the latest board graph as a single JSON document."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._last_saved: Optional[Tuple[Any, Any]] = None

    def __call__(self, state: BoardState) -> None:
        """Store listener: save the graph when it changed."""
        key = (state.nodes, state.connections)
        if key == self._last_saved:
            return
        self.save(state.graph())
        self._last_saved = key

    def save(self, graph: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(graph, indent=2), encoding="utf-8")
        logger.debug(f"Autosaved {len(graph.get('nodes', []))} nodes to {self.path}")

    def load(self) -> Optional[Dict[str, Any]]:
        """Load the saved graph, or None if there is none."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read autosave {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            return None
        return {
            "nodes": data.get("nodes") or [],
            "connections": data.get("connections") or [],
        }

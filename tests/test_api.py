"""
Tests for the FastAPI endpoints.
"""

import time

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from flowboard.board import create_board
from flowboard.config import Settings
from flowboard.main import app


DEMO_IDS = {"node_start", "node_task1", "node_dec", "node_end", "node_end2"}


@pytest.fixture
def client():
    """Client with a fresh board (demo workflow loaded) per test."""
    with TestClient(app) as test_client:
        yield test_client


def wait_for_status(client, status, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        state = client.get("/workflow/state").json()
        if state["flowStatus"] == status:
            return state
        time.sleep(0.02)
    raise AssertionError(f"Board never reached '{status}'")


def node_ids(state):
    return {n["id"] for n in state["nodes"]}


class TestRootEndpoints:
    """Tests for root endpoints."""

    def test_root(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "FlowBoard"
        assert "version" in data
        assert "endpoints" in data

    def test_health(self, client):
        """Test health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["flow_status"] == "idle"
        assert data["nodes_count"] == 5


class TestWorkflowEndpoints:
    """Tests for graph editing endpoints."""

    def test_initial_state_is_demo(self, client):
        """Test that a new board starts with the demo workflow."""
        state = client.get("/workflow/state").json()

        assert node_ids(state) == DEMO_IDS
        assert len(state["connections"]) == 4
        assert state["flowStatus"] == "idle"
        assert state["activeNodeId"] is None
        assert state["completedNodes"] == []
        assert state["canUndo"] is False
        assert state["canRedo"] is False

    def test_add_node(self, client):
        """Test adding a node."""
        response = client.post("/workflow/nodes", json={
            "id": "extra",
            "type": "task",
            "x": 10,
            "y": 20,
            "data": {"action": "log", "message": "hi"},
        })
        assert response.status_code == 201

        state = response.json()
        assert "extra" in node_ids(state)
        assert state["canUndo"] is True

    def test_add_node_generates_id(self, client):
        """Test that omitted ids are generated."""
        response = client.post("/workflow/nodes", json={"type": "end"})
        assert response.status_code == 201
        assert len(response.json()["nodes"]) == 6

    def test_add_duplicate_node_id(self, client):
        """Test that node ids are unique."""
        response = client.post("/workflow/nodes", json={"id": "node_start", "type": "start"})
        assert response.status_code == 409

    def test_add_node_invalid_type(self, client):
        """Test that unknown node types are rejected."""
        response = client.post("/workflow/nodes", json={"type": "loop"})
        assert response.status_code == 422

    def test_duplicate_node(self, client):
        """Test copying a node next to the original."""
        response = client.post("/workflow/nodes/node_task1/duplicate")
        assert response.status_code == 201

        nodes = response.json()["nodes"]
        copy = [n for n in nodes if n["id"] not in DEMO_IDS][0]
        assert copy["type"] == "task"
        assert copy["x"] == 320
        assert copy["y"] == 120
        assert copy["data"]["message"] == "Hello World from FlowBoard!"

    def test_move_node(self, client):
        """Test moving a node."""
        response = client.patch("/workflow/nodes/node_end/position", json={"x": 1, "y": 2})
        assert response.status_code == 200

        moved = [n for n in response.json()["nodes"] if n["id"] == "node_end"][0]
        assert (moved["x"], moved["y"]) == (1, 2)

    def test_move_missing_node(self, client):
        """Test moving a node that does not exist."""
        response = client.patch("/workflow/nodes/nope/position", json={"x": 1, "y": 2})
        assert response.status_code == 404

    def test_update_node_data(self, client):
        """Test merging node data."""
        response = client.patch("/workflow/nodes/node_dec/data", json={"data": {"value": "2"}})
        assert response.status_code == 200

        dec = [n for n in response.json()["nodes"] if n["id"] == "node_dec"][0]
        assert dec["data"]["value"] == "2"
        assert dec["data"]["variable"] == "x"

    def test_delete_node_cascades(self, client):
        """Test that deleting a node removes its connections."""
        response = client.delete("/workflow/nodes/node_dec")
        assert response.status_code == 200

        state = response.json()
        assert "node_dec" not in node_ids(state)
        assert [c["id"] for c in state["connections"]] == ["c1"]

    def test_connect_nodes(self, client):
        """Test connecting two nodes."""
        response = client.post("/workflow/connections", json={
            "id": "c9",
            "source": "node_start",
            "target": "node_end",
        })
        assert response.status_code == 201

        added = [c for c in response.json()["connections"] if c["id"] == "c9"][0]
        assert added["sourcePort"] == "output"
        assert added["targetPort"] == "input"

    def test_connect_same_edge_twice(self, client):
        """Test that repeating an existing edge is a no-op."""
        response = client.post("/workflow/connections", json={
            "source": "node_start",
            "target": "node_task1",
        })
        assert response.status_code == 201
        assert len(response.json()["connections"]) == 4

    def test_connect_invalid_port(self, client):
        """Test that branch ports are reserved for decisions."""
        response = client.post("/workflow/connections", json={
            "source": "node_task1",
            "target": "node_end",
            "sourcePort": "output-true",
        })
        assert response.status_code == 400

    def test_connect_missing_node(self, client):
        """Test connecting to a node that does not exist."""
        response = client.post("/workflow/connections", json={
            "source": "node_start",
            "target": "nope",
        })
        assert response.status_code == 404

    def test_delete_connection(self, client):
        """Test deleting a connection."""
        response = client.delete("/workflow/connections/c1")
        assert response.status_code == 200
        assert "c1" not in [c["id"] for c in response.json()["connections"]]

        response = client.delete("/workflow/connections/c1")
        assert response.status_code == 404

    def test_undo_redo(self, client):
        """Test undoing and redoing an edit."""
        client.delete("/workflow/nodes/node_end")

        state = client.post("/workflow/undo").json()
        assert node_ids(state) == DEMO_IDS
        assert len(state["connections"]) == 4
        assert state["canRedo"] is True

        state = client.post("/workflow/redo").json()
        assert "node_end" not in node_ids(state)
        assert state["canRedo"] is False

    def test_load_and_export(self, client):
        """Test replacing the graph and exporting it."""
        graph = {
            "nodes": [
                {"id": "s", "type": "start", "x": 0, "y": 0, "data": {}},
                {"id": "e", "type": "end", "x": 100, "y": 0, "data": {}},
            ],
            "connections": [
                {"id": "c", "source": "s", "target": "e",
                 "sourcePort": "output", "targetPort": "input"},
                {"id": "dangling", "source": "s", "target": "ghost",
                 "sourcePort": "output", "targetPort": "input"},
            ],
        }
        response = client.post("/workflow/load", json=graph)
        assert response.status_code == 200
        assert node_ids(response.json()) == {"s", "e"}

        exported = client.get("/workflow/export").json()
        assert set(exported) == {"nodes", "connections"}
        assert [c["id"] for c in exported["connections"]] == ["c"]

        state = client.post("/workflow/undo").json()
        assert node_ids(state) == DEMO_IDS

    def test_clear_canvas(self, client):
        """Test clearing the board."""
        state = client.post("/workflow/clear").json()
        assert state["nodes"] == []
        assert state["connections"] == []
        assert state["canUndo"] is True

    def test_mermaid_export(self, client):
        """Test Mermaid export."""
        response = client.get("/workflow/mermaid")
        assert response.status_code == 200
        assert response.text.startswith("graph TD")
        assert "node_dec -->|false| node_end2" in response.text


class TestExecutionEndpoints:
    """Tests for run control endpoints."""

    def test_demo_run_takes_false_branch(self, client):
        """Test running the demo to completion."""
        client.app.state.board.engine.step_delay = 0.01

        response = client.post("/execution/start")
        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "started"
        assert data["state"]["activeNodeId"] == "node_start"

        state = wait_for_status(client, "completed")
        assert state["completedNodes"] == ["node_start", "node_task1", "node_dec", "node_end2"]
        assert state["activeNodeId"] is None

        messages = [e["message"] for e in client.get("/execution/logs").json()["entries"]]
        assert "Hello World from FlowBoard!" in messages
        assert messages[-1] == "Workflow Completed."

    def test_set_var_run_takes_true_branch(self, client):
        """Test a run where a task sets the decision variable."""
        client.app.state.board.engine.step_delay = 0.01
        client.patch("/workflow/nodes/node_task1/data", json={
            "data": {"action": "set_var", "varName": "x", "varValue": "1"},
        })

        client.post("/execution/start")
        state = wait_for_status(client, "completed")

        assert state["completedNodes"][-1] == "node_end"
        assert client.get("/execution/variables").json()["variables"] == {"x": "1"}

    def test_pause_resume_reset(self, client):
        """Test pausing, resuming and resetting a run."""
        client.app.state.board.engine.step_delay = 60

        client.post("/execution/start")
        data = client.post("/execution/pause").json()
        assert data["state"]["flowStatus"] == "paused"
        assert data["state"]["activeNodeId"] == "node_start"

        data = client.post("/execution/start").json()
        assert data["outcome"] == "resumed"
        assert data["state"]["flowStatus"] == "running"

        data = client.post("/execution/start").json()
        assert data["outcome"] == "already_running"

        data = client.post("/execution/reset").json()
        assert data["state"]["flowStatus"] == "idle"
        assert data["state"]["activeNodeId"] is None
        assert client.get("/execution/logs").json()["total"] == 0

    def test_start_without_start_node(self, client):
        """Test that a run needs a start node."""
        client.delete("/workflow/nodes/node_start")

        data = client.post("/execution/start").json()
        assert data["outcome"] == "no_start_node"
        assert data["state"]["flowStatus"] == "idle"

        entries = client.get("/execution/logs").json()["entries"]
        assert entries[-1]["level"] == "alert"
        assert entries[-1]["message"] == "No Start node found!"

    def test_clear_logs(self, client):
        """Test clearing the execution log."""
        client.app.state.board.engine.step_delay = 60
        client.post("/execution/start")
        client.post("/execution/pause")

        assert client.get("/execution/logs").json()["total"] > 0
        assert client.delete("/execution/logs").status_code == 204
        assert client.get("/execution/logs").json()["total"] == 0


class TestLibraryEndpoints:
    """Tests for the saved workflow library."""

    def test_save_load_delete(self, client):
        """Test the full library cycle."""
        response = client.post("/library/", json={"name": "Demo"})
        assert response.status_code == 201
        saved = response.json()
        assert saved["node_count"] == 5
        assert saved["connection_count"] == 4

        listing = client.get("/library/").json()
        assert listing["total"] == 1
        assert listing["workflows"][0]["name"] == "Demo"

        client.post("/workflow/clear")
        state = client.post(f"/library/{saved['workflow_id']}/load").json()
        assert node_ids(state) == DEMO_IDS

        assert client.delete(f"/library/{saved['workflow_id']}").status_code == 204
        assert client.delete(f"/library/{saved['workflow_id']}").status_code == 404

    def test_save_requires_name(self, client):
        """Test that saved workflows need a name."""
        response = client.post("/library/", json={"name": ""})
        assert response.status_code == 422

    def test_load_missing(self, client):
        """Test loading a workflow that does not exist."""
        response = client.post("/library/nope/load")
        assert response.status_code == 404


class TestWebSocket:
    """Tests for the live board feed."""

    def test_initial_state_and_commands(self, client):
        """Test the initial message and a history command."""
        client.delete("/workflow/nodes/node_end")

        with client.websocket_connect("/ws/board") as ws:
            first = ws.receive_json()
            assert first["type"] == "state"
            assert "node_end" not in {n["id"] for n in first["state"]["nodes"]}

            ws.send_json({"action": "undo"})
            update = ws.receive_json()
            assert update["type"] == "state"
            assert "node_end" in {n["id"] for n in update["state"]["nodes"]}

    def test_unknown_action(self, client):
        """Test that unknown commands are answered with an error."""
        with client.websocket_connect("/ws/board") as ws:
            ws.receive_json()
            ws.send_json({"action": "explode"})

            message = ws.receive_json()
            assert message["type"] == "error"
            assert "explode" in message["error"]


# ============================================================
# Async Tests
# ============================================================

@pytest.mark.asyncio
async def test_async_state():
    """Test the API with an async client."""
    app.state.board = create_board(Settings(LOAD_DEMO_WORKFLOW=False))
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/workflow/nodes", json={"id": "s", "type": "start"})
        assert response.status_code == 201

        response = await ac.get("/workflow/state")
        assert response.status_code == 200
        assert node_ids(response.json()) == {"s"}

    app.state.board.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

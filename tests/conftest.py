"""
Shared pytest fixtures for wayfinding tests.

Fixtures here are available to all test files.

Notes for new developers:
- The sample site is a small corridor with a side branch, laid out on the
  floor plane (y = 0) so distances are easy to check by hand
- Async store tests use a real JsonFileStore in pytest's tmp_path
- Use 'yield' in fixtures for setup/teardown patterns
"""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from src.navigation.graph import AdjacencyGraph
from src.navigation.waypoints import Waypoint, WaypointStore
from src.store.backends import JsonFileStore


@pytest.fixture
def mock_status_callback() -> AsyncMock:
    """
    Create a mock async callback for status updates.

    Example:
        async def test_load(session, mock_status_callback):
            await session.load(mock_status_callback)
            first_msg = mock_status_callback.call_args_list[0][0][0]
    """
    return AsyncMock()


@pytest.fixture
def corridor_waypoints() -> WaypointStore:
    """
    Five waypoints in a straight line along +X, one metre apart,
    plus a side room branching off cube_2.

        cube_0 - cube_1 - cube_2 - cube_3 - cube_4
                            |
                          cube_5
    """
    store = WaypointStore()
    for i in range(5):
        store.add(Waypoint(id=f"cube_{i}", position=(float(i), 0.0, 0.0), rotation=(0.0, 0.0, 0.0)))
    store.add(Waypoint(id="cube_5", position=(2.0, 0.0, 1.0), rotation=(0.0, 0.0, 0.0)))
    return store


@pytest.fixture
def corridor_graph() -> AdjacencyGraph:
    """Bidirectional graph matching corridor_waypoints."""
    graph = AdjacencyGraph()
    for i in range(4):
        graph.add_edge(f"cube_{i}", f"cube_{i + 1}", 1.0)
    graph.add_edge("cube_2", "cube_5", 1.0)
    return graph


@pytest.fixture
def corridor_rooms() -> dict[str, str]:
    """Room labels; Lobby is deliberately mapped twice."""
    return {
        "cube_0": "Lobby",
        "cube_4": "Room 101",
        "cube_5": "Kitchen",
        "cube_1": "Lobby",
    }


@pytest.fixture
def file_store(tmp_path) -> JsonFileStore:
    """Empty JSON-file store in a temporary directory."""
    return JsonFileStore(str(tmp_path / "data"))


@pytest.fixture
def corridor_documents(corridor_waypoints, corridor_graph, corridor_rooms) -> dict:
    """Raw documents for the corridor site, as the store would hold them."""
    return {
        "positions": {
            "timestamp": "2024-05-01T10:00:00.000Z",
            "cubeCount": len(corridor_waypoints),
            "referenceAnchor": {
                "position": {"x": 0.0, "y": 0.0, "z": 0.0},
                "orientation": {"x": 0.0, "y": 0.0, "z": 0.0, "w": 1.0},
            },
            "cubes": [
                {
                    "id": wp.id,
                    "worldPosition": {"x": wp.position[0], "y": wp.position[1], "z": wp.position[2]},
                    "rotation": {"x": 0.0, "y": 0.0, "z": 0.0},
                }
                for wp in corridor_waypoints
            ],
        },
        "graph": {"adjacencyList": corridor_graph.to_dict()},
        "rooms": {"roomMapping": dict(corridor_rooms)},
    }


@pytest_asyncio.fixture
async def populated_store(file_store, corridor_documents) -> JsonFileStore:
    """JsonFileStore pre-loaded with the corridor site."""
    for collection, document in corridor_documents.items():
        await file_store.replace(collection, document)
    return file_store

"""Tests for MappingSession: placing, connecting, labelling and saving waypoints."""

import math
from unittest.mock import AsyncMock

import pytest

from src.config import NavigationSettings
from src.navigation.reconciler import yaw_quat
from src.session.mapping_session import MappingSession, placement_position
from src.store.backends import StoreError


@pytest.fixture
def mapping(file_store) -> MappingSession:
    session = MappingSession(file_store)
    session.calibrate()
    return session


class TestPlacementPosition:
    """New waypoints go in front of the camera."""

    def test_no_orientation_uses_negative_z(self):
        assert placement_position((1.0, 1.5, 0.0), None, 1.0) == pytest.approx((1.0, 1.5, -1.0))

    def test_turned_left_places_along_negative_x(self):
        position = placement_position((0.0, 0.0, 0.0), yaw_quat(math.pi / 2), 2.0)
        assert position == pytest.approx((-2.0, 0.0, 0.0), abs=1e-9)


class TestEditing:
    """In-memory edits before saving."""

    def test_add_waypoint_allocates_ids(self, mapping):
        first = mapping.add_waypoint((0.0, 0.0, 0.0))
        second = mapping.add_waypoint((0.0, 0.0, -1.0))

        assert (first.id, second.id) == ("cube_0", "cube_1")
        assert second.position == pytest.approx((0.0, 0.0, -2.0))
        assert first.rotation == (0.0, 0.0, 0.0)

    def test_placement_distance_from_settings(self, file_store):
        session = MappingSession(file_store, NavigationSettings(placement_distance=0.5))
        assert session.add_waypoint((0.0, 0.0, 0.0)).position == pytest.approx((0.0, 0.0, -0.5))

    def test_connect_defaults_to_euclidean_weight(self, mapping):
        mapping.add_waypoint((0.0, 0.0, 0.0))
        mapping.add_waypoint((3.0, 0.0, 3.0))

        edge = mapping.connect("cube_0", "cube_1")

        assert edge.distance == pytest.approx(math.hypot(3.0, 3.0))
        assert [e.node for e in mapping.graph.neighbors("cube_1")] == ["cube_0"]

    def test_connect_unknown_waypoint(self, mapping):
        mapping.add_waypoint((0.0, 0.0, 0.0))
        with pytest.raises(KeyError):
            mapping.connect("cube_0", "cube_9")

    def test_label_room(self, mapping):
        mapping.add_waypoint((0.0, 0.0, 0.0))
        mapping.label_room("cube_0", "Lobby")
        assert mapping.room_mapping == {"cube_0": "Lobby"}

    def test_label_unknown_waypoint(self, mapping):
        with pytest.raises(KeyError):
            mapping.label_room("cube_0", "Lobby")


class TestPersistence:
    """Saving, loading and removing against a real JSON-file store."""

    @pytest.mark.asyncio
    async def test_save_writes_all_documents(self, mapping, file_store, mock_status_callback):
        mapping.add_waypoint((0.0, 0.0, 0.0))
        mapping.add_waypoint((1.0, 0.0, -1.0))
        mapping.connect("cube_0", "cube_1", 1.5)
        mapping.label_room("cube_1", "Room 101")

        assert await mapping.save(mock_status_callback) is True

        positions = await file_store.fetch("positions")
        assert positions["cubeCount"] == 2
        assert positions["referenceAnchor"]["position"] == {"x": 0.0, "y": 0.0, "z": 0.0}
        graph = await file_store.fetch("graph")
        assert graph["adjacencyList"]["cube_0"] == [{"node": "cube_1", "distance": 1.5}]
        assert await file_store.fetch("rooms") == {"roomMapping": {"cube_1": "Room 101"}}
        mock_status_callback.assert_called_once_with("Saved 2 waypoint positions")

    @pytest.mark.asyncio
    async def test_save_requires_calibration(self, file_store, mock_status_callback):
        session = MappingSession(file_store)
        assert await session.save(mock_status_callback) is False
        mock_status_callback.assert_called_once_with("Please calibrate your position first")

    @pytest.mark.asyncio
    async def test_save_failure_reported(self, mock_status_callback):
        store = AsyncMock()
        store.replace.side_effect = StoreError("offline")
        session = MappingSession(store)
        session.calibrate()

        assert await session.save(mock_status_callback) is False
        mock_status_callback.assert_called_once_with("Failed to save positions to server")

    @pytest.mark.asyncio
    async def test_load_aligns_to_mapping_anchor(self, populated_store):
        session = MappingSession(populated_store)
        session.calibrate((1.0, 0.0, 0.0))

        assert await session.load() is True

        # Translation only: the new anchor has no orientation
        assert session.waypoints.position_of("cube_0") == pytest.approx((1.0, 0.0, 0.0))
        assert session.room_mapping["cube_4"] == "Room 101"

    @pytest.mark.asyncio
    async def test_remove_last_waypoint_cascades(self, mapping, file_store):
        mapping.add_waypoint((0.0, 0.0, 0.0))
        mapping.add_waypoint((0.0, 0.0, -1.0))
        mapping.connect("cube_0", "cube_1")
        mapping.label_room("cube_1", "Kitchen")
        await mapping.save()

        assert await mapping.remove_last_waypoint() == "cube_1"

        assert mapping.waypoints.ids() == ["cube_0"]
        assert len(mapping.graph) == 0
        assert mapping.room_mapping == {}
        assert (await file_store.fetch("positions"))["cubeCount"] == 1
        assert await file_store.fetch("graph") == {"adjacencyList": {}}

    @pytest.mark.asyncio
    async def test_removed_id_reused_by_next_waypoint(self, mapping):
        for _ in range(3):
            mapping.add_waypoint((0.0, 0.0, 0.0))

        await mapping.remove_last_waypoint()

        assert mapping.add_waypoint((0.0, 0.0, 0.0)).id == "cube_2"

    @pytest.mark.asyncio
    async def test_remove_with_nothing_placed(self, mapping):
        assert await mapping.remove_last_waypoint() is None

    @pytest.mark.asyncio
    async def test_remove_fails_when_store_unavailable(self):
        store = AsyncMock()
        store.fetch.side_effect = StoreError("offline")
        session = MappingSession(store)
        session.add_waypoint((0.0, 0.0, 0.0))

        assert await session.remove_last_waypoint() is None
        assert session.waypoints.ids() == ["cube_0"]

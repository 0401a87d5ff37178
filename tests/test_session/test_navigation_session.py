"""Tests for NavigationSession: calibrate, load, choose a room, follow the route."""

import math

import pytest
import pytest_asyncio

from src.config import NavigationSettings
from src.navigation.errors import UnknownDestinationError
from src.navigation.reconciler import yaw_quat
from src.navigation.windower import SegmentKind
from src.session.navigation_session import NavigationSession


@pytest.fixture
def session(populated_store) -> NavigationSession:
    return NavigationSession(populated_store)


@pytest_asyncio.fixture
async def loaded_session(session) -> NavigationSession:
    session.calibrate()
    await session.load()
    return session


def get_messages(callback) -> list[str]:
    return [call[0][0] for call in callback.call_args_list]


class TestLoad:
    """Tests for loading and reconciling the mapped site."""

    @pytest.mark.asyncio
    async def test_requires_calibration(self, session, mock_status_callback):
        assert await session.load(mock_status_callback) is False
        mock_status_callback.assert_called_once_with("Please calibrate your position first")

    @pytest.mark.asyncio
    async def test_load_with_canonical_calibration(self, session, mock_status_callback):
        session.calibrate()

        assert await session.load(mock_status_callback) is True

        assert len(session.waypoints) == 6
        assert session.waypoints.position_of("cube_4") == pytest.approx((4.0, 0.0, 0.0))
        assert session.rooms() == ["Lobby", "Room 101", "Kitchen"]
        assert get_messages(mock_status_callback) == ["Loaded 6 waypoints"]

    @pytest.mark.asyncio
    async def test_load_aligns_to_rotated_calibration(self, session):
        session.calibrate((10.0, 0.0, 0.0), yaw_quat(math.pi / 2))

        await session.load()

        assert session.waypoints.position_of("cube_1") == pytest.approx((10.0, 0.0, -1.0))

    @pytest.mark.asyncio
    async def test_empty_store(self, file_store, mock_status_callback):
        session = NavigationSession(file_store)
        session.calibrate()

        assert await session.load(mock_status_callback) is False
        mock_status_callback.assert_called_once_with("No saved waypoints found")

    @pytest.mark.asyncio
    async def test_stale_destination_cleared(self, session):
        session.calibrate()
        session.destination_id = "cube_42"
        session.destination_room = "Gone"

        await session.load()

        assert session.destination_id is None
        assert session.destination_room is None

    @pytest.mark.asyncio
    async def test_recalibrating_drops_waypoints(self, session):
        session.calibrate()
        await session.load()

        session.calibrate((1.0, 0.0, 0.0))

        assert len(session.waypoints) == 0


class TestNavigation:
    """Tests for starting, following and stopping a route."""

    @pytest.mark.asyncio
    async def test_toggle_starts_and_stops(self, loaded_session, mock_status_callback):
        loaded_session.select_destination("Room 101")

        assert await loaded_session.toggle_navigation((0.0, 0.0, 0.0), mock_status_callback) is True
        assert loaded_session.route.waypoint_ids == ["cube_0", "cube_1", "cube_2", "cube_3", "cube_4"]

        assert await loaded_session.toggle_navigation((0.0, 0.0, 0.0), mock_status_callback) is False
        assert loaded_session.route is None
        assert get_messages(mock_status_callback) == [
            "Navigating to Room 101 (4.0m, 5 waypoints)",
            "Navigation stopped",
        ]

    @pytest.mark.asyncio
    async def test_tick_reveals_window(self, loaded_session):
        loaded_session.select_destination("Room 101")
        loaded_session.start_navigation((0.0, 0.0, 0.0))

        window = loaded_session.tick((2.0, 0.0, 0.0))
        assert window.visible_ids == ["cube_2", "cube_3"]
        assert window.show_destination is False

        window = loaded_session.tick((3.2, 0.0, 0.0))
        assert window.show_destination is True
        assert window.segments[-1].kind == SegmentKind.FINAL_APPROACH

    @pytest.mark.asyncio
    async def test_tick_when_stopped_is_empty(self, loaded_session):
        assert loaded_session.tick((0.0, 0.0, 0.0)).is_empty

    @pytest.mark.asyncio
    async def test_settings_reach_windower(self, populated_store):
        session = NavigationSession(populated_store, NavigationSettings(window_size=2))
        session.calibrate()
        await session.load()
        session.select_destination("Room 101")
        session.start_navigation((0.0, 0.0, 0.0))

        assert session.tick((0.0, 0.0, 0.0)).visible_ids == ["cube_0", "cube_1"]

    @pytest.mark.asyncio
    async def test_no_destination_reported(self, loaded_session, mock_status_callback):
        assert await loaded_session.toggle_navigation((0.0, 0.0, 0.0), mock_status_callback) is False
        mock_status_callback.assert_called_once_with(
            "Cannot start navigation - no destination selected"
        )

    @pytest.mark.asyncio
    async def test_uncalibrated_reported(self, session, mock_status_callback):
        assert await session.toggle_navigation((0.0, 0.0, 0.0), mock_status_callback) is False
        mock_status_callback.assert_called_once_with("Please calibrate your position first")

    @pytest.mark.asyncio
    async def test_unreachable_reported(self, loaded_session, mock_status_callback):
        loaded_session.graph.remove_edge("cube_2", "cube_5")
        loaded_session.select_destination("Kitchen")

        assert await loaded_session.toggle_navigation((0.0, 0.0, 0.0), mock_status_callback) is False
        assert loaded_session.navigation_active is False
        mock_status_callback.assert_called_once_with("No path found from cube_0 to cube_5")

    @pytest.mark.asyncio
    async def test_unknown_room_raises(self, loaded_session):
        with pytest.raises(UnknownDestinationError):
            loaded_session.select_destination("Basement")

    @pytest.mark.asyncio
    async def test_changing_destination_replans(self, loaded_session):
        loaded_session.select_destination("Room 101")
        loaded_session.start_navigation((0.0, 0.0, 0.0))
        loaded_session.tick((1.1, 0.0, 0.0))

        loaded_session.select_destination("Kitchen")

        assert loaded_session.navigation_active is True
        assert loaded_session.route.waypoint_ids == ["cube_1", "cube_2", "cube_5"]
        assert loaded_session.windower.full_path == ["cube_1", "cube_2", "cube_5"]

    @pytest.mark.asyncio
    async def test_nearest_waypoint(self, loaded_session):
        assert loaded_session.nearest_waypoint((2.1, 0.0, 0.8)) == "cube_5"

    @pytest.mark.asyncio
    async def test_end_clears_everything(self, loaded_session):
        loaded_session.select_destination("Room 101")
        loaded_session.start_navigation((0.0, 0.0, 0.0))

        loaded_session.end()

        assert loaded_session.is_calibrated is False
        assert loaded_session.navigation_active is False
        assert len(loaded_session.waypoints) == 0
        assert loaded_session.rooms() == []
        assert loaded_session.destination_id is None

"""Navigation-phase session: calibrate, load, pick a room, follow the route."""

import logging
from typing import Awaitable, Callable, Optional

from bosdyn.client.math_helpers import Quat

from src.config import NavigationSettings
from src.navigation.errors import (
    CalibrationRequiredError,
    NavigationError,
    UnknownDestinationError,
)
from src.navigation.graph import AdjacencyGraph
from src.navigation.planner import PathPlanner, Route, list_rooms, nearest_waypoint
from src.navigation.reconciler import FrameReconciler, ReferenceAnchor
from src.navigation.waypoints import Vec3, WaypointStore
from src.navigation.windower import PathWindow, PathWindower
from src.store.backends import DocumentStore
from src.store.loader import load_site

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], Awaitable[None]]


async def _noop_status(message: str) -> None:
    return None


class NavigationSession:
    """
    State for one user's navigation session.

    Owns the live calibration anchor, the reconciled waypoints, the graph,
    the room mapping, the chosen destination and the path windower. Nothing
    here is process-global; create one session per AR session.

    Example:
        session = NavigationSession(store)
        session.calibrate(device_position, device_orientation)
        await session.load(status_callback)
        session.select_destination("Room 101")
        await session.toggle_navigation(device_position, status_callback)
        # every frame:
        window = session.tick(device_position)
    """

    def __init__(self, store: DocumentStore, settings: Optional[NavigationSettings] = None) -> None:
        self.store = store
        self.settings = settings or NavigationSettings()

        self.live_anchor: Optional[ReferenceAnchor] = None
        self.saved_anchor: Optional[ReferenceAnchor] = None
        self.waypoints = WaypointStore()
        self.graph = AdjacencyGraph()
        self.room_mapping: dict[str, str] = {}

        self.destination_room: Optional[str] = None
        self.destination_id: Optional[str] = None
        self.route: Optional[Route] = None
        self.navigation_active = False
        self._last_live_position: Optional[Vec3] = None

        self.windower = PathWindower(
            window_size=self.settings.window_size,
            proximity_threshold=self.settings.proximity_threshold,
            floor_offset=self.settings.floor_offset,
        )

    @property
    def is_calibrated(self) -> bool:
        return self.live_anchor is not None

    @property
    def planner(self) -> PathPlanner:
        return PathPlanner(self.graph, self.waypoints, self.room_mapping)

    def calibrate(
        self,
        device_position: Optional[Vec3] = None,
        device_orientation: Optional[Quat] = None,
    ) -> ReferenceAnchor:
        """
        Set the live reference anchor.

        With no pose the fixed world origin is used; otherwise the device
        pose at the calibration point. Calibrating again discards any
        active route and loaded waypoints, which must be reloaded.
        """
        if device_position is None:
            anchor = ReferenceAnchor.canonical()
        else:
            anchor = ReferenceAnchor.from_device_pose(device_position, device_orientation)

        self.stop_navigation()
        self.waypoints.clear()
        self.live_anchor = anchor
        logger.info(f"Reference position calibrated at {anchor.position}")
        return anchor

    async def load(self, status_callback: StatusCallback = _noop_status) -> bool:
        """
        Fetch the mapped site and align it to the live calibration.

        Returns:
            True if waypoints were loaded, False if calibration is missing
            or the site has no waypoints
        """
        if not self.is_calibrated:
            await status_callback(str(CalibrationRequiredError()))
            return False

        site = await load_site(self.store)
        if not site.positions.waypoints:
            logger.info("No waypoints to load")
            await status_callback("No saved waypoints found")
            return False

        self.saved_anchor = site.positions.reference_anchor
        reconciler = FrameReconciler(self.saved_anchor, self.live_anchor)
        self.waypoints = WaypointStore(reconciler.reconcile_waypoints(site.positions.waypoints))
        self.graph = site.graph.graph
        self.room_mapping = site.rooms.room_mapping

        # Destination may have been removed since it was chosen
        if self.destination_id is not None and self.destination_id not in self.waypoints:
            logger.warning(f"Destination {self.destination_id} no longer exists")
            self.destination_id = None
            self.destination_room = None

        logger.info(f"Loaded {len(self.waypoints)} waypoints aligned to live calibration")
        await status_callback(f"Loaded {len(self.waypoints)} waypoints")
        return True

    def rooms(self) -> list[str]:
        """Unique room labels available as destinations."""
        return list_rooms(self.room_mapping)

    def select_destination(self, room: str) -> str:
        """
        Choose the destination room.

        If navigation is running, the route is replanned from the last
        known position.

        Returns:
            The destination waypoint id

        Raises:
            UnknownDestinationError: If no loaded waypoint carries the label
            NavigationError: If replanning an active route fails; navigation
                is stopped in that case
        """
        destination_id = self.planner.resolve_room(room)
        self.destination_room = room
        self.destination_id = destination_id
        logger.info(f"Destination node: {destination_id} for room: {room}")

        if self.navigation_active and self._last_live_position is not None:
            self.start_navigation(self._last_live_position)
        return destination_id

    def start_navigation(self, live_position: Vec3) -> Route:
        """
        Plan a route from the nearest waypoint and begin revealing it.

        Any previous route and window state is discarded first.

        Raises:
            CalibrationRequiredError: If calibrate() has not been called
            UnknownDestinationError: If no destination was selected
            NoStartWaypointError: If no waypoints are loaded
            UnreachableDestinationError: If the graph has no path
        """
        self.stop_navigation()

        if not self.is_calibrated:
            raise CalibrationRequiredError()
        if self.destination_id is None:
            raise UnknownDestinationError("Cannot start navigation - no destination selected")

        route = self.planner.plan(live_position, self.destination_id)

        self.route = route
        self.windower.set_path(route.waypoint_ids)
        self.navigation_active = True
        self._last_live_position = live_position
        return route

    def stop_navigation(self) -> None:
        """Clear the route and any emitted window; safe to call repeatedly."""
        self.windower.reset()
        self.route = None
        self.navigation_active = False

    async def toggle_navigation(
        self,
        live_position: Vec3,
        status_callback: StatusCallback = _noop_status,
    ) -> bool:
        """
        Start navigation if stopped, stop it if running.

        Planning failures are reported through status_callback and leave
        navigation off.

        Returns:
            Whether navigation is active afterwards
        """
        if self.navigation_active:
            self.stop_navigation()
            await status_callback("Navigation stopped")
            return False

        try:
            route = self.start_navigation(live_position)
        except NavigationError as e:
            logger.warning(f"Navigation unavailable: {e}")
            self.stop_navigation()
            await status_callback(str(e))
            return False

        await status_callback(
            f"Navigating to {self.destination_room or route.destination} "
            f"({route.distance:.1f}m, {len(route)} waypoints)"
        )
        return True

    def tick(self, live_position: Vec3) -> PathWindow:
        """Per-frame update; returns an empty window when not navigating."""
        if not self.navigation_active:
            return PathWindow()
        self._last_live_position = live_position
        return self.windower.update(self.waypoints.positions(), live_position)

    def nearest_waypoint(self, live_position: Vec3) -> Optional[str]:
        """Waypoint closest to the user, for highlighting."""
        return nearest_waypoint(live_position, self.waypoints)

    def end(self) -> None:
        """Tear down everything when the AR session ends."""
        self.stop_navigation()
        self.live_anchor = None
        self.saved_anchor = None
        self.waypoints.clear()
        self.graph = AdjacencyGraph()
        self.room_mapping = {}
        self.destination_id = None
        self.destination_room = None
        self._last_live_position = None
        logger.info("Navigation session ended")

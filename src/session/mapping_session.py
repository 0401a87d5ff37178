"""Mapping-phase session: place waypoints, connect them, label rooms, store."""

import logging
from typing import Awaitable, Callable, Optional

import numpy as np
from bosdyn.client.math_helpers import Quat

from src.config import NavigationSettings
from src.navigation.errors import CalibrationRequiredError
from src.navigation.graph import AdjacencyGraph, Edge
from src.navigation.reconciler import FrameReconciler, ReferenceAnchor
from src.navigation.waypoints import Vec3, Waypoint, WaypointStore, distance
from src.session.lifecycle import NodeLifecycleManager
from src.store.backends import DocumentStore
from src.store.documents import GraphDocument, PositionsDocument, RoomsDocument
from src.store.loader import load_site, save_document

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], Awaitable[None]]

# Devices look down their local -Z axis
FORWARD = (0.0, 0.0, -1.0)


async def _noop_status(message: str) -> None:
    return None


def placement_position(
    camera_position: Vec3,
    camera_orientation: Optional[Quat],
    placement_distance: float,
) -> Vec3:
    """Point `placement_distance` metres in front of the camera."""
    offset = np.asarray(FORWARD, dtype=float) * placement_distance
    if camera_orientation is not None:
        offset = np.asarray(camera_orientation.transform_point(*offset), dtype=float)
    position = np.asarray(camera_position, dtype=float) + offset
    return (float(position[0]), float(position[1]), float(position[2]))


class MappingSession:
    """
    State for recording a building's waypoint graph.

    Waypoints, edges and room labels are edited in memory and written to
    the store by save(). Removing a waypoint is persisted immediately with
    a full cascade through NodeLifecycleManager.
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[NavigationSettings] = None,
        lifecycle: Optional[NodeLifecycleManager] = None,
    ) -> None:
        self.store = store
        self.settings = settings or NavigationSettings()
        self.lifecycle = lifecycle or NodeLifecycleManager(store)

        self.reference_anchor: Optional[ReferenceAnchor] = None
        self.waypoints = WaypointStore()
        self.graph = AdjacencyGraph()
        self.room_mapping: dict[str, str] = {}

    @property
    def is_calibrated(self) -> bool:
        return self.reference_anchor is not None

    def calibrate(
        self,
        device_position: Optional[Vec3] = None,
        device_orientation: Optional[Quat] = None,
    ) -> ReferenceAnchor:
        """Set the anchor new waypoints are recorded against (default: world origin)."""
        if device_position is None:
            self.reference_anchor = ReferenceAnchor.canonical()
        else:
            self.reference_anchor = ReferenceAnchor.from_device_pose(device_position, device_orientation)
        logger.info(f"Mapping anchor set at {self.reference_anchor.position}")
        return self.reference_anchor

    def add_waypoint(
        self,
        camera_position: Vec3,
        camera_orientation: Optional[Quat] = None,
    ) -> Waypoint:
        """Place a waypoint in front of the device under the next free id."""
        waypoint = Waypoint(
            id=self.lifecycle.allocate_id(self.waypoints),
            position=placement_position(
                camera_position, camera_orientation, self.settings.placement_distance
            ),
            rotation=(0.0, 0.0, 0.0),
        )
        self.waypoints.add(waypoint)
        logger.info(f"Waypoint {waypoint.id} added at {waypoint.position}")
        return waypoint

    def connect(self, first_id: str, second_id: str, weight: Optional[float] = None) -> Edge:
        """
        Connect two waypoints in both directions.

        Args:
            first_id: One endpoint
            second_id: Other endpoint
            weight: Edge weight; defaults to the straight-line distance

        Raises:
            KeyError: If either waypoint is unknown
        """
        first = self.waypoints.get(first_id)
        second = self.waypoints.get(second_id)
        if first is None or second is None:
            missing = first_id if first is None else second_id
            raise KeyError(f"Unknown waypoint: {missing}")

        if weight is None:
            weight = distance(first.position, second.position)
        self.graph.add_edge(first_id, second_id, weight)
        logger.debug(f"Connected {first_id} <-> {second_id} ({weight:.2f}m)")
        return Edge(node=second_id, distance=weight)

    def label_room(self, waypoint_id: str, room: str) -> None:
        """
        Assign a room label to a waypoint.

        Raises:
            KeyError: If the waypoint is unknown
        """
        if waypoint_id not in self.waypoints:
            raise KeyError(f"Unknown waypoint: {waypoint_id}")
        self.room_mapping[waypoint_id] = room

    async def remove_last_waypoint(self) -> Optional[str]:
        """
        Remove the most recently added waypoint and every reference to it.

        Returns:
            The removed id, or None if there was nothing to remove or the
            store could not be updated
        """
        last = self.waypoints.last()
        if last is None:
            logger.info("No waypoints to remove")
            return None

        removed = await self.lifecycle.remove_waypoint(
            last.id, self.waypoints, self.graph, self.room_mapping
        )
        if not removed:
            return None
        logger.info(f"Waypoint removed: {last.id}, remaining: {len(self.waypoints)}")
        return last.id

    async def load(self, status_callback: StatusCallback = _noop_status) -> bool:
        """
        Load the stored site for further editing, aligned to this anchor.

        Returns:
            False if calibration is missing
        """
        if not self.is_calibrated:
            await status_callback(str(CalibrationRequiredError()))
            return False

        site = await load_site(self.store)
        reconciler = FrameReconciler(site.positions.reference_anchor, self.reference_anchor)
        self.waypoints = WaypointStore(reconciler.reconcile_waypoints(site.positions.waypoints))
        self.graph = site.graph.graph
        self.room_mapping = site.rooms.room_mapping

        await status_callback(f"Loaded {len(self.waypoints)} saved waypoints")
        return True

    async def save(self, status_callback: StatusCallback = _noop_status) -> bool:
        """
        Write positions, graph and room mapping to the store.

        Returns:
            True if all three documents were written
        """
        if not self.is_calibrated:
            await status_callback(str(CalibrationRequiredError()))
            return False

        positions = PositionsDocument(
            waypoints=list(self.waypoints),
            reference_anchor=self.reference_anchor,
        )
        results = [
            await save_document(self.store, positions),
            await save_document(self.store, GraphDocument(graph=self.graph)),
            await save_document(self.store, RoomsDocument(room_mapping=self.room_mapping)),
        ]

        if all(results):
            await status_callback(f"Saved {len(self.waypoints)} waypoint positions")
            return True

        await status_callback("Failed to save positions to server")
        return False

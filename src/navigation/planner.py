"""Route planning: start/destination resolution on top of the graph."""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from src.navigation.errors import (
    NoStartWaypointError,
    UnknownDestinationError,
    UnreachableDestinationError,
)
from src.navigation.graph import AdjacencyGraph
from src.navigation.waypoints import Vec3, WaypointStore, distance

logger = logging.getLogger(__name__)


@dataclass
class Route:
    """Ordered waypoint ids from the resolved start to the destination."""

    waypoint_ids: list[str]
    distance: float

    @property
    def start(self) -> str:
        return self.waypoint_ids[0]

    @property
    def destination(self) -> str:
        return self.waypoint_ids[-1]

    def __len__(self) -> int:
        return len(self.waypoint_ids)


def nearest_waypoint(
    live_position: Vec3,
    waypoints: WaypointStore,
    candidate_ids: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """
    Find the waypoint closest to a live position.

    Args:
        live_position: Current device position in the live frame
        waypoints: Store holding reconciled positions
        candidate_ids: Restrict the search to these ids (default: all)

    Returns:
        The nearest waypoint id (first encountered wins ties), or None if
        there are no candidates with a known position.
    """
    ids = waypoints.ids() if candidate_ids is None else list(candidate_ids)

    nearest_id: Optional[str] = None
    min_distance = math.inf
    for waypoint_id in ids:
        position = waypoints.position_of(waypoint_id)
        if position is None:
            continue
        dist = distance(live_position, position)
        if dist < min_distance:
            min_distance = dist
            nearest_id = waypoint_id

    if nearest_id is not None:
        logger.debug(f"Nearest waypoint: {nearest_id} ({min_distance:.2f}m)")
    return nearest_id


def find_room_waypoint(room: str, room_mapping: dict[str, str]) -> Optional[str]:
    """
    Resolve a room label to a waypoint id.

    Several waypoints may carry the same label; the first one in the
    mapping's insertion order is returned.
    """
    for waypoint_id, label in room_mapping.items():
        if label == room:
            return waypoint_id
    return None


def list_rooms(room_mapping: dict[str, str]) -> list[str]:
    """Unique room labels in the order they first appear."""
    return list(dict.fromkeys(room_mapping.values()))


class PathPlanner:
    """Resolves start and destination waypoints and runs the shortest-path search."""

    def __init__(
        self,
        graph: AdjacencyGraph,
        waypoints: WaypointStore,
        room_mapping: Optional[dict[str, str]] = None,
    ) -> None:
        self.graph = graph
        self.waypoints = waypoints
        self.room_mapping = room_mapping if room_mapping is not None else {}

    def resolve_room(self, room: str) -> str:
        """
        Map a room label to its destination waypoint.

        Raises:
            UnknownDestinationError: If no waypoint is labelled with the room
                or the labelled waypoint no longer exists
        """
        waypoint_id = find_room_waypoint(room, self.room_mapping)
        if waypoint_id is None:
            raise UnknownDestinationError(f"No waypoint found for destination: {room}")
        if waypoint_id not in self.waypoints:
            raise UnknownDestinationError(
                f"Destination {room} points at missing waypoint {waypoint_id}"
            )
        return waypoint_id

    def plan_between(self, start_id: str, destination_id: str) -> Route:
        """
        Shortest route between two known waypoints.

        Raises:
            UnreachableDestinationError: If no path exists
        """
        result = self.graph.shortest_path(start_id, destination_id, known_nodes=self.waypoints.ids())
        if result is None:
            raise UnreachableDestinationError(
                f"No path found from {start_id} to {destination_id}"
            )
        logger.info(
            f"Path found: {' -> '.join(result.path)} Distance: {result.distance:.2f}m"
        )
        return Route(waypoint_ids=result.path, distance=result.distance)

    def plan(self, live_position: Vec3, destination_id: str) -> Route:
        """
        Route from the waypoint nearest the user to the destination.

        Raises:
            NoStartWaypointError: If there are no waypoints to start from
            UnreachableDestinationError: If the destination cannot be reached
        """
        start_id = nearest_waypoint(live_position, self.waypoints)
        if start_id is None:
            raise NoStartWaypointError("Cannot start navigation - no waypoints loaded")
        return self.plan_between(start_id, destination_id)

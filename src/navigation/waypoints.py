"""Waypoint records and the in-memory waypoint store."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import numpy as np

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

WAYPOINT_ID_PREFIX = "cube_"
_WAYPOINT_ID_PATTERN = re.compile(r"^cube_(\d+)$")


def format_waypoint_id(index: int) -> str:
    """
    Build the persisted id for an integer waypoint index.

    Example:
        >>> format_waypoint_id(4)
        "cube_4"
    """
    return f"{WAYPOINT_ID_PREFIX}{index}"


def parse_waypoint_index(waypoint_id: str) -> Optional[int]:
    """
    Extract the integer index from a waypoint id.

    Args:
        waypoint_id: Persisted id (e.g., "cube_12")

    Returns:
        The integer suffix, or None if the id does not follow the
        "cube_<integer>" format.
    """
    match = _WAYPOINT_ID_PATTERN.match(waypoint_id)
    if match is None:
        return None
    return int(match.group(1))


def waypoint_sort_key(waypoint_id: str) -> tuple[int, int, str]:
    """Order ids numerically by index, with non-standard ids after them."""
    index = parse_waypoint_index(waypoint_id)
    if index is None:
        return (1, 0, waypoint_id)
    return (0, index, waypoint_id)


def next_id(existing_ids: Iterable[int]) -> int:
    """
    Return the smallest non-negative integer not in existing_ids.

    Ids freed by removed waypoints are handed out again first, keeping the
    id space dense.

    Example:
        >>> next_id({0, 1, 3})
        2
        >>> next_id(set())
        0
    """
    taken = set(existing_ids)
    candidate = 0
    while candidate in taken:
        candidate += 1
    return candidate


def distance(a: Vec3, b: Vec3) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


@dataclass
class Waypoint:
    """A physical point in the building recorded during mapping."""

    id: str
    position: Vec3
    rotation: Optional[Vec3] = None  # Euler angles (radians)

    @property
    def index(self) -> Optional[int]:
        return parse_waypoint_index(self.id)


class WaypointStore:
    """
    In-memory waypoint index for the active session.

    Insertion order is preserved and is the order used for nearest-waypoint
    tie-breaking. Positions held here are expected to already be expressed
    in the live session's frame.
    """

    def __init__(self, waypoints: Optional[Iterable[Waypoint]] = None) -> None:
        self._waypoints: dict[str, Waypoint] = {}
        for waypoint in waypoints or []:
            self.add(waypoint)

    def __len__(self) -> int:
        return len(self._waypoints)

    def __contains__(self, waypoint_id: object) -> bool:
        return waypoint_id in self._waypoints

    def __iter__(self) -> Iterator[Waypoint]:
        return iter(list(self._waypoints.values()))

    def ids(self) -> list[str]:
        return list(self._waypoints.keys())

    def get(self, waypoint_id: str) -> Optional[Waypoint]:
        return self._waypoints.get(waypoint_id)

    def position_of(self, waypoint_id: str) -> Optional[Vec3]:
        waypoint = self._waypoints.get(waypoint_id)
        return waypoint.position if waypoint else None

    def positions(self) -> dict[str, Vec3]:
        """Snapshot of id -> position for every waypoint."""
        return {wp.id: wp.position for wp in self._waypoints.values()}

    def add(self, waypoint: Waypoint) -> None:
        if waypoint.id in self._waypoints:
            logger.warning(f"Replacing existing waypoint {waypoint.id}")
        self._waypoints[waypoint.id] = waypoint

    def remove(self, waypoint_id: str) -> Optional[Waypoint]:
        return self._waypoints.pop(waypoint_id, None)

    def clear(self) -> None:
        self._waypoints.clear()

    def last(self) -> Optional[Waypoint]:
        """Most recently added waypoint, if any."""
        if not self._waypoints:
            return None
        return next(reversed(self._waypoints.values()))

    def allocate_id(self) -> str:
        """Next free waypoint id under the first-gap policy."""
        indices = [wp.index for wp in self._waypoints.values() if wp.index is not None]
        return format_waypoint_id(next_id(indices))

"""Sliding-window reveal of a planned route."""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Sequence

import numpy as np

from src.navigation.waypoints import Vec3, distance

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 3
DEFAULT_PROXIMITY_THRESHOLD = 2.0
DEFAULT_FLOOR_OFFSET = 0.05


class SegmentKind(Enum):
    NORMAL = "normal"
    FINAL_APPROACH = "final_approach"


@dataclass
class RouteSegment:
    """
    One drawable leg of the route.

    `start` and `end` sit slightly below the waypoint centres. The direction
    marker goes at `midpoint`, pointing along `direction`; the drawn tube
    stops there.
    """

    from_id: str
    to_id: str
    start: Vec3
    end: Vec3
    midpoint: Vec3
    direction: Vec3
    kind: SegmentKind = SegmentKind.NORMAL


@dataclass
class PathWindow:
    """What the renderer should show for the current frame."""

    current_index: int = 0
    visible_ids: list[str] = field(default_factory=list)
    show_destination: bool = False
    segments: list[RouteSegment] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.visible_ids and not self.show_destination


def _to_floor(position: Vec3, floor_offset: float) -> np.ndarray:
    point = np.asarray(position, dtype=float).copy()
    point[1] -= floor_offset
    return point


def _as_vec3(array: np.ndarray) -> Vec3:
    return (float(array[0]), float(array[1]), float(array[2]))


def build_segment(
    from_id: str,
    to_id: str,
    from_position: Vec3,
    to_position: Vec3,
    kind: SegmentKind = SegmentKind.NORMAL,
    floor_offset: float = DEFAULT_FLOOR_OFFSET,
) -> RouteSegment:
    start = _to_floor(from_position, floor_offset)
    end = _to_floor(to_position, floor_offset)
    return RouteSegment(
        from_id=from_id,
        to_id=to_id,
        start=_as_vec3(start),
        end=_as_vec3(end),
        midpoint=_as_vec3((start + end) * 0.5),
        direction=_as_vec3(end - start),
        kind=kind,
    )


def closest_path_index(
    full_path: Sequence[str],
    positions: Mapping[str, Vec3],
    live_position: Vec3,
) -> int:
    """
    Index of the path waypoint closest to the user.

    The whole path is scanned on every call, so the index can move backward
    as well as jump ahead. Waypoints without a position are skipped; the
    first of several equally close waypoints wins.
    """
    current_index = 0
    min_distance = math.inf
    for index, waypoint_id in enumerate(full_path):
        position = positions.get(waypoint_id)
        if position is None:
            continue
        dist = distance(live_position, position)
        if dist < min_distance:
            min_distance = dist
            current_index = index
    return current_index


def compute_window(
    full_path: Sequence[str],
    positions: Mapping[str, Vec3],
    live_position: Vec3,
    window_size: int = DEFAULT_WINDOW_SIZE,
    proximity_threshold: float = DEFAULT_PROXIMITY_THRESHOLD,
    floor_offset: float = DEFAULT_FLOOR_OFFSET,
) -> PathWindow:
    """
    Work out which part of a route to show for the current frame.

    Args:
        full_path: Complete route, start to destination
        positions: Reconciled waypoint positions
        live_position: Current device position
        window_size: Maximum number of upcoming waypoints revealed
        proximity_threshold: Distance (m) at which the destination is
            revealed regardless of the window
        floor_offset: How far below waypoint centres segments are drawn

    Returns:
        PathWindow. Paths with fewer than two waypoints give an empty window.
    """
    if len(full_path) < 2:
        return PathWindow()

    current_index = closest_path_index(full_path, positions, live_position)
    last_index = len(full_path) - 1
    visible_ids = list(full_path[current_index:min(current_index + window_size, last_index)])

    destination_id = full_path[last_index]
    destination_position = positions.get(destination_id)
    show_destination = False
    if destination_position is not None:
        near = distance(live_position, destination_position) < proximity_threshold
        show_destination = near or destination_id in visible_ids

    segments: list[RouteSegment] = []
    for from_id, to_id in zip(visible_ids, visible_ids[1:]):
        from_position = positions.get(from_id)
        to_position = positions.get(to_id)
        if from_position is None or to_position is None:
            continue
        segments.append(build_segment(from_id, to_id, from_position, to_position,
                                      floor_offset=floor_offset))

    if show_destination and visible_ids and visible_ids[-1] != destination_id:
        last_position = positions.get(visible_ids[-1])
        if last_position is not None:
            segments.append(build_segment(
                visible_ids[-1], destination_id, last_position, destination_position,
                kind=SegmentKind.FINAL_APPROACH, floor_offset=floor_offset,
            ))

    return PathWindow(
        current_index=current_index,
        visible_ids=visible_ids,
        show_destination=show_destination,
        segments=segments,
    )


class PathWindower:
    """
    Per-frame driver around compute_window.

    Only the full path is kept between frames. It is replaced when
    navigation starts or the destination changes and cleared when
    navigation stops.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        proximity_threshold: float = DEFAULT_PROXIMITY_THRESHOLD,
        floor_offset: float = DEFAULT_FLOOR_OFFSET,
    ) -> None:
        self.window_size = window_size
        self.proximity_threshold = proximity_threshold
        self.floor_offset = floor_offset
        self.full_path: list[str] = []
        self.last_window: Optional[PathWindow] = None

    @property
    def active(self) -> bool:
        return len(self.full_path) >= 2

    def set_path(self, full_path: Sequence[str]) -> None:
        self.reset()
        if len(full_path) < 2:
            logger.debug("Route shorter than two waypoints, nothing to reveal")
        self.full_path = list(full_path)

    def reset(self) -> None:
        self.full_path = []
        self.last_window = None

    def update(self, positions: Mapping[str, Vec3], live_position: Vec3) -> PathWindow:
        """Compute this frame's window; a no-op for paths shorter than two."""
        if not self.active:
            self.last_window = PathWindow()
            return self.last_window

        self.last_window = compute_window(
            self.full_path,
            positions,
            live_position,
            window_size=self.window_size,
            proximity_threshold=self.proximity_threshold,
            floor_offset=self.floor_offset,
        )
        return self.last_window

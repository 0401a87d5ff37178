"""Waypoint graph, frame reconciliation and path windowing."""

from src.navigation.errors import (
    CalibrationRequiredError,
    NavigationError,
    NoStartWaypointError,
    UnknownDestinationError,
    UnreachableDestinationError,
)
from src.navigation.graph import AdjacencyGraph, Edge, PathResult
from src.navigation.planner import PathPlanner, Route, nearest_waypoint
from src.navigation.reconciler import FrameReconciler, ReferenceAnchor
from src.navigation.waypoints import Waypoint, WaypointStore, next_id
from src.navigation.windower import PathWindow, PathWindower, RouteSegment, SegmentKind

__all__ = [
    "AdjacencyGraph",
    "CalibrationRequiredError",
    "Edge",
    "FrameReconciler",
    "NavigationError",
    "NoStartWaypointError",
    "PathPlanner",
    "PathResult",
    "PathWindow",
    "PathWindower",
    "ReferenceAnchor",
    "Route",
    "RouteSegment",
    "SegmentKind",
    "UnknownDestinationError",
    "UnreachableDestinationError",
    "Waypoint",
    "WaypointStore",
    "nearest_waypoint",
    "next_id",
]

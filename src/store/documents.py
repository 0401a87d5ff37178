"""Typed views of the three persisted documents."""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from src.navigation.graph import AdjacencyGraph
from src.navigation.reconciler import ReferenceAnchor, vec3_from_dict, vec3_to_dict
from src.navigation.waypoints import Waypoint

logger = logging.getLogger(__name__)

POSITIONS = "positions"
GRAPH = "graph"
ROOMS = "rooms"
COLLECTIONS = (POSITIONS, GRAPH, ROOMS)

# Shapes returned when a document has never been written
_DEFAULT_DOCUMENTS: dict[str, dict[str, Any]] = {
    POSITIONS: {"cubes": []},
    GRAPH: {"adjacencyList": {}},
    ROOMS: {"roomMapping": {}},
}


def default_document(collection: str) -> dict[str, Any]:
    """
    Empty document for a collection.

    Raises:
        ValueError: If the collection name is not one of COLLECTIONS
    """
    if collection not in _DEFAULT_DOCUMENTS:
        raise ValueError(f"Unknown collection: {collection}")
    return copy.deepcopy(_DEFAULT_DOCUMENTS[collection])


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _waypoint_from_dict(raw: Any) -> Optional[Waypoint]:
    if not isinstance(raw, dict) or not isinstance(raw.get("id"), str):
        logger.warning(f"Skipping waypoint record without an id: {raw!r}")
        return None
    if not isinstance(raw.get("worldPosition"), dict):
        logger.warning(f"Skipping waypoint {raw['id']}: missing worldPosition")
        return None
    rotation = raw.get("rotation")
    try:
        return Waypoint(
            id=raw["id"],
            position=vec3_from_dict(raw["worldPosition"]),
            rotation=vec3_from_dict(rotation) if isinstance(rotation, dict) else None,
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping waypoint {raw['id']}: {e}")
        return None


def _waypoint_to_dict(waypoint: Waypoint) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": waypoint.id,
        "worldPosition": vec3_to_dict(waypoint.position),
    }
    if waypoint.rotation is not None:
        data["rotation"] = vec3_to_dict(waypoint.rotation)
    return data


@dataclass
class PositionsDocument:
    """Waypoint records plus the calibration anchor they were captured under."""

    waypoints: list[Waypoint] = field(default_factory=list)
    reference_anchor: Optional[ReferenceAnchor] = None
    timestamp: Optional[str] = None

    collection = POSITIONS

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "PositionsDocument":
        cubes = raw.get("cubes") or []
        if not isinstance(cubes, list):
            logger.warning(f"Ignoring positions: expected a list of cubes, got {type(cubes).__name__}")
            cubes = []
        waypoints = [wp for wp in (_waypoint_from_dict(c) for c in cubes) if wp is not None]
        return cls(
            waypoints=waypoints,
            reference_anchor=ReferenceAnchor.from_dict(raw.get("referenceAnchor")),
            timestamp=raw.get("timestamp"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp or _utc_timestamp(),
            "cubeCount": len(self.waypoints),
            "cubes": [_waypoint_to_dict(wp) for wp in self.waypoints],
        }
        if self.reference_anchor is not None:
            data["referenceAnchor"] = self.reference_anchor.to_dict()
        return data


def remove_waypoint_record(raw: dict[str, Any], waypoint_id: str) -> Optional[dict[str, Any]]:
    """
    Copy of a stored positions document without one waypoint's record.

    Every other record is kept exactly as stored, including records that
    PositionsDocument.from_dict would skip.

    Returns:
        The updated document, or None if no record has that id
    """
    cubes = raw.get("cubes")
    if not isinstance(cubes, list):
        return None
    kept = [c for c in cubes if not (isinstance(c, dict) and c.get("id") == waypoint_id)]
    if len(kept) == len(cubes):
        return None
    document = dict(raw)
    document["cubes"] = kept
    document["cubeCount"] = len(kept)
    document["timestamp"] = _utc_timestamp()
    return document


@dataclass
class GraphDocument:
    """Adjacency list keyed by source waypoint id."""

    graph: AdjacencyGraph = field(default_factory=AdjacencyGraph)

    collection = GRAPH

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "GraphDocument":
        return cls(graph=AdjacencyGraph.from_dict(raw.get("adjacencyList") or {}))

    def to_dict(self) -> dict[str, Any]:
        return {"adjacencyList": self.graph.to_dict()}


@dataclass
class RoomsDocument:
    """Waypoint id -> room label. Several waypoints may share a label."""

    room_mapping: dict[str, str] = field(default_factory=dict)

    collection = ROOMS

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RoomsDocument":
        mapping = raw.get("roomMapping") or {}
        if not isinstance(mapping, dict):
            logger.warning(f"Ignoring room mapping: expected an object, got {type(mapping).__name__}")
            mapping = {}
        return cls(room_mapping={str(k): str(v) for k, v in mapping.items()})

    def to_dict(self) -> dict[str, Any]:
        return {"roomMapping": dict(self.room_mapping)}

"""Weighted waypoint adjacency graph and shortest-path search."""

import heapq
import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from src.navigation.waypoints import waypoint_sort_key

logger = logging.getLogger(__name__)

DEFAULT_EDGE_WEIGHT = 1.0


@dataclass(frozen=True)
class Edge:
    """Directed adjacency entry pointing at a neighbouring waypoint."""

    node: str
    distance: float = DEFAULT_EDGE_WEIGHT

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Edge"]:
        """
        Normalize a persisted edge into an Edge.

        Accepts both the compact legacy form (a bare waypoint id, weight 1)
        and the full form {"node": id, "distance": d}. A missing or zero
        distance means weight 1; negative and non-finite distances are
        rejected.

        Returns:
            The normalized Edge, or None if the entry is malformed.
        """
        if isinstance(raw, str):
            return cls(node=raw)

        if not isinstance(raw, dict) or not isinstance(raw.get("node"), str):
            logger.warning(f"Dropping malformed edge entry: {raw!r}")
            return None

        weight = raw.get("distance") or DEFAULT_EDGE_WEIGHT
        if (isinstance(weight, bool) or not isinstance(weight, (int, float))
                or weight < 0 or not math.isfinite(weight)):
            logger.warning(f"Dropping edge to {raw['node']} with invalid distance {weight!r}")
            return None

        return cls(node=raw["node"], distance=float(weight))

    def to_dict(self) -> dict[str, Any]:
        return {"node": self.node, "distance": self.distance}


@dataclass
class PathResult:
    """Shortest path between two waypoints and its total weight."""

    path: list[str]
    distance: float


class AdjacencyGraph:
    """
    Adjacency list over waypoint ids.

    Edges are directed entries, but the mapping workflow always inserts both
    directions, so the graph is undirected by convention.
    """

    def __init__(self, adjacency: Optional[dict[str, list[Edge]]] = None) -> None:
        self._adjacency: dict[str, list[Edge]] = {
            node: list(edges) for node, edges in (adjacency or {}).items()
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AdjacencyGraph":
        """Build a graph from a persisted adjacency mapping, normalizing edges."""
        adjacency: dict[str, list[Edge]] = {}
        raw = raw or {}
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring adjacency list: expected an object, got {type(raw).__name__}")
            raw = {}
        for node, raw_edges in raw.items():
            if not isinstance(raw_edges, list):
                logger.warning(f"Ignoring adjacency entry for {node}: expected a list")
                continue
            edges = [edge for edge in (Edge.from_raw(e) for e in raw_edges) if edge is not None]
            if edges:
                adjacency[node] = edges
        return cls(adjacency)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            node: [edge.to_dict() for edge in edges]
            for node, edges in self._adjacency.items()
        }

    def __len__(self) -> int:
        return len(self._adjacency)

    def neighbors(self, node: str) -> list[Edge]:
        return list(self._adjacency.get(node, []))

    def nodes(self) -> set[str]:
        """Every id that appears as a source or a target."""
        found = set(self._adjacency.keys())
        for edges in self._adjacency.values():
            found.update(edge.node for edge in edges)
        return found

    def edges(self) -> Iterator[tuple[str, Edge]]:
        for source, edges in self._adjacency.items():
            for edge in edges:
                yield source, edge

    def add_edge(
        self,
        source: str,
        target: str,
        distance: float = DEFAULT_EDGE_WEIGHT,
        bidirectional: bool = True,
    ) -> None:
        """
        Connect two waypoints, replacing any existing edge between them.

        Raises:
            ValueError: If the weight is negative or the edge is a self-loop
        """
        if source == target:
            raise ValueError(f"Cannot connect waypoint {source} to itself")
        if distance < 0:
            raise ValueError(f"Edge weight must be non-negative, got {distance}")

        self._set_edge(source, Edge(node=target, distance=distance))
        if bidirectional:
            self._set_edge(target, Edge(node=source, distance=distance))

    def _set_edge(self, source: str, edge: Edge) -> None:
        edges = [e for e in self._adjacency.get(source, []) if e.node != edge.node]
        edges.append(edge)
        self._adjacency[source] = edges

    def remove_edge(self, source: str, target: str, bidirectional: bool = True) -> None:
        pairs = [(source, target), (target, source)] if bidirectional else [(source, target)]
        emptied: list[str] = []
        for a, b in pairs:
            if a not in self._adjacency:
                continue
            self._adjacency[a] = [e for e in self._adjacency[a] if e.node != b]
            if not self._adjacency[a]:
                emptied.append(a)
        for node in emptied:
            del self._adjacency[node]

    def remove_node(self, node: str) -> bool:
        """
        Remove a waypoint and every edge that references it.

        Adjacency entries left without edges are dropped too. Keys to delete
        are collected during the scan and removed afterwards.

        Returns:
            True if anything was removed
        """
        changed = self._adjacency.pop(node, None) is not None

        emptied: list[str] = []
        for source, edges in self._adjacency.items():
            kept = [edge for edge in edges if edge.node != node]
            if len(kept) != len(edges):
                changed = True
                self._adjacency[source] = kept
            if not kept:
                emptied.append(source)

        for source in emptied:
            del self._adjacency[source]

        return changed or bool(emptied)

    def shortest_path(
        self,
        start: str,
        end: str,
        known_nodes: Optional[Iterable[str]] = None,
    ) -> Optional[PathResult]:
        """
        Dijkstra shortest path from start to end.

        Args:
            start: Source waypoint id
            end: Destination waypoint id
            known_nodes: Ids that currently exist (normally the waypoint
                store). Edges pointing outside this set are treated as
                missing neighbours and skipped. Defaults to every id the
                graph mentions.

        Returns:
            PathResult, or None when the destination is unreachable or
            either endpoint is unknown.

        Equal tentative distances are settled lowest id first, so results
        are deterministic when weights tie.
        """
        nodes = set(known_nodes) if known_nodes is not None else self.nodes() | {start, end}
        if start not in nodes or end not in nodes:
            logger.debug(f"Path {start} -> {end}: endpoint not among known waypoints")
            return None

        distances: dict[str, float] = {node: math.inf for node in nodes}
        previous: dict[str, Optional[str]] = {node: None for node in nodes}
        visited: set[str] = set()
        distances[start] = 0.0

        queue: list[tuple[float, tuple[int, int, str], str]] = [
            (0.0, waypoint_sort_key(start), start)
        ]
        while queue:
            current_distance, _, current = heapq.heappop(queue)
            if current in visited or current_distance > distances[current]:
                continue
            if current == end:
                break
            visited.add(current)

            for edge in self._adjacency.get(current, []):
                neighbor = edge.node
                if neighbor not in nodes:
                    logger.debug(f"Skipping stale edge {current} -> {neighbor}")
                    continue
                if neighbor in visited:
                    continue
                candidate = current_distance + edge.distance
                if candidate < distances[neighbor]:
                    distances[neighbor] = candidate
                    previous[neighbor] = current
                    heapq.heappush(queue, (candidate, waypoint_sort_key(neighbor), neighbor))

        path: list[str] = []
        node: Optional[str] = end
        while node is not None:
            path.append(node)
            node = previous[node]
        path.reverse()

        if path[0] != start:
            return None

        return PathResult(path=path, distance=distances[end])

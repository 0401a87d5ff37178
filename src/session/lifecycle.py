"""Waypoint id allocation and cascading removal across all documents."""

import logging
from typing import Any, Optional

from src.navigation.graph import AdjacencyGraph
from src.navigation.waypoints import WaypointStore
from src.store.backends import DocumentStore, StoreError
from src.store.documents import (
    GraphDocument,
    PositionsDocument,
    RoomsDocument,
    remove_waypoint_record,
)

logger = logging.getLogger(__name__)


def remove_from_room_mapping(room_mapping: dict[str, str], waypoint_id: str) -> bool:
    """Drop a waypoint's room label. Returns True if one was present."""
    return room_mapping.pop(waypoint_id, None) is not None


class NodeLifecycleManager:
    """
    Keeps waypoint ids dense and removals consistent.

    A removed waypoint disappears from the positions document, the adjacency
    list (its own entry, every edge pointing at it, and any entry left
    empty) and the room mapping. The store has no transactions: all new
    documents are computed before the first write, and documents already
    written are restored if a later write fails.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    @staticmethod
    def allocate_id(waypoints: WaypointStore) -> str:
        """First free "cube_<n>" id in the given store."""
        return waypoints.allocate_id()

    async def remove_waypoint(
        self,
        waypoint_id: str,
        waypoints: Optional[WaypointStore] = None,
        graph: Optional[AdjacencyGraph] = None,
        room_mapping: Optional[dict[str, str]] = None,
    ) -> bool:
        """
        Remove a waypoint everywhere.

        Args:
            waypoint_id: Id to remove (e.g., "cube_3")
            waypoints: In-memory store to update once the removal is persisted
            graph: In-memory graph to update once the removal is persisted
            room_mapping: In-memory room mapping to update likewise

        Returns:
            True if the removal was persisted. On False nothing in memory
            has changed and the store holds its previous contents, unless
            the restore after a partial write also failed (logged as an
            error).
        """
        try:
            originals = {
                collection: await self.store.fetch(collection)
                for collection in (PositionsDocument.collection,
                                   GraphDocument.collection,
                                   RoomsDocument.collection)
            }
        except StoreError as e:
            logger.error(f"Cannot remove {waypoint_id}, store unavailable: {e}")
            return False

        updates = self._compute_updates(waypoint_id, originals)

        written: list[str] = []
        for collection, document in updates:
            try:
                await self.store.replace(collection, document)
            except StoreError as e:
                logger.error(f"Failed to save {collection} while removing {waypoint_id}: {e}")
                await self._restore(written, originals)
                return False
            written.append(collection)

        if waypoints is not None:
            waypoints.remove(waypoint_id)
        if graph is not None:
            graph.remove_node(waypoint_id)
        if room_mapping is not None:
            remove_from_room_mapping(room_mapping, waypoint_id)

        logger.info(f"Removed {waypoint_id} from positions, graph and room mappings")
        return True

    @staticmethod
    def _compute_updates(
        waypoint_id: str,
        originals: dict[str, dict[str, Any]],
    ) -> list[tuple[str, dict[str, Any]]]:
        """Documents that change, in write order."""
        updates: list[tuple[str, dict[str, Any]]] = []

        positions = remove_waypoint_record(originals[PositionsDocument.collection], waypoint_id)
        if positions is not None:
            updates.append((PositionsDocument.collection, positions))

        graph = GraphDocument.from_dict(originals[GraphDocument.collection])
        if graph.graph.remove_node(waypoint_id):
            updates.append((graph.collection, graph.to_dict()))

        rooms = RoomsDocument.from_dict(originals[RoomsDocument.collection])
        if remove_from_room_mapping(rooms.room_mapping, waypoint_id):
            updates.append((rooms.collection, rooms.to_dict()))

        return updates

    async def _restore(self, written: list[str], originals: dict[str, dict[str, Any]]) -> None:
        for collection in reversed(written):
            try:
                await self.store.replace(collection, originals[collection])
                logger.warning(f"Restored {collection} after failed removal")
            except StoreError as e:
                logger.error(f"Could not restore {collection}, store may be inconsistent: {e}")

"""Load a mapped site (positions, graph and rooms) from a document store."""

import logging
from dataclasses import dataclass
from typing import Type, TypeVar, Union

from src.store.backends import DocumentStore, StoreError
from src.store.documents import GraphDocument, PositionsDocument, RoomsDocument

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", PositionsDocument, GraphDocument, RoomsDocument)


@dataclass
class SiteData:
    """Container for the three loaded documents."""

    positions: PositionsDocument
    graph: GraphDocument
    rooms: RoomsDocument


async def fetch_document(
    store: DocumentStore,
    document_cls: Type[DocumentT],
    fallback: bool = True,
) -> DocumentT:
    """
    Fetch and parse one document.

    Args:
        store: Backing document store
        document_cls: PositionsDocument, GraphDocument or RoomsDocument
        fallback: If True, a failed fetch is logged and an empty document
            returned. If False, the StoreError propagates; use this before
            writing anything derived from the result.

    Raises:
        StoreError: Only when fallback is False
    """
    try:
        raw = await store.fetch(document_cls.collection)
    except StoreError as e:
        if not fallback:
            raise
        logger.warning(f"Falling back to empty {document_cls.collection}: {e}")
        return document_cls()
    return document_cls.from_dict(raw)


async def save_document(
    store: DocumentStore,
    document: Union[PositionsDocument, GraphDocument, RoomsDocument],
) -> bool:
    """
    Replace one document, logging instead of raising on failure.

    Returns:
        True if the write succeeded
    """
    try:
        await store.replace(document.collection, document.to_dict())
    except StoreError as e:
        logger.error(f"Failed to save {document.collection}: {e}")
        return False
    return True


async def load_site(store: DocumentStore, fallback: bool = True) -> SiteData:
    """
    Load all three documents.

    Missing documents come back empty. With fallback enabled, so do
    documents that could not be read.
    """
    positions = await fetch_document(store, PositionsDocument, fallback=fallback)
    graph = await fetch_document(store, GraphDocument, fallback=fallback)
    rooms = await fetch_document(store, RoomsDocument, fallback=fallback)

    logger.info(
        f"Loaded site: {len(positions.waypoints)} waypoints, "
        f"{len(graph.graph)} adjacency entries, {len(rooms.room_mapping)} room labels"
    )

    return SiteData(positions=positions, graph=graph, rooms=rooms)

"""Persistence of waypoint, graph and room documents."""

from src.store.backends import DocumentStore, HttpDocumentStore, JsonFileStore, StoreError
from src.store.documents import GraphDocument, PositionsDocument, RoomsDocument
from src.store.loader import SiteData, fetch_document, load_site, save_document

__all__ = [
    "DocumentStore",
    "GraphDocument",
    "HttpDocumentStore",
    "JsonFileStore",
    "PositionsDocument",
    "RoomsDocument",
    "SiteData",
    "StoreError",
    "fetch_document",
    "load_site",
    "save_document",
]

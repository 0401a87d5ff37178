"""
Whole-document blob stores for the positions, graph and rooms collections.

Both backends offer only "fetch the whole document" and "replace the whole
document". There are no partial updates and no transactions, so a
read-modify-write sequence can lose updates if two clients write at once;
a single active mapper is assumed.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from src.store.documents import COLLECTIONS, GRAPH, POSITIONS, ROOMS, default_document

logger = logging.getLogger(__name__)

FILE_NAMES = {
    POSITIONS: "cube-positions.json",
    GRAPH: "graph-adjacency.json",
    ROOMS: "node-room-mapping.json",
}

HTTP_TIMEOUT_SECONDS = 10.0


class StoreError(Exception):
    """A fetch or replace against the backing store failed."""


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection}")


class DocumentStore(ABC):
    """Async get/put access to the three fixed collections."""

    @abstractmethod
    async def fetch(self, collection: str) -> dict[str, Any]:
        """
        Read a whole document.

        Returns:
            The stored document, or the collection's empty default shape if
            it has never been written.

        Raises:
            StoreError: On I/O or decoding failures
        """

    @abstractmethod
    async def replace(self, collection: str, document: dict[str, Any]) -> None:
        """
        Overwrite a whole document.

        Raises:
            StoreError: If the write fails
        """

    async def close(self) -> None:
        """Release any held resources."""


class JsonFileStore(DocumentStore):
    """Documents kept as pretty-printed JSON files in one directory."""

    def __init__(self, data_dir: str) -> None:
        self.data_dir = data_dir

    def path_for(self, collection: str) -> str:
        _check_collection(collection)
        return os.path.join(self.data_dir, FILE_NAMES[collection])

    async def fetch(self, collection: str) -> dict[str, Any]:
        path = self.path_for(collection)
        return await asyncio.to_thread(self._read, collection, path)

    async def replace(self, collection: str, document: dict[str, Any]) -> None:
        path = self.path_for(collection)
        await asyncio.to_thread(self._write, path, document)
        logger.debug(f"Saved {collection} to {path}")

    @staticmethod
    def _read(collection: str, path: str) -> dict[str, Any]:
        if not os.path.exists(path):
            logger.debug(f"{path} does not exist, returning empty {collection}")
            return default_document(collection)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            raise StoreError(f"Failed to read {collection} from {path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Failed to read {collection} from {path}: not a JSON object")
        return data

    def _write(self, path: str, document: dict[str, Any]) -> None:
        # Write to a sibling temp file first so readers never see half a document
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to write {path}: {e}") from e


class HttpDocumentStore(DocumentStore):
    """
    Client for the document service's REST endpoints.

    GET  {base_url}/api/<collection>  -> document
    POST {base_url}/api/<collection>  <- document
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    @staticmethod
    def endpoint(collection: str) -> str:
        _check_collection(collection)
        return f"/api/{collection}"

    async def fetch(self, collection: str) -> dict[str, Any]:
        url = self.endpoint(collection)
        try:
            response = await self._client.get(url)
            if response.status_code == httpx.codes.NOT_FOUND:
                logger.debug(f"{collection} not found on server, returning empty document")
                return default_document(collection)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to fetch {collection}: {e}") from e
        except ValueError as e:
            raise StoreError(f"Server returned invalid JSON for {collection}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"Server returned a non-object {collection} document")
        return data

    async def replace(self, collection: str, document: dict[str, Any]) -> None:
        url = self.endpoint(collection)
        try:
            response = await self._client.post(url, json=document)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to save {collection}: {e}") from e
        logger.debug(f"Saved {collection} via {url}")

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

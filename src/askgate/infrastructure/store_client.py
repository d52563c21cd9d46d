from __future__ import annotations

"""Path-addressed document store clients.

Paths follow a collection/document alternation: ``users`` is a collection,
``users/42`` a document, ``users/42/messages`` a nested collection.
"""

from threading import RLock
from typing import Any, Dict, List, Optional, Protocol, Tuple
import logging
import uuid

from ..config import Settings
from ..errors import StorageError


logger = logging.getLogger(__name__)

_STARTUP_CHECK_MS = 500


class StoreClient(Protocol):
    def get(self, path: str) -> Optional[Dict[str, Any]]: ...

    def set(self, path: str, data: Dict[str, Any]) -> None: ...

    def add(self, collection_path: str, data: Dict[str, Any]) -> str: ...

    def list(self, collection_path: str) -> List[Tuple[str, Dict[str, Any]]]: ...

    def delete(self, path: str) -> None: ...


def _segments(path: str) -> List[str]:
    segs = [s for s in (path or "").strip("/").split("/") if s]
    if not segs:
        raise StorageError(f"Empty store path: {path!r}")
    return segs


def split_document_path(path: str) -> Tuple[str, str]:
    """Return ``(collection_path, doc_id)`` for a document path."""
    segs = _segments(path)
    if len(segs) % 2 != 0:
        raise StorageError(f"Not a document path: {path!r}")
    return "/".join(segs[:-1]), segs[-1]


def normalize_collection_path(path: str) -> str:
    segs = _segments(path)
    if len(segs) % 2 != 1:
        raise StorageError(f"Not a collection path: {path!r}")
    return "/".join(segs)


class InMemoryStoreClient:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = RLock()

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        parent, doc_id = split_document_path(path)
        with self._lock:
            doc = self._collections.get(parent, {}).get(doc_id)
            return dict(doc) if doc is not None else None

    def set(self, path: str, data: Dict[str, Any]) -> None:
        parent, doc_id = split_document_path(path)
        with self._lock:
            self._collections.setdefault(parent, {})[doc_id] = dict(data)

    def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        parent = normalize_collection_path(collection_path)
        with self._lock:
            doc_id = uuid.uuid4().hex
            self._collections.setdefault(parent, {})[doc_id] = dict(data)
            return doc_id

    def list(self, collection_path: str) -> List[Tuple[str, Dict[str, Any]]]:
        parent = normalize_collection_path(collection_path)
        with self._lock:
            # dicts keep insertion order
            return [(doc_id, dict(doc)) for doc_id, doc in self._collections.get(parent, {}).items()]

    def delete(self, path: str) -> None:
        parent, doc_id = split_document_path(path)
        with self._lock:
            self._collections.get(parent, {}).pop(doc_id, None)


class MongoStoreClient:
    """Mongo-backed store keeping every document in one collection.

    Each stored row carries ``parent`` (collection path), ``doc_id`` and
    ``data``. Listing sorts by ``_id`` so rows come back in insertion order.
    """

    def __init__(self, settings: Optional[Settings] = None, collection: Any = None) -> None:
        if collection is not None:
            self._docs = collection
            return
        settings = settings or Settings.from_env()
        try:
            from pymongo import ASCENDING, MongoClient

            # Short selection timeout for the reachability check only;
            # operations run on a client with driver defaults.
            startup = MongoClient(settings.mongo_url, serverSelectionTimeoutMS=_STARTUP_CHECK_MS)
            try:
                startup.server_info()
            finally:
                startup.close()
            client = MongoClient(settings.mongo_url)
            self._docs = client[settings.mongo_db]["documents"]
            self._docs.create_index([("parent", ASCENDING), ("doc_id", ASCENDING)], unique=True)
        except Exception as exc:
            raise StorageError(f"Mongo store unavailable at {settings.mongo_url}") from exc
        logger.info("Connected Mongo store db=%s", settings.mongo_db)

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        parent, doc_id = split_document_path(path)
        try:
            row = self._docs.find_one({"parent": parent, "doc_id": doc_id})
        except Exception as exc:
            raise StorageError(f"get {path} failed") from exc
        if not row:
            return None
        return dict(row.get("data") or {})

    def set(self, path: str, data: Dict[str, Any]) -> None:
        parent, doc_id = split_document_path(path)
        try:
            self._docs.update_one(
                {"parent": parent, "doc_id": doc_id},
                {"$set": {"data": dict(data)}},
                upsert=True,
            )
        except Exception as exc:
            raise StorageError(f"set {path} failed") from exc

    def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        from bson import ObjectId

        parent = normalize_collection_path(collection_path)
        oid = ObjectId()
        try:
            self._docs.insert_one({"_id": oid, "parent": parent, "doc_id": str(oid), "data": dict(data)})
        except Exception as exc:
            raise StorageError(f"add to {parent} failed") from exc
        return str(oid)

    def list(self, collection_path: str) -> List[Tuple[str, Dict[str, Any]]]:
        parent = normalize_collection_path(collection_path)
        try:
            rows = list(self._docs.find({"parent": parent}).sort("_id", 1))
        except Exception as exc:
            raise StorageError(f"list {parent} failed") from exc
        return [(str(row.get("doc_id")), dict(row.get("data") or {})) for row in rows]

    def delete(self, path: str) -> None:
        parent, doc_id = split_document_path(path)
        try:
            self._docs.delete_one({"parent": parent, "doc_id": doc_id})
        except Exception as exc:
            raise StorageError(f"delete {path} failed") from exc


def build_store_client(settings: Settings) -> StoreClient:
    if settings.store_impl == "mongo":
        return MongoStoreClient(settings)
    if settings.store_impl != "memory":
        raise RuntimeError(f"Unknown ASKGATE_STORE_IMPL: {settings.store_impl}")
    return InMemoryStoreClient()

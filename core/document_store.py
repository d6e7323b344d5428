# core/document_store.py

"""
Document persistence collaborator.

Aggregates are stored as whole documents; nested collections (tasks,
comments, attachments) are plain JSON values inside the document. Two
implementations share one async interface:

  • SupabaseDocumentStore: production, one table per collection,
    nested collections in jsonb columns.
  • InMemoryDocumentStore: local development and tests.

Every implementation raises core.errors.CollaboratorError on failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, List, Literal, Mapping, Optional, Sequence
from uuid import uuid4

from core.errors import collaborator_error
from core.logging_config import logger
from core.utils import clone_document


class _ServerTimestamp:
    """Marks a field the store must stamp with its own clock."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: Literal["eq", "contains"]
    value: Any


class DocumentStore(ABC):

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return the document (including its `id`) or None."""

    @abstractmethod
    async def list(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[dict]:
        ...

    @abstractmethod
    async def insert(self, collection: str, document: Mapping[str, Any]) -> str:
        """Insert a new document and return its generated id."""

    @abstractmethod
    async def replace_or_merge_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        """Overwrite the given top-level fields. Returns False if the document does not exist."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""


# =================================================================
#  SUPABASE
# =================================================================
# SERVER_TIMESTAMP fields are dropped from the payload: the table
# defines `created_at` / `updated_at` with `default now()` and a
# `moddatetime(updated_at)` trigger, so Postgres assigns them.
# =================================================================

def _strip_server_timestamps(data: Mapping[str, Any]) -> dict:
    return {k: v for k, v in data.items() if v is not SERVER_TIMESTAMP}


class SupabaseDocumentStore(DocumentStore):

    def __init__(self, client_factory: Optional[Callable[[], Awaitable[Any]]] = None):
        if client_factory is None:
            from core.supabase_client import get_supabase_client
            client_factory = get_supabase_client
        self._client_factory = client_factory
        self._client = None

    async def _table(self, collection: str):
        if self._client is None:
            self._client = await self._client_factory()
        return self._client.table(collection)

    async def get(self, collection, doc_id):
        try:
            table = await self._table(collection)
            result = await table.select("*").eq("id", doc_id).limit(1).execute()
        except Exception as e:
            raise collaborator_error(e, f"Failed to fetch from {collection}") from e

        return result.data[0] if result.data else None

    async def list(self, collection, filters=(), *, order_by=None, descending=False):
        try:
            table = await self._table(collection)
            query = table.select("*")
            for f in filters:
                if f.op == "eq":
                    query = query.eq(f.field, f.value)
                elif f.op == "contains":
                    query = query.contains(f.field, [f.value])
                else:
                    raise ValueError(f"Unsupported filter op: {f.op}")
            if order_by:
                query = query.order(order_by, desc=descending)
            result = await query.execute()
        except ValueError:
            raise
        except Exception as e:
            raise collaborator_error(e, f"Failed to list {collection}") from e

        return result.data or []

    async def insert(self, collection, document):
        try:
            table = await self._table(collection)
            result = await table.insert(_strip_server_timestamps(document)).execute()
        except Exception as e:
            raise collaborator_error(e, f"Failed to insert into {collection}") from e

        if not result.data:
            raise collaborator_error(RuntimeError("insert returned no rows"), f"Failed to insert into {collection}")

        return str(result.data[0]["id"])

    async def replace_or_merge_fields(self, collection, doc_id, fields):
        try:
            table = await self._table(collection)
            result = await table.update(_strip_server_timestamps(fields)).eq("id", doc_id).execute()
        except Exception as e:
            raise collaborator_error(e, f"Failed to update {collection}") from e

        return bool(result.data)

    async def delete(self, collection, doc_id):
        try:
            table = await self._table(collection)
            result = await table.delete().eq("id", doc_id).execute()
        except Exception as e:
            raise collaborator_error(e, f"Failed to delete from {collection}") from e

        return bool(result.data)


# =================================================================
#  IN-MEMORY
# =================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed store. Documents are deep-copied in and out, so callers
    never share nested lists with stored state. SERVER_TIMESTAMP fields are
    resolved to one ISO instant per write from `clock`.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._collections: Dict[str, Dict[str, dict]] = {}
        self._lock = Lock()

    def _resolve(self, data: Mapping[str, Any]) -> dict:
        now = None
        resolved = clone_document({k: v for k, v in data.items() if v is not SERVER_TIMESTAMP})
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                if now is None:
                    now = self._clock().isoformat()
                resolved[key] = now
        return resolved

    def _docs(self, collection: str) -> Dict[str, dict]:
        return self._collections.setdefault(collection, {})

    @staticmethod
    def _matches(doc: dict, f: FieldFilter) -> bool:
        if f.op == "eq":
            return doc.get(f.field) == f.value
        if f.op == "contains":
            return f.value in (doc.get(f.field) or [])
        raise ValueError(f"Unsupported filter op: {f.op}")

    async def get(self, collection, doc_id):
        with self._lock:
            doc = self._docs(collection).get(doc_id)
            return clone_document(doc) if doc is not None else None

    async def list(self, collection, filters=(), *, order_by=None, descending=False):
        with self._lock:
            docs = [
                clone_document(d)
                for d in self._docs(collection).values()
                if all(self._matches(d, f) for f in filters)
            ]

        if order_by:
            docs.sort(key=lambda d: d.get(order_by) or "", reverse=descending)
        return docs

    async def insert(self, collection, document):
        doc = self._resolve(document)
        doc_id = str(doc.get("id") or uuid4())
        doc["id"] = doc_id

        with self._lock:
            self._docs(collection)[doc_id] = doc

        logger.debug(f"Inserted {collection}/{doc_id}")
        return doc_id

    async def replace_or_merge_fields(self, collection, doc_id, fields):
        update = self._resolve(fields)
        update.pop("id", None)

        with self._lock:
            doc = self._docs(collection).get(doc_id)
            if doc is None:
                return False
            doc.update(update)
            return True

    async def delete(self, collection, doc_id):
        with self._lock:
            return self._docs(collection).pop(doc_id, None) is not None

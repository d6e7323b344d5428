# tests/test_document_store.py

"""
Tests for the document persistence collaborators.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from core.document_store import (
    SERVER_TIMESTAMP,
    FieldFilter,
    InMemoryDocumentStore,
    SupabaseDocumentStore,
)
from core.errors import CollaboratorError


# -----------------------------------------------------
# In-memory
# -----------------------------------------------------
async def test_insert_resolves_server_timestamps_to_one_instant(clock):
    store = InMemoryDocumentStore(clock=clock)

    doc_id = await store.insert("projects", {"name": "x", "created_at": SERVER_TIMESTAMP, "updated_at": SERVER_TIMESTAMP})
    doc = await store.get("projects", doc_id)

    assert doc["id"] == doc_id
    assert doc["created_at"] == doc["updated_at"] == "2024-01-01T00:00:01+00:00"


async def test_documents_are_copied_in_and_out():
    store = InMemoryDocumentStore()
    source = {"tasks": [{"id": "t1"}]}
    doc_id = await store.insert("projects", source)

    source["tasks"].append({"id": "t2"})
    loaded = await store.get("projects", doc_id)
    loaded["tasks"].append({"id": "t3"})

    assert (await store.get("projects", doc_id))["tasks"] == [{"id": "t1"}]


async def test_merge_fields_only_touches_given_fields(clock):
    store = InMemoryDocumentStore(clock=clock)
    doc_id = await store.insert("projects", {"name": "x", "team": ["U1"], "updated_at": SERVER_TIMESTAMP})

    assert await store.replace_or_merge_fields("projects", doc_id, {"name": "y", "id": "hijack", "updated_at": SERVER_TIMESTAMP})

    doc = await store.get("projects", doc_id)
    assert doc["id"] == doc_id
    assert doc["name"] == "y"
    assert doc["team"] == ["U1"]
    assert doc["updated_at"] == "2024-01-01T00:00:02+00:00"


async def test_merge_and_delete_report_missing_documents():
    store = InMemoryDocumentStore()

    assert await store.replace_or_merge_fields("projects", "nope", {"name": "y"}) is False
    assert await store.delete("projects", "nope") is False
    assert await store.get("projects", "nope") is None


async def test_list_filters_and_orders():
    store = InMemoryDocumentStore()
    await store.insert("projects", {"id": "a", "status": "done", "team": ["U1"], "created_at": "2024-01-01T00:00:00+00:00"})
    await store.insert("projects", {"id": "b", "status": "open", "team": ["U1", "U2"], "created_at": "2024-01-03T00:00:00+00:00"})
    await store.insert("projects", {"id": "c", "status": "open", "team": [], "created_at": "2024-01-02T00:00:00+00:00"})

    newest = await store.list("projects", order_by="created_at", descending=True)
    on_team = await store.list("projects", [FieldFilter("team", "contains", "U1")], order_by="created_at")
    open_on_team = await store.list("projects", [FieldFilter("status", "eq", "open"), FieldFilter("team", "contains", "U1")])

    assert [d["id"] for d in newest] == ["b", "c", "a"]
    assert [d["id"] for d in on_team] == ["a", "b"]
    assert [d["id"] for d in open_on_team] == ["b"]


async def test_list_rejects_unknown_filter_op():
    store = InMemoryDocumentStore()
    await store.insert("projects", {"id": "a"})

    with pytest.raises(ValueError):
        await store.list("projects", [FieldFilter("team", "startswith", "U")])


def test_server_timestamp_is_a_singleton():
    assert type(SERVER_TIMESTAMP)() is SERVER_TIMESTAMP
    assert repr(SERVER_TIMESTAMP) == "SERVER_TIMESTAMP"


# -----------------------------------------------------
# Supabase adapter
# -----------------------------------------------------
def make_supabase(data=None, error=None):
    """Mock async Supabase client whose query chain ends in execute()."""
    query = Mock()
    for method in ("select", "eq", "contains", "order", "limit", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    if error is not None:
        query.execute = AsyncMock(side_effect=error)
    else:
        query.execute = AsyncMock(return_value=Mock(data=data))

    client = Mock()
    client.table.return_value = query
    return client, query


async def test_supabase_get_returns_first_row():
    client, query = make_supabase(data=[{"id": "p1", "name": "x"}])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    assert await store.get("projects", "p1") == {"id": "p1", "name": "x"}
    client.table.assert_called_with("projects")
    query.eq.assert_called_with("id", "p1")


async def test_supabase_get_missing_returns_none():
    client, _ = make_supabase(data=[])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    assert await store.get("projects", "p1") is None


async def test_supabase_client_is_created_once():
    client, _ = make_supabase(data=[])
    factory = AsyncMock(return_value=client)
    store = SupabaseDocumentStore(client_factory=factory)

    await store.get("projects", "p1")
    await store.get("projects", "p2")

    factory.assert_awaited_once()


async def test_supabase_list_builds_query():
    client, query = make_supabase(data=[{"id": "p1"}])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    rows = await store.list(
        "projects",
        [FieldFilter("status", "eq", "completed"), FieldFilter("team", "contains", "U2")],
        order_by="created_at",
        descending=True,
    )

    assert rows == [{"id": "p1"}]
    query.eq.assert_called_with("status", "completed")
    query.contains.assert_called_with("team", ["U2"])
    query.order.assert_called_with("created_at", desc=True)


async def test_supabase_insert_drops_server_timestamps():
    client, query = make_supabase(data=[{"id": "new-id"}])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    doc_id = await store.insert("projects", {"name": "x", "created_at": SERVER_TIMESTAMP, "updated_at": SERVER_TIMESTAMP})

    assert doc_id == "new-id"
    query.insert.assert_called_once_with({"name": "x"})


async def test_supabase_insert_without_rows_fails():
    client, _ = make_supabase(data=[])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    with pytest.raises(CollaboratorError):
        await store.insert("projects", {"name": "x"})


async def test_supabase_update_reports_missing_row():
    client, query = make_supabase(data=[])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    found = await store.replace_or_merge_fields("projects", "p1", {"tasks": [], "updated_at": SERVER_TIMESTAMP})

    assert found is False
    query.update.assert_called_once_with({"tasks": []})
    query.eq.assert_called_with("id", "p1")


async def test_supabase_delete():
    client, query = make_supabase(data=[{"id": "p1"}])
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    assert await store.delete("projects", "p1") is True
    query.delete.assert_called_once_with()


async def test_supabase_errors_become_collaborator_errors():
    error = Exception("JWT expired")
    client, _ = make_supabase(error=error)
    store = SupabaseDocumentStore(client_factory=AsyncMock(return_value=client))

    with pytest.raises(CollaboratorError) as exc:
        await store.get("projects", "p1")

    assert exc.value.operation == "Failed to fetch from projects"
    assert exc.value.detail == "JWT expired"
    assert exc.value.cause is error

# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import pytest

from core.blob_store import BlobStore
from core.document_store import InMemoryDocumentStore
from core.errors import CollaboratorError
from models.actor import Actor
from services.project_store import ProjectAggregateStore


class SteppingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


class RecordingDocumentStore(InMemoryDocumentStore):
    """In-memory store that also logs deletes into the shared call log."""

    def __init__(self, calls: List[Tuple[str, str]], clock):
        super().__init__(clock=clock)
        self.calls = calls

    async def delete(self, collection, doc_id):
        self.calls.append(("document.delete", doc_id))
        return await super().delete(collection, doc_id)


class RecordingBlobStore(BlobStore):
    """Fake blob store; refs listed in `failing` raise on delete."""

    def __init__(self, calls: List[Tuple[str, str]]):
        self.calls = calls
        self.blobs = {}
        self.failing = set()
        self.fail_uploads = False

    async def upload(self, path, data, content_type):
        self.calls.append(("blob.upload", path))
        if self.fail_uploads:
            raise CollaboratorError(f"Failed to upload {path}", "quota exceeded")
        self.blobs[path] = data
        return f"https://blobs.example.com/{path}"

    async def delete(self, ref):
        self.calls.append(("blob.delete", ref))
        if ref in self.failing:
            raise CollaboratorError(f"Failed to delete {ref}", "AccessDenied")
        self.blobs.pop(ref, None)

    @property
    def deletes(self):
        return [ref for op, ref in self.calls if op == "blob.delete"]


@pytest.fixture
def calls():
    return []


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def documents(calls, clock):
    return RecordingDocumentStore(calls, clock)


@pytest.fixture
def blobs(calls):
    return RecordingBlobStore(calls)


@pytest.fixture
def store(documents, blobs, clock):
    return ProjectAggregateStore(documents, blobs, clock=clock)


@pytest.fixture
def admin():
    return Actor(id="A1", name="Ada Admin", role="admin")


@pytest.fixture
def supervisor():
    return Actor(id="U1", name="Sam Supervisor", role="supervisor")


@pytest.fixture
def team_member():
    return Actor(id="U2", name="Tess Team", role="user")


@pytest.fixture
def vendor():
    return Actor(id="U3", name="Vic Vendor", role="vendor")


@pytest.fixture
def project_data(supervisor, team_member):
    return {
        "name": "Warehouse Retrofit",
        "description": "Replace lighting and HVAC",
        "status": "in-progress",
        "priority": "high",
        "start_date": "2024-02-01T00:00:00Z",
        "budget": 125000,
        "supervisor": supervisor.id,
        "team": [team_member.id],
        "created_by": supervisor.id,
    }


@pytest.fixture
async def project(store, project_data):
    return await store.create_project(project_data)


def task_payload(title: str, assigned_to=None):
    return {
        "title": title,
        "description": f"{title} details",
        "assigned_to": assigned_to or [],
        "due_date": "2024-03-01T00:00:00Z",
    }


def file_payload(name: str = "plan.pdf", content: bytes = b"%PDF-1.7"):
    return {"file_name": name, "content": content, "content_type": "application/pdf"}

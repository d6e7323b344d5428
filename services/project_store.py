# services/project_store.py

"""
Project aggregate store.

A project document embeds its tasks, comments and attachments; tasks embed
their own comments and attachments. Every nested mutation is therefore a
read-modify-write of one whole top-level collection:

  1. load the project document
  2. locate the target by id
  3. replace / append / remove only that element, leaving siblings
     exactly as loaded
  4. write the collection back and bump `updated_at`
  5. re-read and return the hydrated Project

Concurrent writers to the same project can lose updates (the second
read may precede the first write). There is no version check.

Authorization is NOT enforced here. Callers decide with
core.permissions.can_perform before calling a mutator.
"""

from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from core.blob_store import BlobStore, project_attachment_path, task_attachment_path
from core.config import settings
from core.document_store import SERVER_TIMESTAMP, DocumentStore, FieldFilter, utc_now
from core.errors import (
    CascadeDeleteError,
    CollaboratorError,
    PayloadValidationError,
    ProjectHubError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from core.logging_config import logger
from core.utils import without_keys
from models.actor import Actor
from models.attachment import ProjectAttachment, UploadedFile
from models.comment import CommentCreate, ProjectComment
from models.enums import Role
from models.project import Project, ProjectCreate, ProjectFilter, ProjectUpdate
from models.task import ProjectTask, TaskCreate, TaskUpdate


# Never merged from a partial update; silently dropped instead
PROJECT_PROTECTED_FIELDS = ("id", "created_at", "updated_at", "tasks", "comments", "attachments")
TASK_PROTECTED_FIELDS = ("id", "created_at", "updated_at", "comments", "attachments")

# Fields an update may explicitly clear with None
NULLABLE_PROJECT_FIELDS = frozenset({"end_date", "budget"})

Payload = Union[BaseModel, Mapping[str, Any]]


# -----------------------------------------------------
# Payload helpers (run before any collaborator I/O)
# -----------------------------------------------------
def _as_dict(data: Payload) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data or {})


def _validate(model_cls, data):
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(_as_dict(data))
    except ValidationError as e:
        raise PayloadValidationError.from_pydantic(model_cls.__name__, e) from e


def _changes(update: BaseModel, nullable: Iterable[str] = ()) -> dict:
    """JSON-ready dict of the fields a partial update actually sets."""
    allowed_none = set(nullable)
    dumped = update.model_dump(mode="json", exclude_unset=True)
    return {k: v for k, v in dumped.items() if v is not None or k in allowed_none}


def _find(items: Iterable[dict], item_id: str) -> Optional[dict]:
    return next((item for item in items if item.get("id") == item_id), None)


def _without(items: Iterable[dict], item_ids: Iterable[str]) -> List[dict]:
    blocked = set(item_ids)
    return [item for item in items if item.get("id") not in blocked]


class ProjectAggregateStore:

    def __init__(
        self,
        documents: DocumentStore,
        blobs: BlobStore,
        *,
        collection: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ):
        self.documents = documents
        self.blobs = blobs
        self.collection = collection or settings.PROJECTS_TABLE
        self._clock = clock
        self._id_factory = id_factory

    # =====================================================
    # Internal: load / write / locate
    # =====================================================
    async def _load(self, project_id: str) -> dict:
        doc = await self.documents.get(self.collection, project_id)
        if doc is None:
            raise ProjectNotFoundError(project_id)
        return doc

    async def _reload(self, project_id: str) -> Project:
        return Project.model_validate(await self._load(project_id))

    async def _write(self, project_id: str, fields: Mapping[str, Any]) -> Project:
        found = await self.documents.replace_or_merge_fields(
            self.collection,
            project_id,
            {**fields, "updated_at": SERVER_TIMESTAMP},
        )
        if not found:
            raise ProjectNotFoundError(project_id)
        return await self._reload(project_id)

    @staticmethod
    def _task_index(doc: dict, task_id: str) -> int:
        for index, task in enumerate(doc.get("tasks") or []):
            if task.get("id") == task_id:
                return index
        raise TaskNotFoundError(doc["id"], task_id)

    def _with_task(self, doc: dict, task_id: str, mutate: Callable[[dict], None]) -> List[dict]:
        """
        Copy of doc["tasks"] with one task replaced by a mutated copy.
        All other task dicts are the loaded objects, untouched.
        """
        index = self._task_index(doc, task_id)
        tasks = list(doc["tasks"])
        task = dict(tasks[index])
        mutate(task)
        task["updated_at"] = self._now()
        tasks[index] = task
        return tasks

    def _now(self) -> str:
        return self._clock().isoformat()

    # =====================================================
    # Internal: blobs
    # =====================================================
    async def _delete_blob(self, attachment: dict):
        ref = attachment.get("storage_path") or attachment.get("file_url")
        if not ref:
            logger.warning(f"Attachment {attachment.get('id')} has no blob reference; nothing to delete")
            return
        await self.blobs.delete(ref)

    async def _discard_blob(self, path: str):
        """Best-effort cleanup of a blob whose reference was never stored."""
        try:
            await self.blobs.delete(path)
        except CollaboratorError as e:
            logger.warning(f"Leaked unreferenced blob {path}: {e.detail}")

    async def _upload(self, path: str, upload: UploadedFile, actor: Actor, attachment_id: str) -> dict:
        url = await self.blobs.upload(path, upload.content, upload.content_type)
        attachment = ProjectAttachment(
            id=attachment_id,
            file_name=upload.file_name,
            file_url=url,
            file_type=upload.content_type,
            file_size=upload.size,
            storage_path=path,
            uploaded_by=actor.id,
            uploaded_by_name=actor.name,
            uploaded_at=self._clock(),
        )
        return attachment.model_dump(mode="json")

    def _comment(self, content: str, actor: Actor) -> dict:
        comment = ProjectComment(
            id=self._id_factory(),
            content=content,
            created_by=actor.id,
            created_by_name=actor.name,
            created_at=self._clock(),
        )
        return comment.model_dump(mode="json")

    # =====================================================
    # Projects
    # =====================================================
    async def list_projects(self, filter: Optional[Payload] = None) -> List[Project]:
        """Projects matching `filter`, newest first."""
        criteria = _validate(ProjectFilter, filter or {})

        filters = []
        if criteria.status:
            filters.append(FieldFilter("status", "eq", criteria.status.value))
        if criteria.supervisor:
            filters.append(FieldFilter("supervisor", "eq", criteria.supervisor))
        if criteria.team:
            filters.append(FieldFilter("team", "contains", criteria.team))

        docs = await self.documents.list(
            self.collection, filters, order_by="created_at", descending=True
        )
        return [Project.model_validate(doc) for doc in docs]

    async def list_projects_for_actor(self, actor: Actor) -> List[Project]:
        """
        Admins see everything, supervisors the projects they supervise,
        everyone else the projects whose team includes them.
        """
        if actor.role == Role.admin:
            return await self.list_projects()
        if actor.role == Role.supervisor:
            return await self.list_projects({"supervisor": actor.id})
        return await self.list_projects({"team": actor.id})

    async def get_project(self, project_id: str) -> Optional[Project]:
        doc = await self.documents.get(self.collection, project_id)
        if doc is None:
            logger.info(f"Project {project_id} not found")
            return None
        return Project.model_validate(doc)

    async def create_project(self, data: Payload) -> Project:
        payload = _validate(ProjectCreate, without_keys(_as_dict(data), PROJECT_PROTECTED_FIELDS))

        document = {
            **payload.model_dump(mode="json"),
            "tasks": [],
            "comments": [],
            "attachments": [],
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        }
        project_id = await self.documents.insert(self.collection, document)

        logger.info(f"Created project {project_id} ({payload.name})")
        return await self._reload(project_id)

    async def update_project(self, project_id: str, partial: Payload) -> Project:
        """
        Shallow-merge `partial` into the project. id, created_at and the
        nested collections are stripped, never merged.
        """
        update = _validate(ProjectUpdate, without_keys(_as_dict(partial), PROJECT_PROTECTED_FIELDS))

        project = await self._write(project_id, _changes(update, NULLABLE_PROJECT_FIELDS))

        logger.info(f"Updated project {project_id}")
        return project

    async def delete_project(self, project_id: str) -> bool:
        """
        Delete every attachment blob the project owns (its own, then each
        task's), then the project document. Returns False if the project
        did not exist.

        If a blob delete fails the project is NOT deleted: references to
        blobs already removed are pruned and CascadeDeleteError is raised.
        """
        doc = await self.documents.get(self.collection, project_id)
        if doc is None:
            logger.warning(f"Delete skipped, project {project_id} not found")
            return False

        owned = list(doc.get("attachments") or [])
        for task in doc.get("tasks") or []:
            owned.extend(task.get("attachments") or [])

        deleted: List[str] = []
        try:
            for attachment in owned:
                await self._delete_blob(attachment)
                deleted.append(attachment.get("id"))
        except CollaboratorError as e:
            await self._prune_project_references(doc, deleted)
            raise CascadeDeleteError(
                f"Delete project {project_id}", e.detail, deleted, cause=e
            ) from e

        removed = await self.documents.delete(self.collection, project_id)

        logger.info(f"Deleted project {project_id} and {len(deleted)} attachment(s)")
        return removed

    async def _prune_project_references(self, doc: dict, deleted_ids: List[str]):
        if not deleted_ids:
            return

        tasks = []
        for task in doc.get("tasks") or []:
            remaining = _without(task.get("attachments") or [], deleted_ids)
            if len(remaining) != len(task.get("attachments") or []):
                task = {**task, "attachments": remaining, "updated_at": self._now()}
            tasks.append(task)

        try:
            await self._write(doc["id"], {
                "attachments": _without(doc.get("attachments") or [], deleted_ids),
                "tasks": tasks,
            })
        except ProjectHubError as e:
            logger.error(f"Could not prune deleted attachment references from project {doc['id']}: {e}")

    # =====================================================
    # Project comments
    # =====================================================
    async def add_comment(self, project_id: str, content: str, actor: Actor) -> Project:
        payload = _validate(CommentCreate, {"content": content})

        doc = await self._load(project_id)
        comments = [*(doc.get("comments") or []), self._comment(payload.content, actor)]

        logger.info(f"{actor.id} commented on project {project_id}")
        return await self._write(project_id, {"comments": comments})

    async def delete_comment(self, project_id: str, comment_id: str) -> Project:
        """Removing an absent comment is a no-op that returns the project."""
        doc = await self._load(project_id)
        comments = doc.get("comments") or []

        if _find(comments, comment_id) is None:
            logger.info(f"Comment {comment_id} already absent from project {project_id}")
            return Project.model_validate(doc)

        return await self._write(project_id, {"comments": _without(comments, [comment_id])})

    # =====================================================
    # Project attachments
    # =====================================================
    async def add_attachment(self, project_id: str, file: Payload, actor: Actor) -> Project:
        """Upload first, then store the reference."""
        upload = _validate(UploadedFile, file)
        await self._load(project_id)

        attachment_id = self._id_factory()
        path = project_attachment_path(project_id, attachment_id, upload.file_name)
        attachment = await self._upload(path, upload, actor, attachment_id)

        try:
            doc = await self._load(project_id)
            attachments = [*(doc.get("attachments") or []), attachment]
            project = await self._write(project_id, {"attachments": attachments})
        except ProjectHubError:
            await self._discard_blob(path)
            raise

        logger.info(f"Attached {upload.file_name} to project {project_id}")
        return project

    async def delete_attachment(self, project_id: str, attachment_id: str) -> Project:
        """
        Delete the blob, then the reference. If the blob delete fails the
        reference stays. Removing an absent attachment is a no-op.
        """
        doc = await self._load(project_id)
        attachments = doc.get("attachments") or []
        attachment = _find(attachments, attachment_id)

        if attachment is None:
            logger.info(f"Attachment {attachment_id} already absent from project {project_id}")
            return Project.model_validate(doc)

        await self._delete_blob(attachment)
        return await self._write(project_id, {"attachments": _without(attachments, [attachment_id])})

    # =====================================================
    # Tasks
    # =====================================================
    async def add_task(self, project_id: str, task_data: Payload, actor: Actor) -> Project:
        payload = _validate(TaskCreate, without_keys(_as_dict(task_data), TASK_PROTECTED_FIELDS))

        doc = await self._load(project_id)
        now = self._clock()
        task = ProjectTask(
            id=self._id_factory(),
            **payload.model_dump(),
            created_by=actor.id,
            created_at=now,
            updated_at=now,
            comments=[],
            attachments=[],
        )
        tasks = [*(doc.get("tasks") or []), task.model_dump(mode="json")]

        logger.info(f"Added task {task.id} to project {project_id}")
        return await self._write(project_id, {"tasks": tasks})

    async def update_task(self, project_id: str, task_id: str, partial: Payload) -> Project:
        """Merge `partial` into one task. Raises TaskNotFoundError if absent."""
        update = _validate(TaskUpdate, without_keys(_as_dict(partial), TASK_PROTECTED_FIELDS))
        changes = _changes(update)

        doc = await self._load(project_id)
        tasks = self._with_task(doc, task_id, lambda task: task.update(changes))

        logger.info(f"Updated task {task_id} in project {project_id}")
        return await self._write(project_id, {"tasks": tasks})

    async def delete_task(self, project_id: str, task_id: str) -> Project:
        """
        Delete the task's attachment blobs, then the task.
        On a failed blob delete the task stays, minus references to blobs
        already removed, and CascadeDeleteError is raised.
        """
        doc = await self._load(project_id)
        index = self._task_index(doc, task_id)
        task = doc["tasks"][index]

        deleted: List[str] = []
        try:
            for attachment in task.get("attachments") or []:
                await self._delete_blob(attachment)
                deleted.append(attachment.get("id"))
        except CollaboratorError as e:
            if deleted:
                tasks = self._with_task(
                    doc, task_id,
                    lambda t: t.update(attachments=_without(t.get("attachments") or [], deleted)),
                )
                try:
                    await self._write(project_id, {"tasks": tasks})
                except ProjectHubError as prune_error:
                    logger.error(f"Could not prune deleted attachment references from task {task_id}: {prune_error}")
            raise CascadeDeleteError(
                f"Delete task {task_id}", e.detail, deleted, cause=e
            ) from e

        tasks = [t for i, t in enumerate(doc["tasks"]) if i != index]

        logger.info(f"Deleted task {task_id} from project {project_id}")
        return await self._write(project_id, {"tasks": tasks})

    # =====================================================
    # Task comments
    # =====================================================
    async def add_task_comment(self, project_id: str, task_id: str, content: str, actor: Actor) -> Project:
        payload = _validate(CommentCreate, {"content": content})

        doc = await self._load(project_id)
        comment = self._comment(payload.content, actor)
        tasks = self._with_task(
            doc, task_id,
            lambda task: task.update(comments=[*(task.get("comments") or []), comment]),
        )

        logger.info(f"{actor.id} commented on task {task_id} in project {project_id}")
        return await self._write(project_id, {"tasks": tasks})

    async def delete_task_comment(self, project_id: str, task_id: str, comment_id: str) -> Project:
        doc = await self._load(project_id)
        task = doc["tasks"][self._task_index(doc, task_id)]

        if _find(task.get("comments") or [], comment_id) is None:
            logger.info(f"Comment {comment_id} already absent from task {task_id}")
            return Project.model_validate(doc)

        tasks = self._with_task(
            doc, task_id,
            lambda t: t.update(comments=_without(t.get("comments") or [], [comment_id])),
        )
        return await self._write(project_id, {"tasks": tasks})

    # =====================================================
    # Task attachments
    # =====================================================
    async def add_task_attachment(self, project_id: str, task_id: str, file: Payload, actor: Actor) -> Project:
        upload = _validate(UploadedFile, file)
        self._task_index(await self._load(project_id), task_id)

        attachment_id = self._id_factory()
        path = task_attachment_path(project_id, task_id, attachment_id, upload.file_name)
        attachment = await self._upload(path, upload, actor, attachment_id)

        try:
            doc = await self._load(project_id)
            tasks = self._with_task(
                doc, task_id,
                lambda task: task.update(attachments=[*(task.get("attachments") or []), attachment]),
            )
            project = await self._write(project_id, {"tasks": tasks})
        except ProjectHubError:
            await self._discard_blob(path)
            raise

        logger.info(f"Attached {upload.file_name} to task {task_id} in project {project_id}")
        return project

    async def delete_task_attachment(self, project_id: str, task_id: str, attachment_id: str) -> Project:
        doc = await self._load(project_id)
        task = doc["tasks"][self._task_index(doc, task_id)]
        attachment = _find(task.get("attachments") or [], attachment_id)

        if attachment is None:
            logger.info(f"Attachment {attachment_id} already absent from task {task_id}")
            return Project.model_validate(doc)

        await self._delete_blob(attachment)

        tasks = self._with_task(
            doc, task_id,
            lambda t: t.update(attachments=_without(t.get("attachments") or [], [attachment_id])),
        )
        return await self._write(project_id, {"tasks": tasks})

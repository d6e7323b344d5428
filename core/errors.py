# core/errors.py

from typing import Any, Iterable, List, Optional

from botocore.exceptions import ClientError


class ProjectHubError(Exception):
    """Base class for every failure raised by the project core."""


# -----------------------------------------------------
# Not found
# -----------------------------------------------------
class NotFoundError(ProjectHubError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str):
        super().__init__("Project", project_id)


class TaskNotFoundError(NotFoundError):
    def __init__(self, project_id: str, task_id: str):
        self.project_id = project_id
        super().__init__("Task", task_id)


# -----------------------------------------------------
# Validation (raised before any collaborator I/O)
# -----------------------------------------------------
class PayloadValidationError(ProjectHubError):
    def __init__(self, message: str, errors: Optional[List[dict]] = None):
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, model_name: str, error: Any) -> "PayloadValidationError":
        errors = error.errors(include_url=False)
        fields = ", ".join(
            ".".join(str(part) for part in e.get("loc", ())) or "<root>"
            for e in errors
        )
        return cls(f"Invalid {model_name} payload: {fields}", errors)


# -----------------------------------------------------
# Collaborator failures (Supabase / S3)
# -----------------------------------------------------
class CollaboratorError(ProjectHubError):
    def __init__(self, operation: str, detail: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.detail = detail
        self.cause = cause
        super().__init__(f"{operation}: {detail}")


class CascadeDeleteError(CollaboratorError):
    """A blob delete failed part-way through a cascading delete."""

    def __init__(
        self,
        operation: str,
        detail: str,
        deleted_attachment_ids: Iterable[str] = (),
        cause: Optional[BaseException] = None,
    ):
        self.deleted_attachment_ids = list(deleted_attachment_ids)
        super().__init__(operation, detail, cause)


def extract_collaborator_error(error: BaseException) -> str:
    """
    Safely extract readable details from client errors.
    Handles:
      • botocore ClientError (S3)
      • PostgREST / GoTrue errors (Supabase)
      • Generic Python exceptions
    """

    # Case 1: S3 errors carry a structured response
    if isinstance(error, ClientError):
        info = error.response.get("Error", {})
        code = info.get("Code", "Unknown")
        message = info.get("Message", "")
        return f"{code} {message}".strip()

    # Case 2: Supabase errors expose .message
    message = getattr(error, "message", None)
    if message:
        return str(message)

    # Case 3: errors with args (common)
    if error.args:
        return str(error.args[0])

    # Case 4: plain string fallback
    return str(error) or type(error).__name__


def collaborator_error(error: BaseException, operation: str) -> CollaboratorError:
    """
    Wrap a Supabase / S3 exception in a CollaboratorError and log it.
    Returns the error (doesn't raise) so the caller can `raise ... from error`.
    """
    from core.logging_config import logger

    detail = extract_collaborator_error(error)
    logger.error(f"{operation} failed: {detail}")
    return CollaboratorError(operation, detail, cause=error)

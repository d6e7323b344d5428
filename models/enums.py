from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# ROLE
# -----------------------------------------------------
class Role(BaseStrEnum):
    """Actor classification. Assigned outside this core."""

    admin = "admin"
    supervisor = "supervisor"
    finance = "finance"
    vendor = "vendor"
    user = "user"


# -----------------------------------------------------
# RESOURCE
# -----------------------------------------------------
class Resource(BaseStrEnum):
    """Object kinds governed by the permissions matrix."""

    users = "users"
    vendors = "vendors"
    projects = "projects"
    vendor_documents = "vendorDocuments"
    tickets = "tickets"
    ticket_documents = "ticketDocuments"
    bills = "bills"
    ad_hoc_payments = "adHocPayments"


# -----------------------------------------------------
# ACTION
# -----------------------------------------------------
class Action(BaseStrEnum):
    view = "view"
    create = "create"
    edit = "edit"
    delete = "delete"
    upload = "upload"
    approve = "approve"
    pay = "pay"
    close = "close"


# -----------------------------------------------------
# ACCESS LEVEL
# -----------------------------------------------------
class AccessLevel(BaseStrEnum):
    """Value of a single (resource, action, role) cell."""

    all = "all"
    yes = "yes"
    team = "team"
    own = "own"
    assigned = "assigned"
    no = "no"
    self_register = "self-register"
    own_profile = "own-profile"


# -----------------------------------------------------
# PROJECT STATUS
# -----------------------------------------------------
class ProjectStatus(BaseStrEnum):
    """Workflow state shared by projects and tasks."""

    not_started = "not-started"
    in_progress = "in-progress"
    completed = "completed"


# -----------------------------------------------------
# PROJECT PRIORITY
# -----------------------------------------------------
class ProjectPriority(BaseStrEnum):
    low = "low"
    medium = "medium"
    high = "high"

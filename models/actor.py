from typing import Optional
from pydantic import BaseModel

from models.enums import Role


# -------------------------------------------------------------------
# ACTOR: the identity performing an operation.
# Passed explicitly to every call; there is no ambient current user.
# -------------------------------------------------------------------
class Actor(BaseModel):
    id: str
    name: str
    role: Role
    email: Optional[str] = None

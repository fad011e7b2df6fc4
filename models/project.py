"""
models/project.py
-----------------
Domain model for research projects, the root of the ownership hierarchy.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from models.fields import UNSET, PatchShape, Shape, optional_text, require_id, require_text


@dataclass(frozen=True)
class Project:
    """
    A research project owned by one user.

    Attributes:
        id: Store-assigned primary key.
        name: Project title.
        owner_id: User who owns the project.
        created_at: Timestamp when the record was created.
        updated_at: Refreshed on every update of this project only.
        description: Optional free text.
    """
    id: int
    name: str
    owner_id: int
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None

    def __str__(self) -> str:
        return f"Project #{self.id} '{self.name}' (owner {self.owner_id})"


@dataclass(frozen=True)
class ProjectCreate(Shape):
    name: str
    owner_id: int
    description: Optional[str] = None

    _rules = {
        "name": require_text,
        "owner_id": require_id,
        "description": optional_text,
    }


@dataclass(frozen=True)
class ProjectUpdate(PatchShape):
    name: Any = UNSET
    owner_id: Any = UNSET
    description: Any = UNSET

    _rules = ProjectCreate._rules

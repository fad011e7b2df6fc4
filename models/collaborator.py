"""
models/collaborator.py
----------------------
Join record granting a non-owner user access to a project.
"""

from dataclasses import dataclass

from config import DEFAULT_COLLABORATOR_ROLE
from models.fields import Shape, require_id, require_text


@dataclass(frozen=True)
class ProjectCollaborator:
    id: int
    project_id: int
    user_id: int
    role: str = DEFAULT_COLLABORATOR_ROLE


@dataclass(frozen=True)
class CollaboratorCreate(Shape):
    project_id: int
    user_id: int
    role: str = DEFAULT_COLLABORATOR_ROLE

    _rules = {
        "project_id": require_id,
        "user_id": require_id,
        "role": require_text,
    }

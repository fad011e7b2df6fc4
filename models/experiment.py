"""
models/experiment.py
--------------------
Domain model for experiments. Each experiment belongs to one project.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from models.fields import UNSET, PatchShape, Shape, optional_text, require_id, require_text


@dataclass(frozen=True)
class Experiment:
    id: int
    name: str
    project_id: int
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None

    def __str__(self) -> str:
        return f"Experiment #{self.id} '{self.name}' (project {self.project_id})"


@dataclass(frozen=True)
class ExperimentCreate(Shape):
    name: str
    project_id: int
    description: Optional[str] = None

    _rules = {
        "name": require_text,
        "project_id": require_id,
        "description": optional_text,
    }


@dataclass(frozen=True)
class ExperimentUpdate(PatchShape):
    name: Any = UNSET
    project_id: Any = UNSET
    description: Any = UNSET

    _rules = ExperimentCreate._rules

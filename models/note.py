"""
models/note.py
--------------
Domain model for notebook entries written inside an experiment.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from models.fields import UNSET, PatchShape, Shape, optional_text, require_id, require_text


@dataclass(frozen=True)
class Note:
    """
    A single notebook entry.

    Attributes:
        id: Store-assigned primary key.
        title: Entry headline; searched together with `content`.
        experiment_id: Experiment the note is filed under.
        author_id: User who wrote the note.
        created_at: Timestamp when the record was created.
        updated_at: Refreshed on every update; attachment changes do not touch it.
        content: Optional body text.
    """
    id: int
    title: str
    experiment_id: int
    author_id: int
    created_at: datetime
    updated_at: datetime
    content: Optional[str] = None


@dataclass(frozen=True)
class NoteCreate(Shape):
    title: str
    experiment_id: int
    author_id: int
    content: Optional[str] = None

    _rules = {
        "title": require_text,
        "experiment_id": require_id,
        "author_id": require_id,
        "content": optional_text,
    }


@dataclass(frozen=True)
class NoteUpdate(PatchShape):
    title: Any = UNSET
    experiment_id: Any = UNSET
    author_id: Any = UNSET
    content: Any = UNSET

    _rules = NoteCreate._rules

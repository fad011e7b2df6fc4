"""
repositories/cascade.py
-----------------------
Ordered deletion plans for the Project → Experiment → Note → Attachment
hierarchy.

The schema declares no cascading foreign keys, so each backend builds a
DeletionPlan for the root it removes and executes its steps, leaf to root,
inside a single unit of work.
"""

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class DeletionStep:
    """Delete every row of `table` whose `column` is in `ids`."""
    table: str
    column: str
    ids: tuple[int, ...]


@dataclass
class DeletionPlan:
    """
    Everything that disappears with one root record.

    Attributes:
        project_ids: Projects removed, with their collaborator rows.
        experiment_ids: Experiments removed.
        note_ids: Notes removed, with their attachments.
    """
    project_ids: list[int] = field(default_factory=list)
    experiment_ids: list[int] = field(default_factory=list)
    note_ids: list[int] = field(default_factory=list)

    def steps(self) -> Iterator[DeletionStep]:
        """Yield the non-empty steps, children before parents."""
        ordered = (
            ("attachments", "note_id", self.note_ids),
            ("notes", "id", self.note_ids),
            ("experiments", "id", self.experiment_ids),
            ("project_collaborators", "project_id", self.project_ids),
            ("projects", "id", self.project_ids),
        )
        for table, column, ids in ordered:
            if ids:
                yield DeletionStep(table, column, tuple(ids))

    def summary(self) -> str:
        return (
            f"{len(self.project_ids)} project(s), "
            f"{len(self.experiment_ids)} experiment(s), "
            f"{len(self.note_ids)} note(s)"
        )

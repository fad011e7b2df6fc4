"""
repositories/base.py
--------------------
Repository interface (Abstract Base Class).

Defines the contract every storage backend satisfies, independent of the
underlying storage mechanism. Callers above this layer never touch
storage directly.

Conventions shared by all backends:
    - get_* / update_* return None when the target does not exist.
    - delete_* / remove_collaborator return False when nothing was removed.
    - create_* assigns id and timestamps and raises
      ReferentialIntegrityError when a declared parent is missing.
    - update_* merges only the supplied fields and refreshes updated_at
      (projects, experiments and notes only; never on a parent).
"""

from abc import ABC, abstractmethod
from typing import Optional

from models import (
    Attachment,
    AttachmentCreate,
    AttachmentUpdate,
    CollaboratorCreate,
    Experiment,
    ExperimentCreate,
    ExperimentUpdate,
    Note,
    NoteCreate,
    NoteUpdate,
    Project,
    ProjectCollaborator,
    ProjectCreate,
    ProjectUpdate,
    User,
    UserCreate,
    UserUpdate,
)
from repositories.search import SearchResults


def merge_unique(*groups: list[Project]) -> list[Project]:
    """Concatenate project lists, keeping the first occurrence of each id."""
    seen: set[int] = set()
    merged = []
    for group in groups:
        for project in group:
            if project.id not in seen:
                seen.add(project.id)
                merged.append(project)
    return merged


class LabRepository(ABC):
    """Abstract data access contract for the lab notebook."""

    # ── USERS ─────────────────────────────────────────────

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    def list_users(self) -> list[User]:
        pass

    @abstractmethod
    def create_user(self, data: UserCreate) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateError: If the username is already taken.
        """

    @abstractmethod
    def update_user(self, user_id: int, patch: UserUpdate) -> Optional[User]:
        pass

    # ── PROJECTS ──────────────────────────────────────────

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[Project]:
        pass

    @abstractmethod
    def list_projects(self) -> list[Project]:
        pass

    @abstractmethod
    def list_projects_for_user(self, user_id: int) -> list[Project]:
        """
        Projects visible to a user: the ones they own, then the ones they
        collaborate on. Each project appears once, deduplicated by id.
        """

    @abstractmethod
    def create_project(self, data: ProjectCreate) -> Project:
        pass

    @abstractmethod
    def update_project(self, project_id: int, patch: ProjectUpdate) -> Optional[Project]:
        pass

    @abstractmethod
    def delete_project(self, project_id: int) -> bool:
        """
        Delete a project with its experiments, their notes, those notes'
        attachments and its collaborator rows, as one atomic unit.

        Returns:
            True if the project existed and was removed, False otherwise.
        """

    # ── EXPERIMENTS ───────────────────────────────────────

    @abstractmethod
    def get_experiment(self, experiment_id: int) -> Optional[Experiment]:
        pass

    @abstractmethod
    def list_experiments(self) -> list[Experiment]:
        pass

    @abstractmethod
    def list_experiments_by_project(self, project_id: int) -> list[Experiment]:
        pass

    @abstractmethod
    def create_experiment(self, data: ExperimentCreate) -> Experiment:
        pass

    @abstractmethod
    def update_experiment(
        self, experiment_id: int, patch: ExperimentUpdate
    ) -> Optional[Experiment]:
        pass

    @abstractmethod
    def delete_experiment(self, experiment_id: int) -> bool:
        """Delete an experiment with its notes and their attachments."""

    # ── NOTES ─────────────────────────────────────────────

    @abstractmethod
    def get_note(self, note_id: int) -> Optional[Note]:
        pass

    @abstractmethod
    def list_notes(self) -> list[Note]:
        """All notes, most recently updated first."""

    @abstractmethod
    def list_notes_by_experiment(self, experiment_id: int) -> list[Note]:
        """Notes of one experiment, most recently updated first."""

    @abstractmethod
    def create_note(self, data: NoteCreate) -> Note:
        pass

    @abstractmethod
    def update_note(self, note_id: int, patch: NoteUpdate) -> Optional[Note]:
        pass

    @abstractmethod
    def delete_note(self, note_id: int) -> bool:
        """Delete a note with its attachments."""

    # ── ATTACHMENTS ───────────────────────────────────────

    @abstractmethod
    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        pass

    @abstractmethod
    def list_attachments(self) -> list[Attachment]:
        pass

    @abstractmethod
    def list_attachments_by_note(self, note_id: int) -> list[Attachment]:
        pass

    @abstractmethod
    def create_attachment(self, data: AttachmentCreate) -> Attachment:
        pass

    @abstractmethod
    def update_attachment(
        self, attachment_id: int, patch: AttachmentUpdate
    ) -> Optional[Attachment]:
        pass

    @abstractmethod
    def delete_attachment(self, attachment_id: int) -> bool:
        pass

    # ── COLLABORATORS ─────────────────────────────────────

    @abstractmethod
    def add_collaborator(self, data: CollaboratorCreate) -> ProjectCollaborator:
        """
        Grant a user access to a project.

        Raises:
            ReferentialIntegrityError: If the project or user does not exist.
            DuplicateError: If the user already collaborates on the project.
        """

    @abstractmethod
    def remove_collaborator(self, project_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    def list_collaborators_by_project(self, project_id: int) -> list[ProjectCollaborator]:
        pass

    @abstractmethod
    def list_collaborations_for_user(self, user_id: int) -> list[ProjectCollaborator]:
        pass

    # ── SEARCH ────────────────────────────────────────────

    @abstractmethod
    def search_notes(self, query: str) -> list[Note]:
        """Notes whose title or content contains `query`, ignoring case."""

    @abstractmethod
    def search_projects(self, query: str) -> list[Project]:
        """Projects whose name or description contains `query`, ignoring case."""

    @abstractmethod
    def search_experiments(self, query: str) -> list[Experiment]:
        """Experiments whose name or description contains `query`, ignoring case."""

    def search_all(self, query: str) -> SearchResults:
        """
        Run the three category searches independently.

        No cross-category deduplication is needed: each record belongs to
        exactly one category.
        """
        return SearchResults(
            notes=self.search_notes(query),
            projects=self.search_projects(query),
            experiments=self.search_experiments(query),
        )

"""
repositories/memory_repo.py
---------------------------
Transient backend built on keyed dicts and one id counter per table.

Serves as the conformance reference for PostgresRepository: same
contract, no external dependencies. Mutations hold a re-entrant lock for
their whole duration and reads iterate snapshots taken under the same
lock, so no caller observes an intermediate state. Cascades stage every
table first and swap them in at the end (copy-and-swap).
"""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

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
from repositories.base import LabRepository, merge_unique
from repositories.cascade import DeletionPlan
from repositories.search import matches, normalize_query
from utils.errors import DuplicateError, ReferentialIntegrityError
from utils.logger import get_logger

logger = get_logger(__name__)

_TABLES = ("users", "projects", "experiments", "notes", "attachments", "project_collaborators")

DEFAULT_USER = UserCreate(
    username="sarah.chen",
    display_name="Dr. Sarah Chen",
    role="Principal Investigator",
)


class MemoryRepository(LabRepository):
    """In-process implementation of LabRepository."""

    def __init__(self, seed_default_user: bool = True):
        self._lock = threading.RLock()
        self._tables: dict[str, dict[int, Any]] = {name: {} for name in _TABLES}
        self._counters: dict[str, int] = {name: 1 for name in _TABLES}
        self._last_stamp: Optional[datetime] = None
        if seed_default_user:
            self.create_user(DEFAULT_USER)

    # ── USERS ─────────────────────────────────────────────

    def get_user(self, user_id: int) -> Optional[User]:
        return self._tables["users"].get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next(
            (u for u in self._rows("users") if u.username == username), None
        )

    def list_users(self) -> list[User]:
        return self._rows("users")

    def create_user(self, data: UserCreate) -> User:
        with self._lock:
            if self.get_user_by_username(data.username) is not None:
                raise DuplicateError("user", data.username)
            user = User(
                id=self._next_id("users"),
                username=data.username,
                display_name=data.display_name,
                role=data.role,
                avatar_url=data.avatar_url,
                created_at=self._now(),
            )
            self._tables["users"][user.id] = user
        logger.info(f"Created user #{user.id} '{user.username}'")
        return user

    def update_user(self, user_id: int, patch: UserUpdate) -> Optional[User]:
        changes = patch.changes()
        with self._lock:
            existing = self.get_user(user_id)
            if existing is None:
                return None
            if "username" in changes:
                other = self.get_user_by_username(changes["username"])
                if other is not None and other.id != user_id:
                    raise DuplicateError("user", changes["username"])
            user = replace(existing, **changes)
            self._tables["users"][user_id] = user
        logger.info(f"Updated user #{user_id}: {sorted(changes)}")
        return user

    # ── PROJECTS ──────────────────────────────────────────

    def get_project(self, project_id: int) -> Optional[Project]:
        return self._tables["projects"].get(project_id)

    def list_projects(self) -> list[Project]:
        return self._rows("projects")

    def list_projects_for_user(self, user_id: int) -> list[Project]:
        with self._lock:
            projects = dict(self._tables["projects"])
            shared = sorted(
                c.project_id for c in self._rows("project_collaborators") if c.user_id == user_id
            )
        owned = [p for p in projects.values() if p.owner_id == user_id]
        collaborated = [projects[pid] for pid in shared if pid in projects]
        return merge_unique(owned, collaborated)

    def create_project(self, data: ProjectCreate) -> Project:
        with self._lock:
            self._require("users", data.owner_id, "user")
            now = self._now()
            project = Project(
                id=self._next_id("projects"),
                name=data.name,
                description=data.description,
                owner_id=data.owner_id,
                created_at=now,
                updated_at=now,
            )
            self._tables["projects"][project.id] = project
        logger.info(f"Created project #{project.id} for user {project.owner_id}")
        return project

    def update_project(self, project_id: int, patch: ProjectUpdate) -> Optional[Project]:
        changes = patch.changes()
        with self._lock:
            if project_id not in self._tables["projects"]:
                return None
            if "owner_id" in changes:
                self._require("users", changes["owner_id"], "user")
            return self._touch("projects", project_id, changes)

    def delete_project(self, project_id: int) -> bool:
        with self._lock:
            if project_id not in self._tables["projects"]:
                return False
            experiment_ids = [
                e.id for e in self._tables["experiments"].values() if e.project_id == project_id
            ]
            plan = DeletionPlan(
                project_ids=[project_id],
                experiment_ids=experiment_ids,
                note_ids=self._note_ids_for(experiment_ids),
            )
            self._execute(plan)
        logger.info(f"Deleted project #{project_id} with {plan.summary()}")
        return True

    # ── EXPERIMENTS ───────────────────────────────────────

    def get_experiment(self, experiment_id: int) -> Optional[Experiment]:
        return self._tables["experiments"].get(experiment_id)

    def list_experiments(self) -> list[Experiment]:
        return self._rows("experiments")

    def list_experiments_by_project(self, project_id: int) -> list[Experiment]:
        return [e for e in self._rows("experiments") if e.project_id == project_id]

    def create_experiment(self, data: ExperimentCreate) -> Experiment:
        with self._lock:
            self._require("projects", data.project_id, "project")
            now = self._now()
            experiment = Experiment(
                id=self._next_id("experiments"),
                name=data.name,
                description=data.description,
                project_id=data.project_id,
                created_at=now,
                updated_at=now,
            )
            self._tables["experiments"][experiment.id] = experiment
        logger.info(f"Created experiment #{experiment.id} in project {experiment.project_id}")
        return experiment

    def update_experiment(
        self, experiment_id: int, patch: ExperimentUpdate
    ) -> Optional[Experiment]:
        changes = patch.changes()
        with self._lock:
            if experiment_id not in self._tables["experiments"]:
                return None
            if "project_id" in changes:
                self._require("projects", changes["project_id"], "project")
            return self._touch("experiments", experiment_id, changes)

    def delete_experiment(self, experiment_id: int) -> bool:
        with self._lock:
            if experiment_id not in self._tables["experiments"]:
                return False
            plan = DeletionPlan(
                experiment_ids=[experiment_id],
                note_ids=self._note_ids_for([experiment_id]),
            )
            self._execute(plan)
        logger.info(f"Deleted experiment #{experiment_id} with {plan.summary()}")
        return True

    # ── NOTES ─────────────────────────────────────────────

    def get_note(self, note_id: int) -> Optional[Note]:
        return self._tables["notes"].get(note_id)

    def list_notes(self) -> list[Note]:
        return self._recent_first(self._rows("notes"))

    def list_notes_by_experiment(self, experiment_id: int) -> list[Note]:
        return self._recent_first(
            n for n in self._rows("notes") if n.experiment_id == experiment_id
        )

    def create_note(self, data: NoteCreate) -> Note:
        with self._lock:
            self._require("experiments", data.experiment_id, "experiment")
            self._require("users", data.author_id, "user")
            now = self._now()
            note = Note(
                id=self._next_id("notes"),
                title=data.title,
                content=data.content,
                experiment_id=data.experiment_id,
                author_id=data.author_id,
                created_at=now,
                updated_at=now,
            )
            self._tables["notes"][note.id] = note
        logger.info(f"Created note #{note.id} in experiment {note.experiment_id}")
        return note

    def update_note(self, note_id: int, patch: NoteUpdate) -> Optional[Note]:
        changes = patch.changes()
        with self._lock:
            if note_id not in self._tables["notes"]:
                return None
            if "experiment_id" in changes:
                self._require("experiments", changes["experiment_id"], "experiment")
            if "author_id" in changes:
                self._require("users", changes["author_id"], "user")
            return self._touch("notes", note_id, changes)

    def delete_note(self, note_id: int) -> bool:
        with self._lock:
            if note_id not in self._tables["notes"]:
                return False
            self._execute(DeletionPlan(note_ids=[note_id]))
        logger.info(f"Deleted note #{note_id}")
        return True

    # ── ATTACHMENTS ───────────────────────────────────────

    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        return self._tables["attachments"].get(attachment_id)

    def list_attachments(self) -> list[Attachment]:
        return self._rows("attachments")

    def list_attachments_by_note(self, note_id: int) -> list[Attachment]:
        return [a for a in self._rows("attachments") if a.note_id == note_id]

    def create_attachment(self, data: AttachmentCreate) -> Attachment:
        with self._lock:
            self._require("notes", data.note_id, "note")
            attachment = Attachment(
                id=self._next_id("attachments"),
                file_name=data.file_name,
                file_size=data.file_size,
                file_type=data.file_type,
                file_data=data.file_data,
                note_id=data.note_id,
                created_at=self._now(),
            )
            self._tables["attachments"][attachment.id] = attachment
        logger.info(
            f"Created attachment #{attachment.id} '{attachment.file_name}' "
            f"({attachment.file_size} bytes) on note {attachment.note_id}"
        )
        return attachment

    def update_attachment(
        self, attachment_id: int, patch: AttachmentUpdate
    ) -> Optional[Attachment]:
        changes = patch.changes()
        with self._lock:
            existing = self.get_attachment(attachment_id)
            if existing is None:
                return None
            if "note_id" in changes:
                self._require("notes", changes["note_id"], "note")
            attachment = replace(existing, **changes)
            self._tables["attachments"][attachment_id] = attachment
        logger.info(f"Updated attachment #{attachment_id}: {sorted(changes)}")
        return attachment

    def delete_attachment(self, attachment_id: int) -> bool:
        with self._lock:
            removed = self._tables["attachments"].pop(attachment_id, None)
        if removed is None:
            return False
        logger.info(f"Deleted attachment #{attachment_id}")
        return True

    # ── COLLABORATORS ─────────────────────────────────────

    def add_collaborator(self, data: CollaboratorCreate) -> ProjectCollaborator:
        with self._lock:
            self._require("projects", data.project_id, "project")
            self._require("users", data.user_id, "user")
            if self._find_collaborator(data.project_id, data.user_id) is not None:
                raise DuplicateError(
                    "collaborator", f"project {data.project_id}, user {data.user_id}"
                )
            collaborator = ProjectCollaborator(
                id=self._next_id("project_collaborators"),
                project_id=data.project_id,
                user_id=data.user_id,
                role=data.role,
            )
            self._tables["project_collaborators"][collaborator.id] = collaborator
        logger.info(
            f"Added user {data.user_id} to project {data.project_id} as {data.role}"
        )
        return collaborator

    def remove_collaborator(self, project_id: int, user_id: int) -> bool:
        with self._lock:
            collaborator = self._find_collaborator(project_id, user_id)
            if collaborator is None:
                return False
            del self._tables["project_collaborators"][collaborator.id]
        logger.info(f"Removed user {user_id} from project {project_id}")
        return True

    def list_collaborators_by_project(self, project_id: int) -> list[ProjectCollaborator]:
        return [
            c for c in self._rows("project_collaborators") if c.project_id == project_id
        ]

    def list_collaborations_for_user(self, user_id: int) -> list[ProjectCollaborator]:
        return [
            c for c in self._rows("project_collaborators") if c.user_id == user_id
        ]

    # ── SEARCH ────────────────────────────────────────────

    def search_notes(self, query: str) -> list[Note]:
        query = normalize_query(query)
        if query is None:
            return []
        return [
            n for n in self._rows("notes") if matches(query, n.title, n.content)
        ]

    def search_projects(self, query: str) -> list[Project]:
        query = normalize_query(query)
        if query is None:
            return []
        return [
            p for p in self._rows("projects")
            if matches(query, p.name, p.description)
        ]

    def search_experiments(self, query: str) -> list[Experiment]:
        query = normalize_query(query)
        if query is None:
            return []
        return [
            e for e in self._rows("experiments")
            if matches(query, e.name, e.description)
        ]

    # ── HELPERS ───────────────────────────────────────────

    def _rows(self, table: str) -> list[Any]:
        """Snapshot of a table taken under the lock, safe to iterate while writers run."""
        with self._lock:
            return list(self._tables[table].values())

    def _now(self) -> datetime:
        # Strictly increasing, even when the wall clock is coarse or steps back.
        stamp = datetime.now(timezone.utc)
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    def _next_id(self, table: str) -> int:
        next_id = self._counters[table]
        self._counters[table] = next_id + 1
        return next_id

    def _require(self, table: str, record_id: int, entity: str) -> None:
        """Raise ReferentialIntegrityError unless `record_id` exists in `table`."""
        if record_id not in self._tables[table]:
            logger.warning(f"Rejected write referencing missing {entity} #{record_id}")
            raise ReferentialIntegrityError(entity, record_id)

    def _touch(self, table: str, record_id: int, changes: dict) -> Optional[Any]:
        """Merge `changes` into a record and refresh its updated_at."""
        existing = self._tables[table].get(record_id)
        if existing is None:
            return None
        record = replace(existing, **changes, updated_at=self._now())
        self._tables[table][record_id] = record
        logger.info(f"Updated {table[:-1]} #{record_id}: {sorted(changes)}")
        return record

    def _find_collaborator(self, project_id: int, user_id: int) -> Optional[ProjectCollaborator]:
        return next(
            (
                c for c in self._rows("project_collaborators")
                if c.project_id == project_id and c.user_id == user_id
            ),
            None,
        )

    def _note_ids_for(self, experiment_ids: list[int]) -> list[int]:
        wanted = set(experiment_ids)
        return [n.id for n in self._rows("notes") if n.experiment_id in wanted]

    @staticmethod
    def _column_value(key: int, row: Any, column: str) -> int:
        return key if column == "id" else getattr(row, column)

    def _execute(self, plan: DeletionPlan) -> None:
        """
        Apply a deletion plan with copy-and-swap: surviving rows of every
        affected table are computed first, and the live tables are only
        replaced once all steps have been staged.
        """
        staged: dict[str, dict[int, Any]] = {}
        for step in plan.steps():
            current = staged.get(step.table, self._tables[step.table])
            doomed = set(step.ids)
            staged[step.table] = {
                key: row for key, row in current.items()
                if self._column_value(key, row, step.column) not in doomed
            }
        self._tables.update(staged)

    @staticmethod
    def _recent_first(notes) -> list[Note]:
        return sorted(notes, key=lambda n: (n.updated_at, n.id), reverse=True)

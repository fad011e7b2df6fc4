"""
repositories/postgres_repo.py
-----------------------------
Durable backend: all SQL for the six lab notebook tables lives here.

The schema declares no cascading foreign keys, so referential checks and
cascades are explicit statement sequences. Every mutating method runs in
exactly one `transaction()`: parents are locked FOR SHARE while a child is
written, and a cascade locks its root FOR UPDATE and deletes leaf to root.
Any failure rolls the whole call back.
"""

from typing import Any, Optional

import psycopg2
from psycopg2 import errors

from db.connection import read_cursor, transaction
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
from repositories.search import like_pattern, normalize_query
from utils.errors import DuplicateError, ReferentialIntegrityError
from utils.logger import get_logger

logger = get_logger(__name__)

USER_COLUMNS = "id, username, display_name, role, avatar_url, created_at"
PROJECT_COLUMNS = "id, name, description, owner_id, created_at, updated_at"
EXPERIMENT_COLUMNS = "id, name, description, project_id, created_at, updated_at"
NOTE_COLUMNS = "id, title, content, experiment_id, author_id, created_at, updated_at"
ATTACHMENT_COLUMNS = "id, file_name, file_size, file_type, file_data, note_id, created_at"
COLLABORATOR_COLUMNS = "id, project_id, user_id, role"


class PostgresRepository(LabRepository):
    """Repository for the lab notebook tables, backed by the psycopg2 pool in db.connection."""

    # ── USERS ─────────────────────────────────────────────

    def get_user(self, user_id: int) -> Optional[User]:
        row = self._fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s;", (user_id,))
        return self._row_to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        row = self._fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE username = %s;", (username,)
        )
        return self._row_to_user(row) if row else None

    def list_users(self) -> list[User]:
        rows = self._fetch_all(f"SELECT {USER_COLUMNS} FROM users ORDER BY id;")
        return [self._row_to_user(r) for r in rows]

    def create_user(self, data: UserCreate) -> User:
        sql = f"""
            INSERT INTO users (username, display_name, role, avatar_url)
            VALUES (%s, %s, %s, %s)
            RETURNING {USER_COLUMNS};
        """
        try:
            with transaction() as cur:
                self._check_username_free(cur, data.username)
                cur.execute(sql, (data.username, data.display_name, data.role, data.avatar_url))
                user = self._row_to_user(cur.fetchone())
        except errors.UniqueViolation as e:
            raise DuplicateError("user", data.username) from e
        logger.info(f"Created user #{user.id} '{user.username}'")
        return user

    def update_user(self, user_id: int, patch: UserUpdate) -> Optional[User]:
        changes = patch.changes()
        try:
            with transaction() as cur:
                if not self._lock_row(cur, "users", user_id):
                    return None
                if "username" in changes:
                    self._check_username_free(cur, changes["username"], exclude_id=user_id)
                row = self._update_row(cur, "users", USER_COLUMNS, user_id, changes, touch=False)
        except errors.UniqueViolation as e:
            raise DuplicateError("user", changes["username"]) from e
        logger.info(f"Updated user #{user_id}: {sorted(changes)}")
        return self._row_to_user(row)

    # ── PROJECTS ──────────────────────────────────────────

    def get_project(self, project_id: int) -> Optional[Project]:
        row = self._fetch_one(
            f"SELECT {PROJECT_COLUMNS} FROM projects WHERE id = %s;", (project_id,)
        )
        return self._row_to_project(row) if row else None

    def list_projects(self) -> list[Project]:
        rows = self._fetch_all(f"SELECT {PROJECT_COLUMNS} FROM projects ORDER BY id;")
        return [self._row_to_project(r) for r in rows]

    def list_projects_for_user(self, user_id: int) -> list[Project]:
        """
        Two queries (owned, collaborated) unioned in Python.
        A project reachable both ways is returned once, keyed by id.
        """
        owned_sql = f"SELECT {PROJECT_COLUMNS} FROM projects WHERE owner_id = %s ORDER BY id;"
        shared_sql = f"""
            SELECT {PROJECT_COLUMNS} FROM projects
            WHERE id IN (SELECT project_id FROM project_collaborators WHERE user_id = %s)
            ORDER BY id;
        """
        with read_cursor() as cur:
            cur.execute(owned_sql, (user_id,))
            owned = [self._row_to_project(r) for r in cur.fetchall()]
            cur.execute(shared_sql, (user_id,))
            shared = [self._row_to_project(r) for r in cur.fetchall()]
        return merge_unique(owned, shared)

    def create_project(self, data: ProjectCreate) -> Project:
        sql = f"""
            INSERT INTO projects (name, description, owner_id)
            VALUES (%s, %s, %s)
            RETURNING {PROJECT_COLUMNS};
        """
        with transaction() as cur:
            self._require(cur, "users", data.owner_id, "user")
            cur.execute(sql, (data.name, data.description, data.owner_id))
            project = self._row_to_project(cur.fetchone())
        logger.info(f"Created project #{project.id} for user {project.owner_id}")
        return project

    def update_project(self, project_id: int, patch: ProjectUpdate) -> Optional[Project]:
        changes = patch.changes()
        with transaction() as cur:
            if not self._lock_row(cur, "projects", project_id):
                return None
            if "owner_id" in changes:
                self._require(cur, "users", changes["owner_id"], "user")
            row = self._update_row(cur, "projects", PROJECT_COLUMNS, project_id, changes)
        logger.info(f"Updated project #{project_id}: {sorted(changes)}")
        return self._row_to_project(row)

    def delete_project(self, project_id: int) -> bool:
        try:
            with transaction() as cur:
                if not self._lock_row(cur, "projects", project_id):
                    return False
                cur.execute(
                    "SELECT id FROM experiments WHERE project_id = %s ORDER BY id FOR UPDATE;",
                    (project_id,),
                )
                experiment_ids = [r[0] for r in cur.fetchall()]
                plan = DeletionPlan(
                    project_ids=[project_id],
                    experiment_ids=experiment_ids,
                    note_ids=self._note_ids_for(cur, experiment_ids),
                )
                removed = self._execute(cur, plan)
        except Exception as e:
            logger.error(f"Failed to delete project #{project_id}, rolled back: {e}")
            raise
        logger.info(f"Deleted project #{project_id} with {plan.summary()}")
        return removed.get("projects", 0) > 0

    # ── EXPERIMENTS ───────────────────────────────────────

    def get_experiment(self, experiment_id: int) -> Optional[Experiment]:
        row = self._fetch_one(
            f"SELECT {EXPERIMENT_COLUMNS} FROM experiments WHERE id = %s;", (experiment_id,)
        )
        return self._row_to_experiment(row) if row else None

    def list_experiments(self) -> list[Experiment]:
        rows = self._fetch_all(f"SELECT {EXPERIMENT_COLUMNS} FROM experiments ORDER BY id;")
        return [self._row_to_experiment(r) for r in rows]

    def list_experiments_by_project(self, project_id: int) -> list[Experiment]:
        rows = self._fetch_all(
            f"SELECT {EXPERIMENT_COLUMNS} FROM experiments WHERE project_id = %s ORDER BY id;",
            (project_id,),
        )
        return [self._row_to_experiment(r) for r in rows]

    def create_experiment(self, data: ExperimentCreate) -> Experiment:
        sql = f"""
            INSERT INTO experiments (name, description, project_id)
            VALUES (%s, %s, %s)
            RETURNING {EXPERIMENT_COLUMNS};
        """
        with transaction() as cur:
            self._require(cur, "projects", data.project_id, "project")
            cur.execute(sql, (data.name, data.description, data.project_id))
            experiment = self._row_to_experiment(cur.fetchone())
        logger.info(f"Created experiment #{experiment.id} in project {experiment.project_id}")
        return experiment

    def update_experiment(
        self, experiment_id: int, patch: ExperimentUpdate
    ) -> Optional[Experiment]:
        changes = patch.changes()
        with transaction() as cur:
            if not self._lock_row(cur, "experiments", experiment_id):
                return None
            if "project_id" in changes:
                self._require(cur, "projects", changes["project_id"], "project")
            row = self._update_row(cur, "experiments", EXPERIMENT_COLUMNS, experiment_id, changes)
        logger.info(f"Updated experiment #{experiment_id}: {sorted(changes)}")
        return self._row_to_experiment(row)

    def delete_experiment(self, experiment_id: int) -> bool:
        try:
            with transaction() as cur:
                if not self._lock_row(cur, "experiments", experiment_id):
                    return False
                plan = DeletionPlan(
                    experiment_ids=[experiment_id],
                    note_ids=self._note_ids_for(cur, [experiment_id]),
                )
                removed = self._execute(cur, plan)
        except Exception as e:
            logger.error(f"Failed to delete experiment #{experiment_id}, rolled back: {e}")
            raise
        logger.info(f"Deleted experiment #{experiment_id} with {plan.summary()}")
        return removed.get("experiments", 0) > 0

    # ── NOTES ─────────────────────────────────────────────

    def get_note(self, note_id: int) -> Optional[Note]:
        row = self._fetch_one(f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = %s;", (note_id,))
        return self._row_to_note(row) if row else None

    def list_notes(self) -> list[Note]:
        rows = self._fetch_all(
            f"SELECT {NOTE_COLUMNS} FROM notes ORDER BY updated_at DESC, id DESC;"
        )
        return [self._row_to_note(r) for r in rows]

    def list_notes_by_experiment(self, experiment_id: int) -> list[Note]:
        rows = self._fetch_all(
            f"""
            SELECT {NOTE_COLUMNS} FROM notes
            WHERE experiment_id = %s
            ORDER BY updated_at DESC, id DESC;
            """,
            (experiment_id,),
        )
        return [self._row_to_note(r) for r in rows]

    def create_note(self, data: NoteCreate) -> Note:
        sql = f"""
            INSERT INTO notes (title, content, experiment_id, author_id)
            VALUES (%s, %s, %s, %s)
            RETURNING {NOTE_COLUMNS};
        """
        with transaction() as cur:
            self._require(cur, "experiments", data.experiment_id, "experiment")
            self._require(cur, "users", data.author_id, "user")
            cur.execute(sql, (data.title, data.content, data.experiment_id, data.author_id))
            note = self._row_to_note(cur.fetchone())
        logger.info(f"Created note #{note.id} in experiment {note.experiment_id}")
        return note

    def update_note(self, note_id: int, patch: NoteUpdate) -> Optional[Note]:
        changes = patch.changes()
        with transaction() as cur:
            if not self._lock_row(cur, "notes", note_id):
                return None
            if "experiment_id" in changes:
                self._require(cur, "experiments", changes["experiment_id"], "experiment")
            if "author_id" in changes:
                self._require(cur, "users", changes["author_id"], "user")
            row = self._update_row(cur, "notes", NOTE_COLUMNS, note_id, changes)
        logger.info(f"Updated note #{note_id}: {sorted(changes)}")
        return self._row_to_note(row)

    def delete_note(self, note_id: int) -> bool:
        try:
            with transaction() as cur:
                if not self._lock_row(cur, "notes", note_id):
                    return False
                removed = self._execute(cur, DeletionPlan(note_ids=[note_id]))
        except Exception as e:
            logger.error(f"Failed to delete note #{note_id}, rolled back: {e}")
            raise
        logger.info(f"Deleted note #{note_id}")
        return removed.get("notes", 0) > 0

    # ── ATTACHMENTS ───────────────────────────────────────

    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        row = self._fetch_one(
            f"SELECT {ATTACHMENT_COLUMNS} FROM attachments WHERE id = %s;", (attachment_id,)
        )
        return self._row_to_attachment(row) if row else None

    def list_attachments(self) -> list[Attachment]:
        rows = self._fetch_all(f"SELECT {ATTACHMENT_COLUMNS} FROM attachments ORDER BY id;")
        return [self._row_to_attachment(r) for r in rows]

    def list_attachments_by_note(self, note_id: int) -> list[Attachment]:
        rows = self._fetch_all(
            f"SELECT {ATTACHMENT_COLUMNS} FROM attachments WHERE note_id = %s ORDER BY id;",
            (note_id,),
        )
        return [self._row_to_attachment(r) for r in rows]

    def create_attachment(self, data: AttachmentCreate) -> Attachment:
        sql = f"""
            INSERT INTO attachments (file_name, file_size, file_type, file_data, note_id)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {ATTACHMENT_COLUMNS};
        """
        with transaction() as cur:
            self._require(cur, "notes", data.note_id, "note")
            cur.execute(sql, (
                data.file_name, data.file_size, data.file_type,
                psycopg2.Binary(data.file_data), data.note_id,
            ))
            attachment = self._row_to_attachment(cur.fetchone())
        logger.info(
            f"Created attachment #{attachment.id} '{attachment.file_name}' "
            f"({attachment.file_size} bytes) on note {attachment.note_id}"
        )
        return attachment

    def update_attachment(
        self, attachment_id: int, patch: AttachmentUpdate
    ) -> Optional[Attachment]:
        changes = patch.changes()
        with transaction() as cur:
            if not self._lock_row(cur, "attachments", attachment_id):
                return None
            if "note_id" in changes:
                self._require(cur, "notes", changes["note_id"], "note")
            row = self._update_row(
                cur, "attachments", ATTACHMENT_COLUMNS, attachment_id, changes, touch=False
            )
        logger.info(f"Updated attachment #{attachment_id}: {sorted(changes)}")
        return self._row_to_attachment(row)

    def delete_attachment(self, attachment_id: int) -> bool:
        with transaction() as cur:
            cur.execute("DELETE FROM attachments WHERE id = %s;", (attachment_id,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Deleted attachment #{attachment_id}")
        return deleted

    # ── COLLABORATORS ─────────────────────────────────────

    def add_collaborator(self, data: CollaboratorCreate) -> ProjectCollaborator:
        sql = f"""
            INSERT INTO project_collaborators (project_id, user_id, role)
            VALUES (%s, %s, %s)
            RETURNING {COLLABORATOR_COLUMNS};
        """
        pair = f"project {data.project_id}, user {data.user_id}"
        try:
            with transaction() as cur:
                self._require(cur, "projects", data.project_id, "project")
                self._require(cur, "users", data.user_id, "user")
                cur.execute(
                    "SELECT 1 FROM project_collaborators WHERE project_id = %s AND user_id = %s;",
                    (data.project_id, data.user_id),
                )
                if cur.fetchone():
                    raise DuplicateError("collaborator", pair)
                cur.execute(sql, (data.project_id, data.user_id, data.role))
                collaborator = self._row_to_collaborator(cur.fetchone())
        except errors.UniqueViolation as e:
            raise DuplicateError("collaborator", pair) from e
        logger.info(f"Added user {data.user_id} to project {data.project_id} as {data.role}")
        return collaborator

    def remove_collaborator(self, project_id: int, user_id: int) -> bool:
        with transaction() as cur:
            cur.execute(
                "DELETE FROM project_collaborators WHERE project_id = %s AND user_id = %s;",
                (project_id, user_id),
            )
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Removed user {user_id} from project {project_id}")
        return deleted

    def list_collaborators_by_project(self, project_id: int) -> list[ProjectCollaborator]:
        rows = self._fetch_all(
            f"""
            SELECT {COLLABORATOR_COLUMNS} FROM project_collaborators
            WHERE project_id = %s ORDER BY id;
            """,
            (project_id,),
        )
        return [self._row_to_collaborator(r) for r in rows]

    def list_collaborations_for_user(self, user_id: int) -> list[ProjectCollaborator]:
        rows = self._fetch_all(
            f"""
            SELECT {COLLABORATOR_COLUMNS} FROM project_collaborators
            WHERE user_id = %s ORDER BY id;
            """,
            (user_id,),
        )
        return [self._row_to_collaborator(r) for r in rows]

    # ── SEARCH ────────────────────────────────────────────

    def search_notes(self, query: str) -> list[Note]:
        rows = self._search("notes", NOTE_COLUMNS, "title", "content", query)
        return [self._row_to_note(r) for r in rows]

    def search_projects(self, query: str) -> list[Project]:
        rows = self._search("projects", PROJECT_COLUMNS, "name", "description", query)
        return [self._row_to_project(r) for r in rows]

    def search_experiments(self, query: str) -> list[Experiment]:
        rows = self._search("experiments", EXPERIMENT_COLUMNS, "name", "description", query)
        return [self._row_to_experiment(r) for r in rows]

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _fetch_one(sql: str, params: tuple = ()) -> Optional[tuple]:
        with read_cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchone()

    @staticmethod
    def _fetch_all(sql: str, params: tuple = ()) -> list[tuple]:
        with read_cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchall()

    def _search(
        self, table: str, columns: str, primary: str, secondary: str, query: str
    ) -> list[tuple]:
        query = normalize_query(query)
        if query is None:
            return []
        pattern = like_pattern(query)
        sql = f"""
            SELECT {columns} FROM {table}
            WHERE {primary} ILIKE %s ESCAPE '\\'
               OR COALESCE({secondary}, '') ILIKE %s ESCAPE '\\'
            ORDER BY id;
        """
        return self._fetch_all(sql, (pattern, pattern))

    @staticmethod
    def _lock_row(cur, table: str, record_id: int) -> bool:
        """Lock a row for the rest of the transaction; False if it does not exist."""
        cur.execute(f"SELECT 1 FROM {table} WHERE id = %s FOR UPDATE;", (record_id,))
        return cur.fetchone() is not None

    @staticmethod
    def _require(cur, table: str, record_id: int, entity: str) -> None:
        """
        Check a parent exists and keep it from being deleted until commit.

        Raises:
            ReferentialIntegrityError: If the parent row is missing.
        """
        cur.execute(f"SELECT 1 FROM {table} WHERE id = %s FOR SHARE;", (record_id,))
        if cur.fetchone() is None:
            logger.warning(f"Rejected write referencing missing {entity} #{record_id}")
            raise ReferentialIntegrityError(entity, record_id)

    @staticmethod
    def _check_username_free(cur, username: str, exclude_id: Optional[int] = None) -> None:
        cur.execute("SELECT id FROM users WHERE username = %s;", (username,))
        row = cur.fetchone()
        if row and row[0] != exclude_id:
            raise DuplicateError("user", username)

    @staticmethod
    def _update_row(
        cur, table: str, columns: str, record_id: int, changes: dict, touch: bool = True
    ) -> tuple:
        """
        Merge supplied fields into one row. With `touch`, updated_at is
        refreshed in the same statement.
        """
        assignments = [f"{column} = %s" for column in changes]
        params: list[Any] = [
            psycopg2.Binary(value) if isinstance(value, bytes) else value
            for value in changes.values()
        ]
        if touch:
            assignments.append("updated_at = NOW()")
        if not assignments:
            cur.execute(f"SELECT {columns} FROM {table} WHERE id = %s;", (record_id,))
            return cur.fetchone()
        sql = f"UPDATE {table} SET {', '.join(assignments)} WHERE id = %s RETURNING {columns};"
        cur.execute(sql, (*params, record_id))
        return cur.fetchone()

    @staticmethod
    def _note_ids_for(cur, experiment_ids: list[int]) -> list[int]:
        if not experiment_ids:
            return []
        cur.execute(
            "SELECT id FROM notes WHERE experiment_id = ANY(%s) ORDER BY id FOR UPDATE;",
            (experiment_ids,),
        )
        return [r[0] for r in cur.fetchall()]

    @staticmethod
    def _execute(cur, plan: DeletionPlan) -> dict[str, int]:
        """Run every step of a deletion plan; returns rows removed per table."""
        removed: dict[str, int] = {}
        for step in plan.steps():
            cur.execute(
                f"DELETE FROM {step.table} WHERE {step.column} = ANY(%s);",
                (list(step.ids),),
            )
            removed[step.table] = removed.get(step.table, 0) + cur.rowcount
        return removed

    # ── ROW MAPPING ───────────────────────────────────────

    @staticmethod
    def _row_to_user(row: tuple) -> User:
        return User(
            id=row[0],
            username=row[1],
            display_name=row[2],
            role=row[3],
            avatar_url=row[4],
            created_at=row[5],
        )

    @staticmethod
    def _row_to_project(row: tuple) -> Project:
        return Project(
            id=row[0],
            name=row[1],
            description=row[2],
            owner_id=row[3],
            created_at=row[4],
            updated_at=row[5],
        )

    @staticmethod
    def _row_to_experiment(row: tuple) -> Experiment:
        return Experiment(
            id=row[0],
            name=row[1],
            description=row[2],
            project_id=row[3],
            created_at=row[4],
            updated_at=row[5],
        )

    @staticmethod
    def _row_to_note(row: tuple) -> Note:
        return Note(
            id=row[0],
            title=row[1],
            content=row[2],
            experiment_id=row[3],
            author_id=row[4],
            created_at=row[5],
            updated_at=row[6],
        )

    @staticmethod
    def _row_to_attachment(row: tuple) -> Attachment:
        """BYTEA comes back as a memoryview; records always hold bytes."""
        return Attachment(
            id=row[0],
            file_name=row[1],
            file_size=row[2],
            file_type=row[3],
            file_data=bytes(row[4]),
            note_id=row[5],
            created_at=row[6],
        )

    @staticmethod
    def _row_to_collaborator(row: tuple) -> ProjectCollaborator:
        return ProjectCollaborator(
            id=row[0],
            project_id=row[1],
            user_id=row[2],
            role=row[3],
        )

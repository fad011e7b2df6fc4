"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db

Reference columns are plain integers: no REFERENCES / ON DELETE CASCADE.
Cascades are carried out by the repository inside one transaction.
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

# Children first, so dropping never trips over a dependent object.
TABLES = (
    "attachments",
    "notes",
    "experiments",
    "project_collaborators",
    "projects",
    "users",
)

SCHEMA_SQL = """
-- Users table: researchers who own projects and author notes
CREATE TABLE IF NOT EXISTS users (
    id              SERIAL PRIMARY KEY,
    username        TEXT NOT NULL UNIQUE,
    display_name    TEXT NOT NULL,
    role            TEXT NOT NULL DEFAULT 'Researcher',
    avatar_url      TEXT,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Projects table: top of the ownership hierarchy
CREATE TABLE IF NOT EXISTS projects (
    id              SERIAL PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    owner_id        INTEGER NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Experiments table: many per project
CREATE TABLE IF NOT EXISTS experiments (
    id              SERIAL PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    project_id      INTEGER NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Notes table: many per experiment
CREATE TABLE IF NOT EXISTS notes (
    id              SERIAL PRIMARY KEY,
    title           TEXT NOT NULL,
    content         TEXT,
    experiment_id   INTEGER NOT NULL,
    author_id       INTEGER NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Attachments table: binary payloads, many per note
CREATE TABLE IF NOT EXISTS attachments (
    id              SERIAL PRIMARY KEY,
    file_name       TEXT NOT NULL,
    file_size       INTEGER NOT NULL CHECK (file_size > 0),
    file_type       TEXT NOT NULL,
    file_data       BYTEA NOT NULL,
    note_id         INTEGER NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Project collaborators: project <-> user access list
CREATE TABLE IF NOT EXISTS project_collaborators (
    id              SERIAL PRIMARY KEY,
    project_id      INTEGER NOT NULL,
    user_id         INTEGER NOT NULL,
    role            TEXT NOT NULL DEFAULT 'Viewer',
    UNIQUE(project_id, user_id)
);

-- Indexes for parent lookups and cascades
CREATE INDEX IF NOT EXISTS idx_projects_owner ON projects(owner_id);
CREATE INDEX IF NOT EXISTS idx_experiments_project ON experiments(project_id);
CREATE INDEX IF NOT EXISTS idx_notes_experiment ON notes(experiment_id);
CREATE INDEX IF NOT EXISTS idx_attachments_note ON attachments(note_id);
CREATE INDEX IF NOT EXISTS idx_collaborators_user ON project_collaborators(user_id);
"""


def _execute(sql: str, action: str) -> None:
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(sql)
        conn.commit()
        logger.info(f"Database schema {action} successfully.")
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to {action} schema: {e}")
        raise
    finally:
        release_connection(conn)


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    _execute(SCHEMA_SQL, "initialized")


def drop_tables() -> None:
    """Drop every table of the schema. Irreversible."""
    _execute(
        "".join(f"DROP TABLE IF EXISTS {table};\n" for table in TABLES),
        "dropped",
    )


def truncate_tables() -> None:
    """Delete all rows and restart every id sequence at 1."""
    _execute(f"TRUNCATE {', '.join(TABLES)} RESTART IDENTITY;", "truncated")


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("Database schema created successfully.")

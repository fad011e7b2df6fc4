"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "lab_notebook")
DB_USER: str = os.getenv("DB_USER", "lab_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "5"))

# ── Storage ───────────────────────────────────────────────
# "postgres" for the durable backend, "memory" for the transient one
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "postgres").strip().lower()

# ── Attachments ───────────────────────────────────────────
MAX_ATTACHMENT_BYTES: int = int(os.getenv("MAX_ATTACHMENT_BYTES", str(5 * 1024 * 1024)))

# ── Roles ─────────────────────────────────────────────────
DEFAULT_USER_ROLE: str = os.getenv("DEFAULT_USER_ROLE", "Researcher")
DEFAULT_COLLABORATOR_ROLE: str = os.getenv("DEFAULT_COLLABORATOR_ROLE", "Viewer")

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

"""
Shared fixtures.

`repo` runs every conformance test against both backends. The postgres
case needs a disposable database in TEST_DATABASE_URL and is skipped
otherwise; its tables are truncated (ids restart at 1) before each test.
"""

import os
from types import SimpleNamespace

import pytest

from models import (
    AttachmentCreate,
    ExperimentCreate,
    NoteCreate,
    ProjectCreate,
    UserCreate,
)
from repositories import MemoryRepository, PostgresRepository

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture(scope="session")
def postgres_pool():
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DATABASE_URL not set")
    from db.connection import close_pool, init_pool
    from db.init_db import create_tables

    init_pool(TEST_DATABASE_URL)
    create_tables()
    yield
    close_pool()


@pytest.fixture(params=["memory", "postgres"])
def repo(request):
    if request.param == "memory":
        return MemoryRepository(seed_default_user=False)
    request.getfixturevalue("postgres_pool")
    from db.init_db import truncate_tables

    truncate_tables()
    return PostgresRepository()


@pytest.fixture
def owner(repo):
    return repo.create_user(UserCreate(username="owner", display_name="Lab Owner"))


@pytest.fixture
def other_user(repo):
    return repo.create_user(UserCreate(username="guest", display_name="Guest Scientist"))


def build_tree(repo, owner_id, name="Lab A"):
    """Project → Experiment → Note → Attachment, one of each."""
    project = repo.create_project(ProjectCreate(name=name, owner_id=owner_id))
    experiment = repo.create_experiment(
        ExperimentCreate(name="Trial 1", project_id=project.id)
    )
    note = repo.create_note(
        NoteCreate(title="Obs 1", experiment_id=experiment.id, author_id=owner_id)
    )
    attachment = repo.create_attachment(
        AttachmentCreate(
            file_name="scan.png",
            file_size=4,
            file_type="image/png",
            file_data=b"\x89PNG",
            note_id=note.id,
        )
    )
    return SimpleNamespace(
        project=project, experiment=experiment, note=note, attachment=attachment
    )


@pytest.fixture
def tree(repo, owner):
    return build_tree(repo, owner.id)

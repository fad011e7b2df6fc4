"""
Tests specific to the in-memory backend.

Covers:
- Default user seeding
- Per-table counters starting at 1
- Copy-and-swap cascade atomicity
- Records cannot be mutated through returned objects
- Reads running alongside writers from other threads
"""

import dataclasses
import threading

import pytest

from models import CollaboratorCreate, NoteCreate, ProjectCreate, UserCreate
from repositories.memory_repo import MemoryRepository
from tests.conftest import build_tree


class TestSeeding:

    def test_default_user_seeded(self):
        repo = MemoryRepository()
        user = repo.get_user(1)
        assert user.username == "sarah.chen"
        assert user.display_name == "Dr. Sarah Chen"
        assert user.role == "Principal Investigator"

    def test_seeding_can_be_disabled(self):
        assert MemoryRepository(seed_default_user=False).list_users() == []


class TestCounters:

    def test_each_table_counts_from_one(self):
        repo = MemoryRepository()
        tree = build_tree(repo, owner_id=1)
        assert (tree.project.id, tree.experiment.id, tree.note.id, tree.attachment.id) == (
            1, 1, 1, 1,
        )

    def test_ids_never_reused_after_delete(self):
        repo = MemoryRepository()
        first = repo.create_project(ProjectCreate(name="A", owner_id=1))
        repo.delete_project(first.id)
        second = repo.create_project(ProjectCreate(name="B", owner_id=1))
        assert second.id == first.id + 1


class TestCascadeAtomicity:

    def test_failure_mid_cascade_leaves_state_untouched(self, monkeypatch):
        repo = MemoryRepository()
        guest = repo.create_user(UserCreate(username="guest", display_name="Guest"))
        tree = build_tree(repo, owner_id=1)
        repo.add_collaborator(CollaboratorCreate(project_id=tree.project.id, user_id=guest.id))

        original = MemoryRepository._column_value

        def failing_column_value(key, row, column):
            # Attachments, notes and experiments are already staged by now
            if column == "project_id":
                raise RuntimeError("simulated storage failure")
            return original(key, row, column)

        monkeypatch.setattr(MemoryRepository, "_column_value", staticmethod(failing_column_value))

        with pytest.raises(RuntimeError):
            repo.delete_project(tree.project.id)

        assert repo.get_project(tree.project.id) == tree.project
        assert repo.get_experiment(tree.experiment.id) == tree.experiment
        assert repo.get_note(tree.note.id) == tree.note
        assert repo.get_attachment(tree.attachment.id) == tree.attachment
        assert len(repo.list_collaborators_by_project(tree.project.id)) == 1


class TestRecordIsolation:

    def test_returned_records_are_frozen(self):
        repo = MemoryRepository()
        project = repo.create_project(ProjectCreate(name="A", owner_id=1))
        with pytest.raises(dataclasses.FrozenInstanceError):
            project.name = "tampered"
        assert repo.get_project(project.id).name == "A"

    def test_timestamps_strictly_increase(self):
        repo = MemoryRepository()
        stamps = [repo.create_project(ProjectCreate(name=str(i), owner_id=1)).created_at
                  for i in range(20)]
        assert stamps == sorted(set(stamps))


class TestConcurrentAccess:

    def test_reads_while_another_thread_creates(self):
        repo = MemoryRepository()
        tree = build_tree(repo, owner_id=1)
        done = threading.Event()
        failures = []

        def writer():
            try:
                for i in range(5000):
                    repo.create_note(
                        NoteCreate(title=f"n{i}", experiment_id=tree.experiment.id, author_id=1)
                    )
            finally:
                done.set()

        def reader():
            try:
                while not done.is_set():
                    repo.search_notes("n1")
                    repo.list_notes_by_experiment(tree.experiment.id)
                    repo.list_projects_for_user(1)
            except Exception as e:
                failures.append(e)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert failures == []
        assert len(repo.list_notes_by_experiment(tree.experiment.id)) == 5001

"""
Conformance tests for the project collaborator access list.
"""

import pytest

from models import CollaboratorCreate, ProjectCreate, UserCreate
from utils.errors import DuplicateError, ReferentialIntegrityError


def test_add_collaborator_defaults_to_viewer(repo, tree, other_user):
    collaborator = repo.add_collaborator(
        CollaboratorCreate(project_id=tree.project.id, user_id=other_user.id)
    )
    assert collaborator.role == "Viewer"
    assert repo.list_collaborators_by_project(tree.project.id) == [collaborator]
    assert repo.list_collaborations_for_user(other_user.id) == [collaborator]


def test_remove_one_of_two_collaborators(repo, tree, other_user):
    third = repo.create_user(UserCreate(username="third", display_name="Third Person"))
    repo.add_collaborator(CollaboratorCreate(project_id=tree.project.id, user_id=other_user.id))
    kept = repo.add_collaborator(
        CollaboratorCreate(project_id=tree.project.id, user_id=third.id, role="Editor")
    )

    assert repo.remove_collaborator(tree.project.id, other_user.id) is True

    assert repo.list_collaborators_by_project(tree.project.id) == [kept]
    assert repo.remove_collaborator(tree.project.id, other_user.id) is False


def test_duplicate_pair_rejected(repo, tree, other_user):
    repo.add_collaborator(CollaboratorCreate(project_id=tree.project.id, user_id=other_user.id))
    with pytest.raises(DuplicateError):
        repo.add_collaborator(
            CollaboratorCreate(project_id=tree.project.id, user_id=other_user.id, role="Editor")
        )
    assert len(repo.list_collaborators_by_project(tree.project.id)) == 1


def test_collaborator_references_checked(repo, tree, other_user):
    with pytest.raises(ReferentialIntegrityError) as exc:
        repo.add_collaborator(CollaboratorCreate(project_id=808, user_id=other_user.id))
    assert exc.value.entity == "project"
    with pytest.raises(ReferentialIntegrityError) as exc:
        repo.add_collaborator(CollaboratorCreate(project_id=tree.project.id, user_id=808))
    assert exc.value.entity == "user"


class TestProjectsForUser:
    """Owned ∪ collaborated, each project exactly once."""

    def test_owned_then_collaborated(self, repo, owner, other_user):
        mine = repo.create_project(ProjectCreate(name="Mine", owner_id=owner.id))
        theirs = repo.create_project(ProjectCreate(name="Theirs", owner_id=other_user.id))
        repo.create_project(ProjectCreate(name="Private", owner_id=other_user.id))
        repo.add_collaborator(CollaboratorCreate(project_id=theirs.id, user_id=owner.id))

        visible = repo.list_projects_for_user(owner.id)

        assert [p.id for p in visible] == [mine.id, theirs.id]

    def test_owner_listed_as_collaborator_appears_once(self, repo, owner):
        project = repo.create_project(ProjectCreate(name="Mine", owner_id=owner.id))
        repo.add_collaborator(CollaboratorCreate(project_id=project.id, user_id=owner.id))

        visible = repo.list_projects_for_user(owner.id)

        assert [p.id for p in visible] == [project.id]

    def test_user_with_no_projects(self, repo, other_user):
        assert repo.list_projects_for_user(other_user.id) == []

    def test_deleted_project_disappears(self, repo, tree, other_user):
        repo.add_collaborator(CollaboratorCreate(project_id=tree.project.id, user_id=other_user.id))
        repo.delete_project(tree.project.id)
        assert repo.list_projects_for_user(other_user.id) == []
        assert repo.list_collaborations_for_user(other_user.id) == []

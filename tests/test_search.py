"""
Conformance tests for cross-entity substring search.
"""

import pytest

from models import ExperimentCreate, NoteCreate, ProjectCreate


@pytest.fixture
def corpus(repo, owner):
    project = repo.create_project(
        ProjectCreate(name="Protein Folding", owner_id=owner.id, description="Kinase assays")
    )
    bare = repo.create_project(ProjectCreate(name="Plasmid Library", owner_id=owner.id))
    experiment = repo.create_experiment(
        ExperimentCreate(name="Western Blot", project_id=project.id)
    )
    assay = repo.create_note(
        NoteCreate(title="Protein Assay", experiment_id=experiment.id, author_id=owner.id)
    )
    wildcard = repo.create_note(
        NoteCreate(
            title="Yield",
            content="Recovered 100% of sample_3",
            experiment_id=experiment.id,
            author_id=owner.id,
        )
    )
    return dict(project=project, bare=bare, experiment=experiment, assay=assay, wildcard=wildcard)


@pytest.mark.parametrize("query", ["assay", "ASSAY", "Assay"])
def test_note_search_ignores_case(repo, corpus, query):
    assert [n.id for n in repo.search_notes(query)] == [corpus["assay"].id]


@pytest.mark.parametrize("query", ["", "   ", "\t\n", None])
def test_blank_query_matches_nothing(repo, corpus, query):
    assert repo.search_notes(query) == []
    assert repo.search_projects(query) == []
    assert repo.search_experiments(query) == []
    assert repo.search_all(query).is_empty


def test_description_is_searched_and_missing_one_is_harmless(repo, corpus):
    assert [p.id for p in repo.search_projects("kinase")] == [corpus["project"].id]
    assert [p.id for p in repo.search_projects("plasmid")] == [corpus["bare"].id]


def test_experiment_search(repo, corpus):
    assert [e.id for e in repo.search_experiments("blot")] == [corpus["experiment"].id]
    assert repo.search_experiments("nothing like this") == []


def test_like_wildcards_are_literal(repo, corpus):
    assert [n.id for n in repo.search_notes("100%")] == [corpus["wildcard"].id]
    assert [n.id for n in repo.search_notes("e_3")] == [corpus["wildcard"].id]
    assert repo.search_notes("%") == [corpus["wildcard"]]
    assert repo.search_notes("_") == [corpus["wildcard"]]


def test_surrounding_whitespace_is_part_of_the_query(repo, corpus):
    assert repo.search_notes("assay ") == []
    assert repo.search_notes("  assay  ") == []
    assert [n.id for n in repo.search_notes(" Assay")] == [corpus["assay"].id]
    assert [n.id for n in repo.search_notes("of sample")] == [corpus["wildcard"].id]


def test_search_all_runs_every_category(repo, corpus):
    results = repo.search_all("protein")
    assert [n.id for n in results.notes] == [corpus["assay"].id]
    assert [p.id for p in results.projects] == [corpus["project"].id]
    assert results.experiments == []
    assert results.total == 2

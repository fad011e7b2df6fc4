"""
Tests for insert/patch shape validation.

Validation happens when a shape is built, so nothing here touches storage.
"""

import dataclasses

import pytest

import models.attachment
from models import (
    UNSET,
    AttachmentCreate,
    AttachmentUpdate,
    CollaboratorCreate,
    NoteCreate,
    NoteUpdate,
    ProjectCreate,
    ProjectUpdate,
    UserCreate,
)
from utils.errors import ValidationError


class TestInsertShapes:

    @pytest.mark.parametrize("name", ["", "   ", None, 42])
    def test_project_name_required(self, name):
        with pytest.raises(ValidationError) as exc:
            ProjectCreate(name=name, owner_id=1)
        assert exc.value.field == "name"

    @pytest.mark.parametrize("owner_id", [0, -3, "1", True, 1.0])
    def test_reference_ids_must_be_positive_ints(self, owner_id):
        with pytest.raises(ValidationError) as exc:
            ProjectCreate(name="Lab A", owner_id=owner_id)
        assert exc.value.field == "owner_id"

    def test_optional_text_may_be_none(self):
        note = NoteCreate(title="Obs", experiment_id=1, author_id=1, content=None)
        assert note.content is None
        with pytest.raises(ValidationError):
            NoteCreate(title="Obs", experiment_id=1, author_id=1, content=12)

    def test_defaults(self):
        assert UserCreate(username="amy", display_name="Amy").role == "Researcher"
        assert CollaboratorCreate(project_id=1, user_id=2).role == "Viewer"

    def test_shape_cannot_be_edited_after_validation(self):
        shape = ProjectCreate(name="Lab A", owner_id=1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            shape.name = ""
        assert shape.name == "Lab A"

    def test_from_dict_rejects_server_fields(self):
        with pytest.raises(ValidationError) as exc:
            ProjectCreate.from_dict({"name": "Lab A", "owner_id": 1, "id": 9})
        assert exc.value.field == "id"

    def test_from_dict_reports_missing_field(self):
        with pytest.raises(ValidationError) as exc:
            NoteCreate.from_dict({"title": "Obs", "experiment_id": 1})
        assert exc.value.field == "author_id"


class TestAttachmentShapes:

    def test_valid_attachment(self):
        shape = AttachmentCreate(
            file_name="gel.tif", file_size=3, file_type="image/tiff",
            file_data=bytearray(b"abc"), note_id=1,
        )
        assert shape.file_data == b"abc"
        assert isinstance(shape.file_data, bytes)

    def test_size_must_match_payload(self):
        with pytest.raises(ValidationError) as exc:
            AttachmentCreate(
                file_name="gel.tif", file_size=10, file_type="image/tiff",
                file_data=b"abc", note_id=1,
            )
        assert exc.value.field == "file_size"

    @pytest.mark.parametrize("size", [0, -1])
    def test_size_must_be_positive(self, size):
        with pytest.raises(ValidationError):
            AttachmentCreate(
                file_name="empty", file_size=size, file_type="text/plain",
                file_data=b"", note_id=1,
            )

    def test_payload_cap(self, monkeypatch):
        monkeypatch.setattr(models.attachment, "MAX_ATTACHMENT_BYTES", 4)
        with pytest.raises(ValidationError) as exc:
            AttachmentCreate(
                file_name="big.bin", file_size=5, file_type="application/octet-stream",
                file_data=b"12345", note_id=1,
            )
        assert "limit" in exc.value.message

    @pytest.mark.parametrize("mime", ["png", "image/", "", "text plain"])
    def test_file_type_must_be_mime(self, mime):
        with pytest.raises(ValidationError) as exc:
            AttachmentCreate(
                file_name="x", file_size=1, file_type=mime, file_data=b"x", note_id=1,
            )
        assert exc.value.field == "file_type"

    def test_from_base64(self):
        shape = AttachmentCreate.from_base64("hi.txt", "text/plain", "aGk=", note_id=2)
        assert shape.file_data == b"hi"
        assert shape.file_size == 2

    def test_from_base64_rejects_garbage(self):
        with pytest.raises(ValidationError) as exc:
            AttachmentCreate.from_base64("hi.txt", "text/plain", "not base64!", note_id=2)
        assert exc.value.field == "file_data"

    def test_patch_needs_data_and_size_together(self):
        with pytest.raises(ValidationError):
            AttachmentUpdate(file_data=b"abc")
        assert AttachmentUpdate(file_data=b"abc", file_size=3).changes() == {
            "file_data": b"abc",
            "file_size": 3,
        }


class TestPatchShapes:

    def test_changes_holds_only_supplied_fields(self):
        assert ProjectUpdate(name="New").changes() == {"name": "New"}
        assert ProjectUpdate().changes() == {}

    def test_none_is_a_value_not_absence(self):
        patch = ProjectUpdate(description=None)
        assert patch.changes() == {"description": None}
        assert ProjectUpdate().description is UNSET

    def test_supplied_fields_are_validated(self):
        with pytest.raises(ValidationError):
            ProjectUpdate(name="  ")
        with pytest.raises(ValidationError):
            NoteUpdate(experiment_id=0)

    @pytest.mark.parametrize("key", ["id", "created_at", "updated_at", "colour"])
    def test_immutable_and_unknown_keys_rejected(self, key):
        with pytest.raises(ValidationError) as exc:
            NoteUpdate.from_dict({key: 1})
        assert exc.value.field == key

    def test_from_dict(self):
        patch = NoteUpdate.from_dict({"content": "more detail"})
        assert patch.changes() == {"content": "more detail"}

    def test_patch_cannot_be_edited_after_validation(self):
        patch = ProjectUpdate(name="Lab B")
        with pytest.raises(dataclasses.FrozenInstanceError):
            patch.name = "  "
        with pytest.raises(dataclasses.FrozenInstanceError):
            AttachmentUpdate(file_name="a.txt").file_data = b"x"
        assert patch.changes() == {"name": "Lab B"}

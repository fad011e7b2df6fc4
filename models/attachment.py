"""
models/attachment.py
--------------------
Domain model for binary files attached to notes.

Payloads travel base64-encoded outside this core; inside it they are raw
bytes, fully held in memory and capped by MAX_ATTACHMENT_BYTES.
"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from config import MAX_ATTACHMENT_BYTES
from models.fields import (
    UNSET,
    PatchShape,
    Shape,
    require_bytes,
    require_id,
    require_mime,
    require_text,
)
from utils.errors import ValidationError


def _check_payload(file_data: Any, file_size: Any) -> None:
    """The declared size must be positive, match the payload and respect the cap."""
    if isinstance(file_size, bool) or not isinstance(file_size, int) or file_size <= 0:
        raise ValidationError("file_size", "must be a positive integer")
    if file_size > MAX_ATTACHMENT_BYTES:
        raise ValidationError(
            "file_size", f"exceeds the {MAX_ATTACHMENT_BYTES} byte limit"
        )
    if len(file_data) != file_size:
        raise ValidationError(
            "file_size", f"declared {file_size} bytes but payload has {len(file_data)}"
        )


@dataclass(frozen=True)
class Attachment:
    """
    A file stored against a note.

    Attributes:
        id: Store-assigned primary key.
        file_name: Original file name.
        file_size: Payload length in bytes.
        file_type: MIME type (e.g. 'image/png').
        file_data: Raw payload.
        note_id: Note the file belongs to.
        created_at: Timestamp when the record was created.
    """
    id: int
    file_name: str
    file_size: int
    file_type: str
    file_data: bytes = field(repr=False)
    note_id: int
    created_at: datetime

    @property
    def data_base64(self) -> str:
        """Payload encoded for transport."""
        return base64.b64encode(self.file_data).decode("ascii")


@dataclass(frozen=True)
class AttachmentCreate(Shape):
    file_name: str
    file_size: int
    file_type: str
    file_data: bytes = field(repr=False)
    note_id: int

    _rules = {
        "file_name": require_text,
        "file_type": require_mime,
        "file_data": require_bytes,
        "note_id": require_id,
    }

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "file_data", bytes(self.file_data))
        _check_payload(self.file_data, self.file_size)

    @classmethod
    def from_base64(
        cls, file_name: str, file_type: str, data: str, note_id: int
    ) -> "AttachmentCreate":
        """
        Build an insert shape from a base64 transport payload.
        The size is taken from the decoded bytes.
        """
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise ValidationError("file_data", f"is not valid base64: {e}") from e
        return cls(
            file_name=file_name,
            file_size=len(raw),
            file_type=file_type,
            file_data=raw,
            note_id=note_id,
        )


@dataclass(frozen=True)
class AttachmentUpdate(PatchShape):
    """Rename, retype, move or replace the payload of an attachment.
    `file_data` and `file_size` must be supplied together."""
    file_name: Any = UNSET
    file_type: Any = UNSET
    file_data: Any = field(default=UNSET, repr=False)
    file_size: Any = UNSET
    note_id: Any = UNSET

    _rules = {
        "file_name": require_text,
        "file_type": require_mime,
        "file_data": require_bytes,
        "note_id": require_id,
    }

    def __post_init__(self) -> None:
        super().__post_init__()
        if (self.file_data is UNSET) != (self.file_size is UNSET):
            raise ValidationError("file_data", "must be supplied together with file_size")
        if self.file_data is not UNSET:
            object.__setattr__(self, "file_data", bytes(self.file_data))
            _check_payload(self.file_data, self.file_size)

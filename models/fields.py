"""
models/fields.py
----------------
Field validators and the base classes shared by insert and patch shapes.

Shapes are frozen dataclasses that validate themselves in `__post_init__`,
so a malformed shape can never reach a repository, not even by editing a
field after construction.
"""

import re
from dataclasses import MISSING, fields
from typing import Any, Callable

from utils.errors import ValidationError

_MIME_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


class _Unset:
    """Marker for a patch field the caller did not supply."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# ── Validators ────────────────────────────────────────────

def require_text(field: str, value: Any) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "must be a non-empty string")


def optional_text(field: str, value: Any) -> None:
    if value is not None and not isinstance(value, str):
        raise ValidationError(field, "must be a string or null")


def require_id(field: str, value: Any) -> None:
    # bool is an int subclass; True must not pass as id 1
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(field, "must be a positive integer")


def require_mime(field: str, value: Any) -> None:
    require_text(field, value)
    if not _MIME_RE.match(value.strip()):
        raise ValidationError(field, "must be a MIME type such as 'image/png'")


def require_bytes(field: str, value: Any) -> None:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValidationError(field, "must be binary data")


# ── Shapes ────────────────────────────────────────────────

class Shape:
    """
    Base for insert and patch dataclasses.

    Subclasses declare `_rules`, a mapping of field name to validator.
    Fields left as UNSET are not validated.
    """

    _rules: dict[str, Callable[[str, Any], None]] = {}

    def __post_init__(self) -> None:
        for name, check in self._rules.items():
            value = getattr(self, name)
            if value is not UNSET:
                check(name, value)

    @classmethod
    def from_dict(cls, data: dict):
        """
        Build a shape from a plain mapping (e.g. a decoded request body).

        Raises:
            ValidationError: On unknown keys (including `id` and
                `created_at`) or missing required fields.
        """
        known = {f.name: f for f in fields(cls)}
        for key in data:
            if key not in known:
                raise ValidationError(key, "is not an accepted field")
        for name, f in known.items():
            if f.default is MISSING and f.default_factory is MISSING and name not in data:
                raise ValidationError(name, "is required")
        return cls(**data)


class PatchShape(Shape):
    """Partial update: every field defaults to UNSET and only supplied ones are merged."""

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller supplied."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

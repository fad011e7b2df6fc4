"""
models/user.py
--------------
Domain model for researchers using the notebook.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from config import DEFAULT_USER_ROLE
from models.fields import UNSET, PatchShape, Shape, optional_text, require_text


@dataclass(frozen=True)
class User:
    """
    A researcher account.

    Attributes:
        id: Store-assigned primary key.
        username: Unique login handle.
        display_name: Name shown in the UI (e.g. 'Dr. Sarah Chen').
        role: Free-form role label (e.g. 'Principal Investigator').
        created_at: Timestamp when the record was created.
        avatar_url: Optional profile picture location.
    """
    id: int
    username: str
    display_name: str
    role: str
    created_at: datetime
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class UserCreate(Shape):
    username: str
    display_name: str
    role: str = DEFAULT_USER_ROLE
    avatar_url: Optional[str] = None

    _rules = {
        "username": require_text,
        "display_name": require_text,
        "role": require_text,
        "avatar_url": optional_text,
    }


@dataclass(frozen=True)
class UserUpdate(PatchShape):
    username: Any = UNSET
    display_name: Any = UNSET
    role: Any = UNSET
    avatar_url: Any = UNSET

    _rules = UserCreate._rules

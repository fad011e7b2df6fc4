"""
repositories/search.py
----------------------
Query handling shared by both backends so they agree on what matches.

Rules:
    - An empty or whitespace-only query matches nothing (never everything).
    - Any other query is matched verbatim, surrounding whitespace included.
    - Matching is a case-insensitive substring test on two text fields.
    - A missing optional field counts as the empty string.
"""

from dataclasses import dataclass, field
from typing import Optional

from models import Experiment, Note, Project


def normalize_query(query: Optional[str]) -> Optional[str]:
    """
    Return the query exactly as given, or None when it is empty or only
    whitespace. Surrounding spaces are part of the substring to match.
    """
    if query is None or not query.strip():
        return None
    return query


def matches(query: str, *values: Optional[str]) -> bool:
    """In-memory counterpart of `ILIKE '%query%'` over several columns."""
    needle = query.lower()
    return any(needle in (value or "").lower() for value in values)


def like_pattern(query: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class SearchResults:
    """Combined result of the three per-category searches."""
    notes: list[Note] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    experiments: list[Experiment] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.notes) + len(self.projects) + len(self.experiments)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

from __future__ import annotations

from dataclasses import dataclass

"""Reference records owned by external stores.

The pipeline only reads these: the roster is an injected snapshot and project
and sprint lookups go through the task store.
"""

__all__ = [
    "Member",
    "Project",
    "Sprint",
]


@dataclass(frozen=True)
class Member:
    """Team member as exposed by the roster."""
    id: str
    name: str
    nickname: str | None = None


@dataclass(frozen=True)
class Project:
    id: str
    name: str


@dataclass(frozen=True)
class Sprint:
    id: str
    name: str
    project_id: str | None = None

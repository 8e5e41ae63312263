from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from ..models.reference import Member, Project, Sprint
from ..models.resolved_task import ImportMode, ResolvedTask

"""Task store interface and the in-memory implementation.

The commit step talks to persistence only through TaskStore. apply_batch must
be all-or-nothing: either every task of the batch is stored or the store is
left exactly as it was.

InMemoryTaskStore backs the CLI's mock mode (no database reachable) and the
tests.
"""

__all__ = [
    "TaskStoreError",
    "TaskStore",
    "InMemoryTaskStore",
]


class TaskStoreError(Exception):
    pass


class TaskStore(Protocol):
    def find_project(self, name: str) -> Project | None: ...

    def find_sprint(self, name: str) -> Sprint | None: ...

    def list_members(self) -> list[Member]: ...

    def apply_batch(self, tasks: Sequence[ResolvedTask], mode: ImportMode) -> int: ...


class InMemoryTaskStore:
    """Dictionary-backed store; lookups are case-insensitive exact name matches."""

    def __init__(
        self,
        projects: Iterable[Project] = (),
        sprints: Iterable[Sprint] = (),
        members: Iterable[Member] = (),
        tasks: Iterable[ResolvedTask] = (),
    ) -> None:
        self.projects = list(projects)
        self.sprints = list(sprints)
        self.members = list(members)
        self.tasks: list[ResolvedTask] = list(tasks)

    def find_project(self, name: str) -> Project | None:
        key = name.strip().lower()
        return next((p for p in self.projects if p.name.strip().lower() == key), None)

    def find_sprint(self, name: str) -> Sprint | None:
        key = name.strip().lower()
        return next((s for s in self.sprints if s.name.strip().lower() == key), None)

    def list_members(self) -> list[Member]:
        return list(self.members)

    def apply_batch(self, tasks: Sequence[ResolvedTask], mode: ImportMode) -> int:
        batch = list(tasks)
        if mode is ImportMode.OVERWRITE:
            self.tasks = batch
        else:
            self.tasks = [*self.tasks, *batch]
        return len(batch)

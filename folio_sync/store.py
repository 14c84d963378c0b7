"""In-memory entity store holding the current project snapshot."""

from collections.abc import Callable, Iterable
from typing import Any

import structlog

from folio_sync.errors import UnknownProjectError
from folio_sync.models import Entity, Project

logger = structlog.get_logger()

Observer = Callable[[tuple[Project, ...]], None]


class EntityStore:
    """Client-owned snapshot of projects and their children.

    Records are immutable and every write replaces the top-level tuple, so a
    caller holding an older snapshot keeps a consistent view and observers can
    detect changes by identity. Only the optimistic mutator writes here.
    """

    def __init__(self, projects: Iterable[Project] = ()) -> None:
        self._projects: tuple[Project, ...] = self._sorted(projects)
        self._observers: list[Observer] = []

    @staticmethod
    def _sorted(projects: Iterable[Project]) -> tuple[Project, ...]:
        # Explicit positions first, then newest first.
        projects = list(projects)
        placed = sorted((p for p in projects if p.sort_order is not None), key=lambda p: p.sort_order)
        unplaced = sorted((p for p in projects if p.sort_order is None), key=lambda p: p.created_at, reverse=True)
        return (*placed, *unplaced)

    def snapshot(self) -> tuple[Project, ...]:
        """Return the current read-only snapshot."""
        return self._projects

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer called with each new snapshot.

        Returns:
            A function that unregisters the observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def project(self, project_id: str) -> Project | None:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    def find(self, kind: str, entity_id: str) -> tuple[Project, Entity] | None:
        """Locate an entity and its owning project."""
        if kind == "project":
            project = self.project(entity_id)
            return (project, project) if project else None
        for project in self._projects:
            for child in project.children(kind):
                if child.id == entity_id:
                    return project, child
        return None

    def contains(self, kind: str, entity_id: str) -> bool:
        return self.find(kind, entity_id) is not None

    # Write methods below are reserved for the optimistic mutator.

    def _publish(self, projects: Iterable[Project]) -> None:
        self._projects = self._sorted(projects)
        for observer in list(self._observers):
            observer(self._projects)

    def replace_projects(self, projects: Iterable[Project]) -> None:
        projects = list(projects)
        logger.debug("Replacing store contents", count=len(projects))
        self._publish(projects)

    def upsert_project(self, project: Project) -> None:
        if self.project(project.id) is None:
            self._publish([project, *self._projects])
        else:
            self._publish(project if p.id == project.id else p for p in self._projects)

    def drop_project(self, project_id: str) -> Project | None:
        removed = self.project(project_id)
        if removed is not None:
            self._publish(p for p in self._projects if p.id != project_id)
        return removed

    def insert_child(self, kind: str, child: Any) -> None:
        project = self.project(child.project_id)
        if project is None:
            raise UnknownProjectError(f"Project {child.project_id} is not in the store")
        self.upsert_project(project.with_children(kind, (*project.children(kind), child)))

    def replace_child(self, kind: str, child: Any) -> None:
        project = self.project(child.project_id)
        if project is None:
            raise UnknownProjectError(f"Project {child.project_id} is not in the store")
        items = tuple(child if c.id == child.id else c for c in project.children(kind))
        self.upsert_project(project.with_children(kind, items))

    def drop_child(self, kind: str, entity_id: str) -> Any | None:
        located = self.find(kind, entity_id)
        if located is None:
            return None
        project, child = located
        items = tuple(c for c in project.children(kind) if c.id != entity_id)
        self.upsert_project(project.with_children(kind, items))
        return child

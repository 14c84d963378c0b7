"""Optimistic mutations: update the store first, sync to the backend after."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from folio_sync.dispatch import Dispatcher, WriteOp
from folio_sync.models import Entity, Project, apply_fields, check_fields
from folio_sync.scheduler import DebounceScheduler, WriteKey
from folio_sync.store import EntityStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class EntityRef:
    kind: str
    entity_id: str
    project_id: str | None = None


@dataclass(frozen=True)
class Insert:
    """Add a new record and create it remotely right away."""

    entity: Entity


@dataclass(frozen=True)
class Remove:
    """Drop a record and delete it remotely right away."""


@dataclass(frozen=True)
class Patch:
    """Change fields on a record.

    Text edits are debounced. Discrete changes (a select, a toggle, a
    position) set ``immediate`` and skip the scheduler.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    immediate: bool = False
    group: str = "fields"


Mutation = Insert | Remove | Patch


class OptimisticMutator:
    """Sole writer of the entity store.

    Every mutation lands in the store synchronously. Network work is either
    handed to the debounce scheduler or dispatched immediately, and its
    outcome is handled later by the reconciler.
    """

    def __init__(self, store: EntityStore, scheduler: DebounceScheduler, dispatcher: Dispatcher) -> None:
        self.store = store
        self.scheduler = scheduler
        self.dispatcher = dispatcher

    def apply(self, ref: EntityRef, mutation: Mutation) -> None:
        if isinstance(mutation, Insert):
            self._insert(ref, mutation.entity)
        elif isinstance(mutation, Remove):
            self._remove(ref)
        elif isinstance(mutation, Patch):
            self._patch(ref, mutation)
        else:
            raise TypeError(f"Unsupported mutation: {mutation!r}")

    def _insert(self, ref: EntityRef, entity: Entity) -> None:
        logger.info("Inserting entity", kind=ref.kind, entity_id=entity.id, project_id=ref.project_id)
        if ref.kind == "project":
            self.store.upsert_project(entity)
            project_id = None
        else:
            self.store.insert_child(ref.kind, entity)
            project_id = entity.project_id
        self.dispatcher.submit(
            WriteOp(action="create", kind=ref.kind, entity_id=entity.id, project_id=project_id, fields=entity.to_payload())
        )

    def _remove(self, ref: EntityRef) -> None:
        located = self.store.find(ref.kind, ref.entity_id)
        if located is None:
            logger.warning("Remove for unknown entity ignored", kind=ref.kind, entity_id=ref.entity_id)
            return
        project, _ = located
        self._cancel_pending(ref.kind, ref.entity_id, project)
        if ref.kind == "project":
            self.store.drop_project(ref.entity_id)
        else:
            self.store.drop_child(ref.kind, ref.entity_id)
        logger.info("Removed entity", kind=ref.kind, entity_id=ref.entity_id)
        self.dispatcher.submit(
            WriteOp(action="delete", kind=ref.kind, entity_id=ref.entity_id, project_id=project.id)
        )

    def _patch(self, ref: EntityRef, patch: Patch) -> None:
        check_fields(ref.kind, patch.fields)
        located = self.store.find(ref.kind, ref.entity_id)
        if located is None:
            logger.warning("Edit for unknown entity ignored", kind=ref.kind, entity_id=ref.entity_id)
            return
        project, entity = located
        updated = apply_fields(entity, patch.fields)
        if ref.kind == "project":
            self.store.upsert_project(updated)
        else:
            self.store.replace_child(ref.kind, updated)

        key = WriteKey(ref.entity_id, patch.group)
        if patch.immediate:
            # Keep a slower pending write from resending a stale value later.
            pending = self.scheduler.pending(key)
            if pending is not None:
                pending.fields.update({k: v for k, v in patch.fields.items() if k in pending.fields})
            self.dispatcher.submit(
                WriteOp(
                    action="update", kind=ref.kind, entity_id=ref.entity_id, project_id=project.id, fields=dict(patch.fields)
                )
            )
        else:
            self.scheduler.schedule(key, ref.kind, project.id, patch.fields)

    def discard(self, kind: str, entity_id: str) -> None:
        """Remove a record locally, without any network call."""
        located = self.store.find(kind, entity_id)
        if located is None:
            return
        project, _ = located
        self._cancel_pending(kind, entity_id, project)
        if kind == "project":
            self.store.drop_project(entity_id)
        else:
            self.store.drop_child(kind, entity_id)
        logger.info("Discarded entity", kind=kind, entity_id=entity_id)

    def reset(self, projects: Iterable[Project]) -> None:
        """Replace the store contents with authoritative data."""
        self.store.replace_projects(projects)

    def _cancel_pending(self, kind: str, entity_id: str, project: Project) -> None:
        ids = [entity_id]
        if kind == "project":
            ids.extend(child.id for child in (*project.notes, *project.commands, *project.links))
        for target in ids:
            self.scheduler.cancel_entity(target)

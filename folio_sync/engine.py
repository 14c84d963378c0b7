"""Sync engine: the entry points presentation code calls."""

from typing import Any

import structlog

from folio_sync import ids
from folio_sync.backend import Backend
from folio_sync.config import SyncSettings
from folio_sync.dispatch import Dispatcher, WriteOp
from folio_sync.flush import UnloadFlushGuard
from folio_sync.models import CHILD_KINDS, Command, Entity, Link, Note, Project, apply_fields, check_fields
from folio_sync.mutator import EntityRef, Insert, OptimisticMutator, Patch, Remove
from folio_sync.notify import NotificationSink, ToastSink
from folio_sync.reconciler import Reconciler
from folio_sync.scheduler import CallLater, DebounceScheduler, PendingWrite
from folio_sync.store import EntityStore

logger = structlog.get_logger()

_CHILD_TYPES = {"note": Note, "command": Command, "link": Link}


class SyncEngine:
    """Wires the store, mutator, scheduler, reconciler and flush guard together.

    All entry points return as soon as the local snapshot is updated. Network
    failures surface only through the notification sink. Must be used from
    inside a running asyncio loop.
    """

    def __init__(
        self,
        backend: Backend,
        sink: NotificationSink | None = None,
        settings: SyncSettings | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            backend: Remote store the engine mirrors changes to
            sink: Where failures are reported, a ToastSink by default
            settings: Debounce delay and related settings
            call_later: Timer factory for the debounce scheduler (tests)
        """
        self.settings = settings or SyncSettings()
        self.backend = backend
        self.sink = sink if sink is not None else ToastSink(dismiss_after=self.settings.dismiss_s)
        self.store = EntityStore()
        self.scheduler = DebounceScheduler(self._send_debounced, delay=self.settings.debounce_s, call_later=call_later)
        self.reconciler = Reconciler(mutator=None, sink=self.sink)
        self.dispatcher = Dispatcher(backend, self.reconciler)
        self.mutator = OptimisticMutator(self.store, self.scheduler, self.dispatcher)
        self.reconciler.mutator = self.mutator
        self.flush_guard = UnloadFlushGuard(self.scheduler, backend)

    def _send_debounced(self, write: PendingWrite) -> None:
        self.dispatcher.submit(
            WriteOp(
                action="update",
                kind=write.kind,
                entity_id=write.key.entity_id,
                project_id=write.project_id,
                fields=dict(write.fields),
            )
        )

    def snapshot(self) -> tuple[Project, ...]:
        return self.store.snapshot()

    async def load(self) -> tuple[Project, ...]:
        """Fetch projects from the backend and replace the local snapshot."""
        projects = await self.backend.list_projects()
        self.mutator.reset(projects)
        logger.info("Loaded projects", count=len(projects))
        return self.snapshot()

    async def resync(self) -> tuple[Project, ...]:
        """Re-fetch server state, keeping edits that have not been sent yet.

        Pending debounced fields are re-applied on top of the fetched records,
        so a local edit still waiting for its quiet period wins.
        """
        projects = await self.backend.list_projects()
        merged = []
        for project in projects:
            project = self._overlay("project", project)
            for kind in CHILD_KINDS:
                children = tuple(self._overlay(kind, child) for child in project.children(kind))
                project = project.with_children(kind, children)
            merged.append(project)
        self.mutator.reset(merged)
        logger.info("Resynced projects", count=len(merged), pending=len(self.scheduler))
        return self.snapshot()

    def _overlay(self, kind: str, entity: Entity) -> Entity:
        for write in self.scheduler.pending_for(entity.id):
            if write.kind == kind:
                entity = apply_fields(entity, write.fields)
        return entity

    def add_entity(self, kind: str, project_id: str | None = None, **fields: Any) -> str:
        """Create an entity optimistically and return its durable id."""
        check_fields(kind, fields)
        entity_id = ids.allocate()

        if kind == "project":
            if not fields.get("title"):
                raise ValueError("A project needs a title")
            placed = [p.sort_order for p in self.store.snapshot() if p.sort_order is not None]
            if placed and fields.get("sort_order") is None:
                # New projects go on top, ahead of any explicit positions.
                fields = {**fields, "sort_order": min(placed) - 1}
            # New projects start with one empty note and one empty command,
            # created in the same request as the project.
            project = Project(
                id=entity_id,
                **{**fields, "authors": tuple(fields.get("authors") or ())},
                notes=(Note(id=ids.allocate(), project_id=entity_id),),
                commands=(Command(id=ids.allocate(), project_id=entity_id),),
            )
            self.mutator.apply(EntityRef("project", entity_id), Insert(project))
            return entity_id

        if not project_id:
            raise ValueError(f"A project id is required to add a {kind}")
        entity = _CHILD_TYPES[kind](id=entity_id, project_id=project_id, **fields)
        self.mutator.apply(EntityRef(kind, entity_id, project_id), Insert(entity))
        return entity_id

    def edit_entity(self, kind: str, entity_id: str, **fields: Any) -> None:
        """Apply a text edit now and send it after the quiet period."""
        self.mutator.apply(EntityRef(kind, entity_id), Patch(fields))

    def set_field(self, kind: str, entity_id: str, **fields: Any) -> None:
        """Apply a discrete edit (a select or a toggle) and send it at once."""
        self.mutator.apply(EntityRef(kind, entity_id), Patch(fields, immediate=True))

    def toggle_expanded(self, project_id: str) -> bool:
        project = self.store.project(project_id)
        if project is None:
            raise ValueError(f"Unknown project: {project_id}")
        expanded = not project.is_expanded
        self.set_field("project", project_id, is_expanded=expanded)
        return expanded

    def delete_entity(self, kind: str, entity_id: str) -> None:
        """Remove an entity now and delete it remotely at once."""
        self.mutator.apply(EntityRef(kind, entity_id), Remove())

    def reorder_projects(self, ordered_ids: list[str]) -> None:
        """Give each project its index as position and write every position.

        One independent write is issued per project; completion order does
        not matter since each touches a different row.
        """
        for position, project_id in enumerate(ordered_ids):
            if self.store.project(project_id) is None:
                logger.warning("Reorder skipped unknown project", project_id=project_id)
                continue
            self.mutator.apply(
                EntityRef("project", project_id), Patch({"sort_order": position}, immediate=True, group="position")
            )
        logger.info("Reordered projects", count=len(ordered_ids))

    def watch_editor(self, commit: Any) -> Any:
        """Register an active editor's commit callback with the flush guard."""
        return self.flush_guard.watch(commit)

    async def settle(self) -> None:
        """Wait for every write that has been dispatched so far."""
        await self.dispatcher.settle()

    async def close(self) -> None:
        """Send pending edits as regular updates, wait for them, release the backend.

        The loop is still running here, so pending edits go through the
        dispatcher and wait for any create they depend on. Beacons are left
        to the loop-less exit hooks.
        """
        self.flush_guard.commit_editors()
        for write in self.scheduler.drain():
            self._send_debounced(write)
        await self.settle()
        self.flush_guard.uninstall()
        await self.backend.aclose()

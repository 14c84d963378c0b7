"""In-process backend keeping rows in dictionaries."""

import asyncio
from typing import Any

import structlog

from folio_sync.backend import Backend
from folio_sync.errors import BackendError
from folio_sync.models import (
    Project,
    apply_fields,
    command_from_payload,
    link_from_payload,
    note_from_payload,
    project_from_payload,
)

logger = structlog.get_logger()

_CHILD_PARSERS = {
    "note": note_from_payload,
    "command": command_from_payload,
    "link": link_from_payload,
}


class MemoryBackend(Backend):
    """Backend storing projects in memory.

    ``fail_on`` holds ``(action, kind)`` pairs, e.g. ``("create", "note")``,
    that should be rejected. ``latency`` delays every call so tests can
    interleave requests.
    """

    def __init__(self, projects: list[Project] | None = None, latency: float = 0.0) -> None:
        self.projects: dict[str, Project] = {p.id: p for p in projects or []}
        self.latency = latency
        self.fail_on: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str, str | None, dict[str, Any]]] = []
        self.beacons: list[tuple[str, str, dict[str, Any]]] = []

    async def _enter(self, action: str, kind: str, entity_id: str | None, fields: dict[str, Any]) -> None:
        self.calls.append((action, kind, entity_id, dict(fields)))
        if self.latency:
            await asyncio.sleep(self.latency)
        if (action, kind) in self.fail_on:
            logger.debug("Injected failure", action=action, kind=kind, entity_id=entity_id)
            raise BackendError(f"Injected failure for {action} {kind}", status_code=500)

    def _project(self, project_id: str) -> Project:
        if project_id not in self.projects:
            raise BackendError(f"Project {project_id} not found", status_code=404)
        return self.projects[project_id]

    def _locate(self, kind: str, entity_id: str) -> tuple[Project, Any]:
        for project in self.projects.values():
            for child in project.children(kind):
                if child.id == entity_id:
                    return project, child
        raise BackendError(f"{kind.capitalize()} {entity_id} not found", status_code=404)

    async def list_projects(self) -> list[Project]:
        await self._enter("list", "project", None, {})
        return list(self.projects.values())

    async def create(self, kind: str, project_id: str | None, fields: dict[str, Any]) -> dict[str, Any]:
        await self._enter("create", kind, fields.get("id"), fields)
        if kind == "project":
            payload = dict(fields)
            for key in ("notes", "commands", "links"):
                payload[key] = [{**child, "project_id": fields.get("id")} for child in fields.get(key) or []]
            project = project_from_payload(payload)
            self.projects[project.id] = project
            return {**payload, "created_at": project.created_at}

        project = self._project(project_id)
        child = _CHILD_PARSERS[kind]({**fields, "project_id": project_id})
        self.projects[project.id] = project.with_children(kind, (*project.children(kind), child))
        return {**fields, "project_id": project_id}

    async def update(self, kind: str, entity_id: str, project_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        await self._enter("update", kind, entity_id, fields)
        if kind == "project":
            self.projects[entity_id] = apply_fields(self._project(entity_id), fields)
            return {"id": entity_id, **fields}

        project, child = self._locate(kind, entity_id)
        updated = apply_fields(child, fields)
        items = tuple(updated if c.id == entity_id else c for c in project.children(kind))
        self.projects[project.id] = project.with_children(kind, items)
        return {"id": entity_id, **fields}

    async def delete(self, kind: str, entity_id: str, project_id: str) -> None:
        await self._enter("delete", kind, entity_id, {})
        if kind == "project":
            self.projects.pop(entity_id, None)
            return
        project, _ = self._locate(kind, entity_id)
        items = tuple(c for c in project.children(kind) if c.id != entity_id)
        self.projects[project.id] = project.with_children(kind, items)

    def send_beacon(self, kind: str, entity_id: str, project_id: str, fields: dict[str, Any]) -> None:
        self.beacons.append((kind, entity_id, dict(fields)))
        if kind == "project":
            if entity_id in self.projects:
                self.projects[entity_id] = apply_fields(self.projects[entity_id], fields)
            return
        try:
            project, child = self._locate(kind, entity_id)
        except BackendError:
            logger.debug("Beacon for unknown entity ignored", kind=kind, entity_id=entity_id)
            return
        updated = apply_fields(child, fields)
        items = tuple(updated if c.id == entity_id else c for c in project.children(kind))
        self.projects[project.id] = project.with_children(kind, items)

"""CLI for folio-sync."""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, Literal

import structlog
from cyclopts import App, Parameter

from folio_sync.assistant import apply_actions, parse_reply
from folio_sync.backend import Backend
from folio_sync.backends import HttpBackend, MemoryBackend
from folio_sync.config import SyncSettings, get_config
from folio_sync.config_commands import config_app
from folio_sync.engine import SyncEngine
from folio_sync.launch import launch_target, project_launch_uri
from folio_sync.legacy import import_legacy, load_legacy
from folio_sync.models import ENTITY_KINDS
from folio_sync.notify import FanOutSink, LogSink, Severity

logger = structlog.get_logger()

app = App(
    name="folio",
    help="Folio - keep project notes, commands and links in sync with your dashboard",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


class ConsoleSink:
    """Prints notifications to stderr."""

    def notify(self, message: str, severity: Severity = "error") -> None:
        prefix = "!" if severity == "error" else "*"
        print(f"{prefix} {message}", file=sys.stderr)


def get_backend(settings: SyncSettings) -> Backend:
    """Get the configured backend."""
    if settings.backend == "memory":
        return MemoryBackend()
    return HttpBackend(
        base_url=settings.base_url,
        token=settings.token,
        beacon_timeout=settings.beacon_timeout_s,
    )


def run_with_engine(operation: Callable[[SyncEngine], Awaitable[Any]]) -> Any:
    """Build an engine, load projects, run an operation, then flush and close."""
    settings = SyncSettings.from_config(get_config())

    async def runner() -> Any:
        engine = SyncEngine(get_backend(settings), FanOutSink(ConsoleSink(), LogSink()), settings)
        engine.flush_guard.install()
        try:
            await engine.load()
            return await operation(engine)
        finally:
            await engine.close()

    return asyncio.run(runner())


def _parse_value(key: str, raw: str) -> Any:
    if key == "authors":
        return [a.strip() for a in raw.split(",") if a.strip()]
    if key == "is_expanded":
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if key == "sort_order":
        return int(raw)
    return raw


def parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` strings into a field mapping."""
    fields = {}
    for item in assignments:
        if "=" not in item:
            raise ValueError(f"Expected key=value, got '{item}'")
        key, value = item.split("=", 1)
        key = key.strip()
        fields[key] = _parse_value(key, value)
    return fields


def _check_kind(kind: str) -> None:
    if kind not in ENTITY_KINDS:
        raise ValueError(f"Unknown entity kind: '{kind}'. Expected one of: {', '.join(ENTITY_KINDS)}")


@app.command(name="list")
def list_projects() -> None:
    """List projects with their notes, commands and links."""

    async def operation(engine: SyncEngine) -> None:
        projects = engine.snapshot()
        print(f"Found {len(projects)} project(s):\n")
        for project in projects:
            marker = "▾" if project.is_expanded else "▸"
            print(f"{marker} {project.id}: {project.title}")
            if project.description:
                print(f"    {project.description}")
            for note in project.notes:
                print(f"    [{note.tag}] {note.id}: {note.content}")
            for command in project.commands:
                print(f"    $ {command.id}: {command.command}  # {command.description}")
            for link in project.links:
                print(f"    -> {link.id}: {link.name} ({link.link_type})")

    run_with_engine(operation)


@app.command(name="add-project")
def add_project(
    title: str,
    description: str = "",
    authors: str = "",
    github_url: str | None = None,
    local_path: str | None = None,
    path_type: Literal["wsl", "windows", "linux"] = "wsl",
    wsl_distro: str = "Ubuntu",
) -> None:
    """Create a new project."""

    async def operation(engine: SyncEngine) -> str:
        return engine.add_entity(
            "project",
            title=title,
            description=description,
            authors=_parse_value("authors", authors),
            github_url=github_url,
            local_path=local_path,
            path_type=path_type,
            wsl_distro=wsl_distro,
        )

    project_id = run_with_engine(operation)
    print(f"Created project {project_id}: {title}")


@app.command(name="add-note")
def add_note(
    project_id: str,
    content: str = "",
    tag: Literal["Note", "Bug", "Feature", "Idea"] = "Note",
) -> None:
    """Add a note to a project."""

    async def operation(engine: SyncEngine) -> str:
        return engine.add_entity("note", project_id, tag=tag, content=content)

    print(f"Created note {run_with_engine(operation)}")


@app.command(name="add-command")
def add_command(project_id: str, command: str, description: str = "") -> None:
    """Add a shell command snippet to a project."""

    async def operation(engine: SyncEngine) -> str:
        return engine.add_entity("command", project_id, command=command, description=description)

    print(f"Created command {run_with_engine(operation)}")


@app.command(name="add-link")
def add_link(
    project_id: str,
    name: str,
    type: Literal["url", "vscode", "directory"] = "url",
    url: str = "",
    path: str = "",
    path_type: Literal["wsl", "windows", "linux"] = "wsl",
    wsl_distro: str = "Ubuntu",
    description: str = "",
) -> None:
    """Add a quick-launch link to a project."""

    async def operation(engine: SyncEngine) -> str:
        return engine.add_entity(
            "link",
            project_id,
            name=name,
            description=description,
            link_type=type,
            url=url,
            path=path,
            path_type=path_type,
            wsl_distro=wsl_distro,
        )

    print(f"Created link {run_with_engine(operation)}")


@app.command
def edit(kind: str, entity_id: str, *assignments: str) -> None:
    """Edit fields of an entity, e.g. ``folio edit note <id> content="fix tests"``."""
    _check_kind(kind)
    fields = parse_assignments(list(assignments))

    async def operation(engine: SyncEngine) -> None:
        engine.edit_entity(kind, entity_id, **fields)

    run_with_engine(operation)
    print(f"Updated {kind} {entity_id}")


@app.command
def delete(kind: str, *entity_ids: str) -> None:
    """Delete one or more entities."""
    _check_kind(kind)

    async def operation(engine: SyncEngine) -> None:
        for entity_id in entity_ids:
            engine.delete_entity(kind, entity_id)

    run_with_engine(operation)
    print(f"Deleted {len(entity_ids)} {kind}(s)")


@app.command
def reorder(*project_ids: str) -> None:
    """Set the display order of projects."""

    async def operation(engine: SyncEngine) -> None:
        engine.reorder_projects(list(project_ids))

    run_with_engine(operation)
    print(f"Reordered {len(project_ids)} project(s)")


@app.command(name="open")
def open_target(entity_id: str) -> None:
    """Print what a link or a project's local path opens."""

    async def operation(engine: SyncEngine) -> str:
        located = engine.store.find("link", entity_id)
        if located is not None:
            target = launch_target(located[1])
            return f"{target.mode}: {target.value}"
        project = engine.store.project(entity_id)
        if project is None:
            raise ValueError(f"No link or project with id {entity_id}")
        return f"open: {project_launch_uri(project)}"

    print(run_with_engine(operation))


@app.command
def apply(reply_file: Path) -> None:
    """Apply the actions in a saved assistant reply."""
    reply = parse_reply(reply_file.read_text())

    async def operation(engine: SyncEngine) -> int:
        return apply_actions(engine, reply.actions)

    applied = run_with_engine(operation)
    print(reply.response)
    print(f"Applied {applied} action(s)")


@app.command(name="import-legacy")
def import_legacy_command(path: Path) -> None:
    """Import projects from an old local-storage export."""
    data = load_legacy(path)

    async def operation(engine: SyncEngine) -> list[str]:
        return import_legacy(engine, data)

    created = run_with_engine(operation)
    print(f"Imported {len(created)} project(s)")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()

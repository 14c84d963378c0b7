"""Data models for folio-sync."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Literal

from folio_sync.errors import MalformedResponseError

EntityKind = Literal["project", "note", "command", "link"]
NoteTag = Literal["Note", "Bug", "Feature", "Idea"]
PathType = Literal["wsl", "windows", "linux"]
LinkType = Literal["url", "vscode", "directory"]

ENTITY_KINDS: tuple[str, ...] = ("project", "note", "command", "link")
CHILD_KINDS: tuple[str, ...] = ("note", "command", "link")
NOTE_TAGS: tuple[str, ...] = ("Note", "Bug", "Feature", "Idea")
PATH_TYPES: tuple[str, ...] = ("wsl", "windows", "linux")
LINK_TYPES: tuple[str, ...] = ("url", "vscode", "directory")

# Fields a client may change after creation, per kind.
MUTABLE_FIELDS: dict[str, frozenset[str]] = {
    "project": frozenset(
        {
            "title",
            "description",
            "authors",
            "github_url",
            "local_path",
            "path_type",
            "wsl_distro",
            "is_expanded",
            "sort_order",
        }
    ),
    "note": frozenset({"tag", "content"}),
    "command": frozenset({"command", "description"}),
    "link": frozenset({"name", "description", "link_type", "url", "path", "path_type", "wsl_distro"}),
}

_ENUM_FIELDS: dict[str, tuple[str, ...]] = {
    "tag": NOTE_TAGS,
    "path_type": PATH_TYPES,
    "link_type": LINK_TYPES,
}


def now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def check_fields(kind: str, values: dict[str, Any]) -> None:
    """Validate a partial field mapping for an entity kind.

    Raises:
        ValueError: If a field is not mutable for the kind or an enum value is unknown
    """
    if kind not in MUTABLE_FIELDS:
        raise ValueError(f"Unknown entity kind: '{kind}'")
    unknown = set(values) - MUTABLE_FIELDS[kind]
    if unknown:
        raise ValueError(f"Unsupported field(s) for {kind}: {', '.join(sorted(unknown))}")
    for name, allowed in _ENUM_FIELDS.items():
        if name in values and values[name] not in allowed:
            raise ValueError(f"Invalid {name}: '{values[name]}'. Expected one of: {', '.join(allowed)}")


@dataclass(frozen=True)
class Note:
    """A tagged free-text note attached to a project."""

    id: str
    project_id: str
    tag: NoteTag = "Note"
    content: str = ""
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "tag": self.tag, "content": self.content}


@dataclass(frozen=True)
class Command:
    """A shell command snippet attached to a project."""

    id: str
    project_id: str
    command: str = ""
    description: str = ""
    created_at: str = field(default_factory=now_iso)

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "command": self.command, "description": self.description}


@dataclass(frozen=True)
class Link:
    """A quick-launch link: a web URL, an editor launch, or a path to copy."""

    id: str
    project_id: str
    name: str = "New Link"
    description: str = ""
    link_type: LinkType = "url"
    url: str = ""
    path: str = ""
    path_type: PathType = "wsl"
    wsl_distro: str = "Ubuntu"

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "link_type": self.link_type,
            "url": self.url,
            "path": self.path,
            "path_type": self.path_type,
            "wsl_distro": self.wsl_distro,
        }


@dataclass(frozen=True)
class Project:
    """A tracked project and its child collections."""

    id: str
    title: str
    description: str = ""
    authors: tuple[str, ...] = ()
    github_url: str | None = None
    local_path: str | None = None
    path_type: PathType = "wsl"
    wsl_distro: str = "Ubuntu"
    is_expanded: bool = False
    sort_order: int | None = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    notes: tuple[Note, ...] = ()
    commands: tuple[Command, ...] = ()
    links: tuple[Link, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        """Return the creation body for the remote store, seeded children included."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "authors": list(self.authors),
            "github_url": self.github_url,
            "local_path": self.local_path,
            "path_type": self.path_type,
            "wsl_distro": self.wsl_distro,
            **({"sort_order": self.sort_order} if self.sort_order is not None else {}),
            "notes": [note.to_payload() for note in self.notes],
            "commands": [command.to_payload() for command in self.commands],
            "links": [link.to_payload() for link in self.links],
        }

    def children(self, kind: str) -> tuple[Any, ...]:
        """Return the child collection for a kind."""
        return getattr(self, _COLLECTIONS[kind])

    def with_children(self, kind: str, items: tuple[Any, ...]) -> "Project":
        """Return a copy with one child collection replaced."""
        return replace(self, **{_COLLECTIONS[kind]: items})


_COLLECTIONS = {"note": "notes", "command": "commands", "link": "links"}

Entity = Project | Note | Command | Link


def apply_fields(entity: Entity, values: dict[str, Any]) -> Entity:
    """Return a copy of an entity with fields replaced and its timestamp bumped."""
    if "authors" in values:
        values = {**values, "authors": tuple(values["authors"] or ())}
    if any(f.name == "updated_at" for f in fields(entity)):
        values = {**values, "updated_at": now_iso()}
    return replace(entity, **values)


def _require(payload: Any, key: str, kind: str) -> Any:
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Expected an object for {kind}, got {type(payload).__name__}")
    if key not in payload or payload[key] is None:
        raise MalformedResponseError(f"Missing '{key}' in {kind} payload")
    return payload[key]


def _text(payload: dict[str, Any], key: str, default: str = "") -> str:
    value = payload.get(key)
    return default if value is None else str(value)


def note_from_payload(payload: dict[str, Any]) -> Note:
    """Parse a note row returned by the remote store."""
    note_id = str(_require(payload, "id", "note"))
    tag = payload.get("tag") or "Note"
    if tag not in NOTE_TAGS:
        raise MalformedResponseError(f"Unknown note tag: '{tag}'")
    return Note(
        id=note_id,
        project_id=str(_require(payload, "project_id", "note")),
        tag=tag,
        content=_text(payload, "content"),
        created_at=_text(payload, "created_at") or now_iso(),
        updated_at=_text(payload, "updated_at") or now_iso(),
    )


def command_from_payload(payload: dict[str, Any]) -> Command:
    """Parse a command row returned by the remote store."""
    return Command(
        id=str(_require(payload, "id", "command")),
        project_id=str(_require(payload, "project_id", "command")),
        command=_text(payload, "command"),
        description=_text(payload, "description"),
        created_at=_text(payload, "created_at") or now_iso(),
    )


def link_from_payload(payload: dict[str, Any]) -> Link:
    """Parse a link row returned by the remote store."""
    link_id = str(_require(payload, "id", "link"))
    link_type = payload.get("link_type") or "url"
    if link_type not in LINK_TYPES:
        raise MalformedResponseError(f"Unknown link type: '{link_type}'")
    return Link(
        id=link_id,
        project_id=str(_require(payload, "project_id", "link")),
        name=_text(payload, "name", "New Link"),
        description=_text(payload, "description"),
        link_type=link_type,
        url=_text(payload, "url"),
        path=_text(payload, "path"),
        path_type=payload.get("path_type") or "wsl",
        wsl_distro=_text(payload, "wsl_distro", "Ubuntu"),
    )


def project_from_payload(payload: dict[str, Any]) -> Project:
    """Parse a project row, including nested notes, commands and links."""
    project_id = str(_require(payload, "id", "project"))
    title = str(_require(payload, "title", "project"))
    authors = payload.get("authors") or []
    if not isinstance(authors, list):
        raise MalformedResponseError("Project 'authors' must be a list")
    for key in ("notes", "commands", "links"):
        if not isinstance(payload.get(key) or [], list):
            raise MalformedResponseError(f"Project '{key}' must be a list")
    sort_order = payload.get("sort_order")
    return Project(
        id=project_id,
        title=title,
        description=_text(payload, "description"),
        authors=tuple(str(a) for a in authors),
        github_url=payload.get("github_url"),
        local_path=payload.get("local_path"),
        path_type=payload.get("path_type") or "wsl",
        wsl_distro=_text(payload, "wsl_distro", "Ubuntu"),
        is_expanded=bool(payload.get("is_expanded", False)),
        sort_order=int(sort_order) if sort_order is not None else None,
        created_at=_text(payload, "created_at") or now_iso(),
        updated_at=_text(payload, "updated_at") or now_iso(),
        notes=tuple(note_from_payload(n) for n in payload.get("notes") or []),
        commands=tuple(command_from_payload(c) for c in payload.get("commands") or []),
        links=tuple(link_from_payload(link) for link in payload.get("links") or []),
    )

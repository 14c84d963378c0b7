"""Import data exported from the old browser-local version of the dashboard."""

import json
from pathlib import Path
from typing import Any

import structlog

from folio_sync.engine import SyncEngine
from folio_sync.models import NOTE_TAGS, PATH_TYPES

logger = structlog.get_logger()


def load_legacy(path: Path) -> dict[str, Any]:
    """Read a legacy export file."""
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to read legacy data from {path}: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("projects", []), list):
        raise ValueError(f"{path} does not look like a legacy export")
    return data


def import_legacy(engine: SyncEngine, data: dict[str, Any]) -> list[str]:
    """Recreate legacy projects, notes and commands through the engine.

    Returns:
        Ids of the created projects
    """
    created = []
    for item in data.get("projects") or []:
        if not item.get("title"):
            logger.warning("Skipping legacy project without a title")
            continue
        path_type = item.get("pathType") if item.get("pathType") in PATH_TYPES else "wsl"
        project_id = engine.add_entity(
            "project",
            title=item["title"],
            description=item.get("description") or "",
            authors=item.get("authors") or [],
            github_url=item.get("githubUrl") or None,
            local_path=item.get("localPath") or None,
            path_type=path_type,
            wsl_distro=item.get("wslDistro") or "Ubuntu",
        )
        for note in item.get("notes") or []:
            tag = note.get("tag") if note.get("tag") in NOTE_TAGS else "Note"
            engine.add_entity("note", project_id, tag=tag, content=note.get("content") or "")
        for command in item.get("commands") or []:
            engine.add_entity(
                "command",
                project_id,
                command=command.get("command") or "",
                description=command.get("description") or "",
            )
        created.append(project_id)

    logger.info("Imported legacy projects", count=len(created))
    return created

"""Apply actions proposed by the chat assistant through the sync engine.

The assistant service translates natural language into a JSON reply of the
form ``{"actions": [...], "response": "..."}``. This module only parses that
reply and replays the actions as ordinary optimistic mutations.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from folio_sync.engine import SyncEngine
from folio_sync.models import NOTE_TAGS, Project

logger = structlog.get_logger()

FALLBACK_RESPONSE = "I had trouble understanding that. Could you rephrase it?"

ACTION_TYPES = (
    "add_project",
    "update_project",
    "delete_project",
    "add_note",
    "add_command",
    "search",
    "summarize",
)

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class AssistantAction:
    type: str
    project_id: str | None = None
    project_name: str | None = None
    title: str | None = None
    description: str | None = None
    github_url: str | None = None
    local_path: str | None = None
    tag: str | None = None
    content: str | None = None
    command: str | None = None
    query: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssistantAction":
        known = {name: data.get(name) for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)


@dataclass
class AssistantReply:
    response: str
    actions: list[AssistantAction] = field(default_factory=list)


def parse_reply(text: str) -> AssistantReply:
    """Extract the JSON block from an assistant reply.

    Anything that cannot be parsed yields the fallback message and no actions.
    """
    match = _JSON_BLOCK.search(text or "")
    if not match:
        logger.warning("No JSON found in assistant reply")
        return AssistantReply(response=FALLBACK_RESPONSE)
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("Assistant reply is not valid JSON", error=str(e))
        return AssistantReply(response=FALLBACK_RESPONSE)
    if not isinstance(data, dict):
        return AssistantReply(response=FALLBACK_RESPONSE)

    actions = []
    for item in data.get("actions") or []:
        if not isinstance(item, dict) or item.get("type") not in ACTION_TYPES:
            logger.warning("Skipping unknown assistant action", action=item)
            continue
        actions.append(AssistantAction.from_dict(item))
    return AssistantReply(response=str(data.get("response") or ""), actions=actions)


def find_project(projects: tuple[Project, ...], action: AssistantAction) -> Project | None:
    """Match a project by id, or by a loose case-insensitive name match."""
    if action.project_id:
        return next((p for p in projects if p.id == action.project_id), None)
    if action.project_name:
        search = action.project_name.lower()
        for project in projects:
            title = project.title.lower()
            if search in title or title in search:
                return project
    return None


def apply_actions(engine: SyncEngine, actions: list[AssistantAction]) -> int:
    """Replay assistant actions on the engine.

    Returns:
        Number of actions that changed the snapshot
    """
    applied = 0
    for action in actions:
        if action.type in ("search", "summarize"):
            continue

        if action.type == "add_project":
            if not action.title:
                logger.warning("add_project without a title skipped")
                continue
            engine.add_entity(
                "project",
                title=action.title,
                description=action.description or "",
                github_url=action.github_url or None,
                local_path=action.local_path or None,
            )
            applied += 1
            continue

        project = find_project(engine.snapshot(), action)
        if project is None:
            logger.warning("No project matches assistant action", type=action.type, project_name=action.project_name)
            continue

        if action.type == "update_project":
            updates = {
                name: value
                for name in ("title", "description", "github_url", "local_path")
                if (value := getattr(action, name))
            }
            if not updates:
                continue
            engine.set_field("project", project.id, **updates)
        elif action.type == "delete_project":
            engine.delete_entity("project", project.id)
        elif action.type == "add_note":
            tag = action.tag if action.tag in NOTE_TAGS else "Note"
            engine.add_entity("note", project.id, tag=tag, content=action.content or "")
        elif action.type == "add_command":
            engine.add_entity("command", project.id, command=action.command or "", description=action.description or "")
        applied += 1

    logger.info("Applied assistant actions", applied=applied, total=len(actions))
    return applied

"""Tests for data models."""

import pytest

from folio_sync.errors import MalformedResponseError
from folio_sync.models import Command, Note, Project, apply_fields, check_fields, project_from_payload


def test_note_defaults() -> None:
    """Test note creation with defaults."""
    note = Note(id="n-1", project_id="p-1")
    assert note.tag == "Note"
    assert note.content == ""
    assert note.created_at


def test_apply_fields_returns_new_record() -> None:
    """Test that applying fields leaves the original untouched and bumps updated_at."""
    note = Note(id="n-1", project_id="p-1", content="a", updated_at="2020-01-01T00:00:00+00:00")
    updated = apply_fields(note, {"content": "b"})

    assert updated is not note
    assert note.content == "a"
    assert updated.content == "b"
    assert updated.updated_at != note.updated_at


def test_apply_fields_on_command_has_no_updated_at() -> None:
    """Test that commands are overwritten in place without a timestamp."""
    command = Command(id="c-1", project_id="p-1")
    updated = apply_fields(command, {"command": "ls"})
    assert updated.command == "ls"
    assert not hasattr(updated, "updated_at")


def test_check_fields_rejects_unknown_field() -> None:
    """Test that immutable or unknown fields are refused."""
    with pytest.raises(ValueError, match="Unsupported field"):
        check_fields("note", {"project_id": "p-2"})


def test_check_fields_rejects_bad_tag() -> None:
    """Test that note tags come from the fixed set."""
    with pytest.raises(ValueError, match="Invalid tag"):
        check_fields("note", {"tag": "Chore"})


def test_project_payload_includes_seeded_children() -> None:
    """Test that a project's creation body carries its children."""
    project = Project(
        id="p-1",
        title="Demo",
        authors=("ada",),
        notes=(Note(id="n-1", project_id="p-1"),),
    )
    payload = project.to_payload()

    assert payload["authors"] == ["ada"]
    assert payload["notes"] == [{"id": "n-1", "tag": "Note", "content": ""}]
    assert payload["commands"] == []


def test_project_from_payload_parses_relations() -> None:
    """Test parsing a project row with nested notes and links."""
    project = project_from_payload(
        {
            "id": "p-1",
            "title": "Demo",
            "description": None,
            "authors": ["ada"],
            "is_expanded": True,
            "notes": [{"id": "n-1", "project_id": "p-1", "tag": "Bug", "content": None}],
            "commands": [],
            "links": [{"id": "l-1", "project_id": "p-1", "link_type": "vscode", "path": "/src"}],
        }
    )

    assert project.description == ""
    assert project.is_expanded is True
    assert project.notes[0].tag == "Bug"
    assert project.notes[0].content == ""
    assert project.links[0].link_type == "vscode"


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "no id"},
        {"id": "p-1"},
        {"id": "p-1", "title": "x", "authors": "ada"},
        {"id": "p-1", "title": "x", "notes": [{"id": "n-1", "project_id": "p-1", "tag": "Chore"}]},
        ["not", "an", "object"],
    ],
)
def test_project_from_payload_rejects_malformed(payload: object) -> None:
    """Test that malformed rows raise MalformedResponseError."""
    with pytest.raises(MalformedResponseError):
        project_from_payload(payload)

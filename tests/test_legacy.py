"""Tests for importing legacy browser exports."""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from folio_sync.backends.memory import MemoryBackend
from folio_sync.engine import SyncEngine
from folio_sync.legacy import import_legacy, load_legacy

LEGACY = {
    "projects": [
        {
            "title": "Old Blog",
            "description": "Static site",
            "authors": ["me"],
            "githubUrl": "https://github.com/me/blog",
            "localPath": "C:\\blog",
            "pathType": "windows",
            "notes": [{"tag": "Idea", "content": "dark mode"}, {"tag": "Whatever", "content": "misc"}],
            "commands": [{"command": "hugo serve", "description": "preview"}],
        },
        {"description": "no title, skipped"},
    ]
}


def test_load_legacy(tmp_path: Path) -> None:
    """Test reading a legacy export file."""
    path = tmp_path / "export.json"
    path.write_text(json.dumps(LEGACY))

    assert load_legacy(path) == LEGACY


def test_load_legacy_rejects_bad_files(tmp_path: Path) -> None:
    """Test that missing or malformed exports raise ValueError."""
    with pytest.raises(ValueError, match="Failed to read"):
        load_legacy(tmp_path / "missing.json")

    path = tmp_path / "bad.json"
    path.write_text('{"projects": {}}')
    with pytest.raises(ValueError, match="does not look like"):
        load_legacy(path)


def test_import_legacy(make_engine: Callable[[], SyncEngine], backend: MemoryBackend) -> None:
    """Test that legacy projects are recreated with their notes and commands."""

    async def scenario() -> tuple[list[str], SyncEngine]:
        engine = make_engine()
        await engine.load()
        created = import_legacy(engine, LEGACY)
        await engine.settle()
        return created, engine

    created, engine = asyncio.run(scenario())

    assert len(created) == 1
    blog = backend.projects[created[0]]
    assert blog.github_url == "https://github.com/me/blog"
    assert blog.local_path == "C:\\blog"
    assert blog.path_type == "windows"
    assert blog.authors == ("me",)
    # The seeded empty note and command come first.
    assert [n.tag for n in blog.notes] == ["Note", "Idea", "Note"]
    assert blog.notes[1].content == "dark mode"
    assert [c.command for c in blog.commands] == ["", "hugo serve"]
    assert engine.store.project(created[0]) is not None

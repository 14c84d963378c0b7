"""Tests for the entity store."""

import pytest

from folio_sync.errors import UnknownProjectError
from folio_sync.models import Note, Project
from folio_sync.store import EntityStore


def test_writes_replace_snapshot_identity(project: Project) -> None:
    """Test that each write produces a new snapshot tuple."""
    store = EntityStore([project])
    before = store.snapshot()

    store.insert_child("note", Note(id="n-2", project_id="p-1"))

    after = store.snapshot()
    assert after is not before
    assert [n.id for n in after[0].notes] == ["n-1", "n-2"]
    assert [n.id for n in before[0].notes] == ["n-1"]


def test_insert_child_requires_known_project() -> None:
    """Test that a child cannot reference a missing project."""
    store = EntityStore()
    with pytest.raises(UnknownProjectError):
        store.insert_child("note", Note(id="n-1", project_id="missing"))


def test_find_and_drop_child(project: Project) -> None:
    """Test locating and removing a child entity."""
    store = EntityStore([project])

    located = store.find("command", "c-1")
    assert located is not None
    assert located[0].id == "p-1"

    removed = store.drop_child("command", "c-1")
    assert removed.id == "c-1"
    assert not store.contains("command", "c-1")
    assert store.drop_child("command", "c-1") is None


def test_ordering_by_position_then_newest() -> None:
    """Test that positioned projects come first, then newest first."""
    old = Project(id="old", title="Old", created_at="2024-01-01T00:00:00+00:00")
    new = Project(id="new", title="New", created_at="2024-06-01T00:00:00+00:00")
    placed = Project(id="placed", title="Placed", sort_order=0, created_at="2023-01-01T00:00:00+00:00")

    store = EntityStore([old, new, placed])

    assert [p.id for p in store.snapshot()] == ["placed", "new", "old"]


def test_observers_receive_snapshots(project: Project) -> None:
    """Test that observers see every write and can unsubscribe."""
    store = EntityStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.upsert_project(project)
    unsubscribe()
    store.drop_project(project.id)

    assert len(seen) == 1
    assert seen[0][0].id == "p-1"

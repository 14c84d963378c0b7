"""Shared fixtures for folio-sync tests."""

from collections.abc import Callable

import pytest

from folio_sync.backends.memory import MemoryBackend
from folio_sync.config import SyncSettings
from folio_sync.engine import SyncEngine
from folio_sync.models import Command, Note, Project
from folio_sync.notify import ToastSink


class ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Deterministic stand-in for ``loop.call_later``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in deadline order."""
        target = self.now + seconds
        while True:
            due = sorted((h for h in self.active if h.when <= target + 1e-9), key=lambda h: h.when)
            if not due:
                break
            handle = due[0]
            handle.cancelled = True
            self.now = handle.when
            handle.callback()
        self.now = target


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sink() -> ToastSink:
    return ToastSink(dismiss_after=5.0, call_later=ManualClock().call_later)


@pytest.fixture
def project() -> Project:
    return Project(
        id="p-1",
        title="Fitness Tracker AI",
        description="Workout logger",
        created_at="2024-01-01T00:00:00+00:00",
        notes=(Note(id="n-1", project_id="p-1", content="first"),),
        commands=(Command(id="c-1", project_id="p-1", command="make test"),),
    )


@pytest.fixture
def backend(project: Project) -> MemoryBackend:
    return MemoryBackend(projects=[project])


@pytest.fixture
def make_engine(backend: MemoryBackend, sink: ToastSink, clock: ManualClock) -> Callable[[], SyncEngine]:
    """Build an engine on the manual clock with a 500 ms quiet period."""

    def factory() -> SyncEngine:
        return SyncEngine(backend, sink, SyncSettings(debounce_ms=500), call_later=clock.call_later)

    return factory

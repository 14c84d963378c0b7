"""Flushes pending debounced writes when the process is going away."""

import atexit
import signal
from collections.abc import Callable
from types import FrameType

import structlog

from folio_sync.backend import Backend
from folio_sync.errors import FolioError
from folio_sync.scheduler import DebounceScheduler

logger = structlog.get_logger()


class UnloadFlushGuard:
    """Sends still-pending edits through the backend's one-way beacon.

    Editors register a commit callback with ``watch``; teardown calls those
    first so that a half-finished edit lands in the scheduler before it is
    drained. Deleting an entity cancels its pending writes, so deleted
    entities are never beaconed.
    """

    def __init__(self, scheduler: DebounceScheduler, backend: Backend) -> None:
        self.scheduler = scheduler
        self.backend = backend
        self._commits: list[Callable[[], None]] = []
        self._installed = False
        self._previous_sigterm: object = None

    def watch(self, commit: Callable[[], None]) -> Callable[[], None]:
        """Register a callback that pushes an editor's latest value.

        Returns:
            A function that unregisters the callback
        """
        self._commits.append(commit)

        def unwatch() -> None:
            if commit in self._commits:
                self._commits.remove(commit)

        return unwatch

    def commit_editors(self) -> None:
        """Push every watched editor's latest value and forget the editors.

        A failing commit is logged and does not stop the others.
        """
        commits, self._commits = self._commits, []
        for commit in commits:
            try:
                commit()
            except Exception as e:
                logger.warning("Editor commit failed during flush", error=str(e), error_type=type(e).__name__)

    def teardown(self) -> int:
        """Commit active editors, drain the scheduler and beacon the rest.

        Returns:
            Number of beacons attempted
        """
        self.commit_editors()
        writes = self.scheduler.drain()
        for write in writes:
            try:
                self.backend.send_beacon(write.kind, write.key.entity_id, write.project_id, dict(write.fields))
            except FolioError as e:
                logger.warning("Beacon failed", kind=write.kind, entity_id=write.key.entity_id, error=str(e))
        if writes:
            logger.info("Flushed pending writes on teardown", count=len(writes))
        return len(writes)

    def install(self) -> None:
        """Run teardown at interpreter exit and on SIGTERM."""
        if self._installed:
            return
        atexit.register(self.teardown)
        try:
            self._previous_sigterm = signal.signal(signal.SIGTERM, self._on_sigterm)
        except ValueError:
            # Signals can only be installed from the main thread.
            logger.debug("SIGTERM handler not installed outside the main thread")
        self._installed = True

    def uninstall(self) -> None:
        if not self._installed:
            return
        atexit.unregister(self.teardown)
        if self._previous_sigterm is not None:
            signal.signal(signal.SIGTERM, self._previous_sigterm)
            self._previous_sigterm = None
        self._installed = False

    def _on_sigterm(self, signum: int, frame: FrameType | None) -> None:
        self.teardown()
        previous = self._previous_sigterm
        if callable(previous):
            previous(signum, frame)
        else:
            raise SystemExit(128 + signum)

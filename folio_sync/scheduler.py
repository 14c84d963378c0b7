"""Per-key debounce scheduler that coalesces rapid field edits."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()

DEFAULT_DELAY = 0.5


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


CallLater = Callable[[float, Callable[[], None]], TimerHandle]


@dataclass(frozen=True)
class WriteKey:
    """Identifies one coalescing slot: an entity and a group of its fields."""

    entity_id: str
    group: str = "fields"


@dataclass
class PendingWrite:
    """Fields waiting for a quiet period before they are sent."""

    key: WriteKey
    kind: str
    project_id: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Slot:
    write: PendingWrite
    handle: TimerHandle


class _Untimed:
    def cancel(self) -> None:
        pass


_UNTIMED = _Untimed()


def _loop_call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class DebounceScheduler:
    """Coalesces edits per key and dispatches them after a quiet period.

    The slot map is the only owner of timer handles. A slot is evicted when its
    timer fires or when it is cancelled, so at most one timer exists per key.
    """

    def __init__(
        self,
        dispatch: Callable[[PendingWrite], None],
        delay: float = DEFAULT_DELAY,
        call_later: CallLater | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            dispatch: Called with the merged write once a key's timer fires
            delay: Quiet period in seconds
            call_later: Timer factory; defaults to the running asyncio loop
        """
        if delay < 0:
            raise ValueError("Debounce delay must not be negative")
        self._dispatch = dispatch
        self.delay = delay
        self._call_later = call_later or _loop_call_later
        self._slots: dict[WriteKey, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def schedule(self, key: WriteKey, kind: str, project_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into the pending write for a key and restart its timer.

        Without a running event loop the merged write is kept untimed until
        ``drain()`` picks it up.
        """
        slot = self._slots.get(key)
        if slot is not None:
            write = slot.write
            write.fields.update(fields)
        else:
            write = PendingWrite(key=key, kind=kind, project_id=project_id, fields=dict(fields))

        try:
            handle = self._call_later(self.delay, lambda: self._fire(key))
        except RuntimeError:
            logger.debug("No running loop, keeping write for drain", entity_id=key.entity_id, group=key.group)
            handle = _UNTIMED
        if slot is not None:
            slot.handle.cancel()
        self._slots[key] = _Slot(write=write, handle=handle)
        logger.debug("Scheduled debounced write", entity_id=key.entity_id, group=key.group, fields=list(write.fields))

    def _fire(self, key: WriteKey) -> None:
        slot = self._slots.pop(key, None)
        if slot is None:
            return
        logger.debug("Quiet period elapsed", entity_id=key.entity_id, group=key.group)
        self._dispatch(slot.write)

    def pending(self, key: WriteKey) -> PendingWrite | None:
        slot = self._slots.get(key)
        return slot.write if slot else None

    def pending_for(self, entity_id: str) -> list[PendingWrite]:
        return [slot.write for key, slot in self._slots.items() if key.entity_id == entity_id]

    def cancel(self, key: WriteKey) -> PendingWrite | None:
        """Drop the pending write for a key without sending it."""
        slot = self._slots.pop(key, None)
        if slot is None:
            return None
        slot.handle.cancel()
        logger.debug("Cancelled debounced write", entity_id=key.entity_id, group=key.group)
        return slot.write

    def cancel_entity(self, entity_id: str) -> list[PendingWrite]:
        """Drop every pending write for an entity, across all groups."""
        keys = [key for key in self._slots if key.entity_id == entity_id]
        return [write for key in keys if (write := self.cancel(key)) is not None]

    def drain(self) -> list[PendingWrite]:
        """Cancel every timer and hand back all pending writes."""
        writes = []
        for slot in self._slots.values():
            slot.handle.cancel()
            writes.append(slot.write)
        self._slots.clear()
        if writes:
            logger.info("Drained pending writes", count=len(writes))
        return writes

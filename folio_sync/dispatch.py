"""Fire-and-forget dispatch of writes to the backend."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import httpx
import structlog

from folio_sync.backend import Backend
from folio_sync.errors import FolioError

if TYPE_CHECKING:
    from folio_sync.reconciler import Reconciler

logger = structlog.get_logger()

Action = Literal["create", "update", "delete"]


@dataclass(frozen=True)
class WriteOp:
    """A single remote write, self-contained enough to log or replay."""

    action: Action
    kind: str
    entity_id: str
    project_id: str | None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Outcome:
    ok: bool
    error: str | None = None
    payload: Any = None


class Dispatcher:
    """Runs backend writes as tasks and reports outcomes to the reconciler.

    Callers never get a result back. Completion flows to ``on_result`` only,
    and the dispatcher holds each task until it finishes. A write that
    touches an entity, or a child of a project, whose create is still in
    flight waits for that create to finish first.
    """

    def __init__(self, backend: Backend, reconciler: "Reconciler") -> None:
        self.backend = backend
        self.reconciler = reconciler
        self._tasks: set[asyncio.Task[None]] = set()
        self._creates: dict[str, asyncio.Task[None]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, op: WriteOp) -> None:
        """Start a write without waiting for it."""
        gates = [
            task
            for key in {op.entity_id, op.project_id}
            if key and (task := self._creates.get(key)) is not None and not task.done()
        ]
        logger.debug(
            "Dispatching write", action=op.action, kind=op.kind, entity_id=op.entity_id, waits_on=len(gates)
        )
        task = asyncio.get_running_loop().create_task(self._run(op, gates))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if op.action == "create":
            self._creates[op.entity_id] = task
            task.add_done_callback(lambda t: self._forget_create(op.entity_id, t))

    def _forget_create(self, entity_id: str, task: asyncio.Task[None]) -> None:
        if self._creates.get(entity_id) is task:
            del self._creates[entity_id]

    def _call(self, op: WriteOp) -> Awaitable[Any]:
        if op.action == "create":
            return self.backend.create(op.kind, op.project_id, op.fields)
        if op.action == "update":
            return self.backend.update(op.kind, op.entity_id, op.project_id, op.fields)
        if op.action == "delete":
            return self.backend.delete(op.kind, op.entity_id, op.project_id)
        raise ValueError(f"Unknown write action: '{op.action}'")

    async def _run(self, op: WriteOp, gates: list[asyncio.Task[None]]) -> None:
        if gates:
            await asyncio.wait(gates)
        try:
            payload = await self._call(op)
        except (FolioError, httpx.HTTPError, TimeoutError) as e:
            outcome = Outcome(ok=False, error=str(e) or type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected error in backend call", action=op.action, kind=op.kind, entity_id=op.entity_id)
            outcome = Outcome(ok=False, error=str(e) or type(e).__name__)
        else:
            outcome = Outcome(ok=True, payload=payload)
        logger.debug("Write finished", action=op.action, kind=op.kind, entity_id=op.entity_id, ok=outcome.ok)
        self.reconciler.on_result(op, outcome)

    async def settle(self) -> None:
        """Wait until every write started so far has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

"""Applies write outcomes back onto the local store."""

import structlog

from folio_sync.dispatch import Outcome, WriteOp
from folio_sync.mutator import OptimisticMutator
from folio_sync.notify import NotificationSink

logger = structlog.get_logger()


class Reconciler:
    """Confirms successful writes and compensates for failed ones.

    Successful responses are never merged back, since the local copy may
    already hold a newer edit than the one the server answered for.
    Failed field updates keep their optimistic value. Failed creates are
    rolled back. Failed deletes are only reported.
    """

    def __init__(self, mutator: OptimisticMutator | None, sink: NotificationSink) -> None:
        self.mutator = mutator
        self.sink = sink

    def on_result(self, op: WriteOp, outcome: Outcome) -> None:
        if outcome.ok:
            logger.debug("Write confirmed", action=op.action, kind=op.kind, entity_id=op.entity_id)
            return

        reason = outcome.error or "Unknown error"
        logger.warning("Write failed", action=op.action, kind=op.kind, entity_id=op.entity_id, error=reason)

        if op.action == "create":
            if self.mutator is not None:
                self.mutator.discard(op.kind, op.entity_id)
            self.sink.notify(f"Failed to create {op.kind}: {reason}", "error")
        elif op.action == "delete":
            self.sink.notify(f"Failed to delete {op.kind}: {reason}", "error")
        elif "sort_order" in op.fields:
            self.sink.notify(f"Failed to save project order: {reason}", "error")
        else:
            self.sink.notify(f"Failed to save {op.kind}: {reason}", "error")

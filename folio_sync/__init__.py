"""Optimistic client-side sync for project notes, commands and links."""

from folio_sync.engine import SyncEngine

__all__ = ["SyncEngine"]

"""Backend implementations."""

from folio_sync.backends.http import HttpBackend
from folio_sync.backends.memory import MemoryBackend

__all__ = ["HttpBackend", "MemoryBackend"]

"""Backend interface for the remote project store."""

from abc import ABC, abstractmethod
from typing import Any

from folio_sync.models import Project


class Backend(ABC):
    """Abstract base class for remote stores.

    Every call is scoped to the caller identity the backend was configured
    with. Child kinds are addressed through their owning project.
    """

    @abstractmethod
    async def list_projects(self) -> list[Project]:
        """Fetch all projects with their notes, commands and links."""
        pass

    @abstractmethod
    async def create(self, kind: str, project_id: str | None, fields: dict[str, Any]) -> dict[str, Any]:
        """Create an entity. The client-allocated id travels in ``fields``."""
        pass

    @abstractmethod
    async def update(self, kind: str, entity_id: str, project_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update to an entity."""
        pass

    @abstractmethod
    async def delete(self, kind: str, entity_id: str, project_id: str) -> None:
        """Delete an entity. Deleting a project cascades to its children."""
        pass

    @abstractmethod
    def send_beacon(self, kind: str, entity_id: str, project_id: str, fields: dict[str, Any]) -> None:
        """Send a one-way update that needs no running event loop.

        Used while the process is shutting down. The body must carry the
        entity id, and no response is observed.
        """
        pass

    async def aclose(self) -> None:
        """Release any network resources."""
        return None

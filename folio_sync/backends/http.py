"""REST backend for the project dashboard API using httpx."""

from typing import Any

import httpx
import structlog

from folio_sync.backend import Backend
from folio_sync.errors import BackendError, MalformedResponseError
from folio_sync.models import CHILD_KINDS, Project, project_from_payload

logger = structlog.get_logger()


class HttpBackend(Backend):
    """Backend talking to the dashboard's ``/api/projects`` routes."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        beacon_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
        beacon_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize HTTP backend.

        Args:
            base_url: Root URL of the dashboard, e.g. http://localhost:3000
            token: Optional bearer token identifying the caller
            timeout: Timeout in seconds for regular calls
            beacon_timeout: Timeout in seconds for shutdown beacons
            transport: Custom async transport (tests)
            beacon_transport: Custom sync transport for beacons (tests)
        """
        if not base_url:
            raise ValueError("API base URL required")

        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self.beacon_timeout = beacon_timeout
        self._beacon_transport = beacon_transport
        self.client = httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=transport
        )
        logger.debug("HTTP backend initialized", base_url=self.base_url)

    def _collection_path(self, kind: str, project_id: str | None) -> str:
        if kind == "project":
            return "/api/projects"
        if kind not in CHILD_KINDS:
            raise ValueError(f"Unknown entity kind: '{kind}'")
        if not project_id:
            raise ValueError(f"A project id is required for {kind} calls")
        return f"/api/projects/{project_id}/{kind}s"

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase or "Unknown error"
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return "Unknown error"

    def _check(self, response: httpx.Response) -> Any:
        if not response.is_success:
            message = self._error_message(response)
            logger.warning(
                "Remote call failed",
                method=response.request.method,
                url=str(response.request.url),
                status=response.status_code,
                error=message,
            )
            raise BackendError(message, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("Sending request", method=method, path=path)
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Network error", method=method, path=path, error=str(e))
            raise BackendError("Network error") from e
        return self._check(response)

    async def list_projects(self) -> list[Project]:
        """Fetch all projects for the caller."""
        logger.info("Listing projects")
        data = await self._request("GET", "/api/projects")
        if not isinstance(data, list):
            raise MalformedResponseError("Expected a list of projects")
        projects = [project_from_payload(item) for item in data]
        logger.info("Listed projects", count=len(projects))
        return projects

    async def create(self, kind: str, project_id: str | None, fields: dict[str, Any]) -> dict[str, Any]:
        """Create an entity with its client-allocated id."""
        logger.info("Creating entity", kind=kind, entity_id=fields.get("id"), project_id=project_id)
        data = await self._request("POST", self._collection_path(kind, project_id), json=fields)
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected an object after creating {kind}")
        return data

    def _update_target(
        self, kind: str, entity_id: str, project_id: str | None, fields: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Path and body of the PATCH that updates an entity."""
        if kind == "project":
            return f"/api/projects/{entity_id}", dict(fields)
        return self._collection_path(kind, project_id), {f"{kind}_id": entity_id, **fields}

    async def update(self, kind: str, entity_id: str, project_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update."""
        logger.info("Updating entity", kind=kind, entity_id=entity_id, fields=list(fields))
        path, body = self._update_target(kind, entity_id, project_id, fields)
        data = await self._request("PATCH", path, json=body)
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected an object after updating {kind}")
        return data

    async def delete(self, kind: str, entity_id: str, project_id: str) -> None:
        """Delete an entity."""
        logger.info("Deleting entity", kind=kind, entity_id=entity_id)
        if kind == "project":
            await self._request("DELETE", f"/api/projects/{entity_id}")
        else:
            await self._request(
                "DELETE", self._collection_path(kind, project_id), params={f"{kind}_id": entity_id}
            )

    def send_beacon(self, kind: str, entity_id: str, project_id: str, fields: dict[str, Any]) -> None:
        """Send the same PATCH as ``update`` without an event loop and ignore the response."""
        path, body = self._update_target(kind, entity_id, project_id, fields)
        logger.info("Sending beacon", kind=kind, entity_id=entity_id, fields=list(fields))
        try:
            with httpx.Client(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.beacon_timeout,
                transport=self._beacon_transport,
            ) as client:
                client.patch(path, json=body)
        except httpx.HTTPError as e:
            raise BackendError(f"Beacon failed: {e}") from e

    async def aclose(self) -> None:
        await self.client.aclose()

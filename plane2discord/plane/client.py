"""Plane REST API client for the lookups that enrich webhook events."""

import asyncio
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError

from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import UpstreamLookupError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PlaneProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    identifier: str
    name: str = ""


class PlaneWorkItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    sequence_id: int
    name: str = ""


class PlaneLabel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class PlaneClient:
    """Async, read-only Plane API client.

    Lookups are not retried: a failed lookup fails the delivery that needed
    it. Every request is bounded by the session timeout.

    Attributes:
        API_PREFIX: Path prefix of Plane's public REST API
    """

    API_PREFIX = "/api/v1"

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 15.0) -> None:
        """Initialize Plane client.

        Args:
            base_url: Plane instance URL (e.g. ``https://plane.example.com``)
            api_key: Workspace API token
            timeout_seconds: Total timeout for each request
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "PlaneClient":
        """Context manager entry: create aiohttp session.

        Returns:
            Self for use in async with statement
        """
        self.session = aiohttp.ClientSession(
            headers={
                "X-API-Key": self.api_key,
                "Accept": "application/json",
                "User-Agent": "plane2discord",
            },
            timeout=self.timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Context manager exit: close aiohttp session."""
        if self.session:
            await self.session.close()

    def _project_url(self, workspace: str, project_id: str) -> str:
        return f"{self.base_url}{self.API_PREFIX}/workspaces/{workspace}/projects/{project_id}/"

    async def _get_json(self, url: str, resource: str) -> dict[str, Any]:
        """GET a JSON object, mapping every failure to UpstreamLookupError.

        Args:
            url: Absolute URL to fetch
            resource: Resource name for logs and error messages

        Returns:
            Decoded JSON object
        """
        if not self.session:
            raise UpstreamLookupError("Session not initialized")

        try:
            async with self.session.get(url) as response:
                if response.status == 200:
                    data = await response.json()
                    if not isinstance(data, dict):
                        raise UpstreamLookupError(f"Unexpected {resource} response shape")
                    return data
                elif response.status == 404:
                    logger.warning("plane.lookup.not_found", resource=resource, url=url)
                    raise UpstreamLookupError(f"{resource} not found")
                elif response.status in (401, 403):
                    raise UpstreamLookupError(f"Plane rejected API key: {response.status}")
                elif response.status == 429:
                    logger.warning(
                        "plane.ratelimit",
                        resource=resource,
                        retry_after=response.headers.get("retry-after"),
                    )
                    raise UpstreamLookupError(f"Rate limited: {response.status}")
                else:
                    raise UpstreamLookupError(f"API error: {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("plane.lookup.network_error", resource=resource, error=str(e))
            raise UpstreamLookupError(f"Network error fetching {resource}: {e}") from e

    async def get_project(self, workspace: str, project_id: str) -> PlaneProject:
        """Retrieve a project (for its short identifier).

        Args:
            workspace: Workspace slug
            project_id: Project UUID

        Returns:
            Project record

        Raises:
            UpstreamLookupError: If the request or response decoding fails
        """
        data = await self._get_json(self._project_url(workspace, project_id), "project")
        return self._parse(PlaneProject, data, "project")

    async def get_work_item(self, workspace: str, project_id: str, issue_id: str) -> PlaneWorkItem:
        """Retrieve a work item (for its sequence number and name).

        Raises:
            UpstreamLookupError: If the request or response decoding fails
        """
        url = f"{self._project_url(workspace, project_id)}issues/{issue_id}/"
        data = await self._get_json(url, "work_item")
        return self._parse(PlaneWorkItem, data, "work_item")

    async def get_label(self, workspace: str, project_id: str, label_id: str) -> PlaneLabel:
        """Retrieve a label (for its display name).

        Raises:
            UpstreamLookupError: If the request or response decoding fails
        """
        url = f"{self._project_url(workspace, project_id)}labels/{label_id}/"
        data = await self._get_json(url, "label")
        return self._parse(PlaneLabel, data, "label")

    @staticmethod
    def _parse(model: type[ModelT], data: dict[str, Any], resource: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamLookupError(f"Malformed {resource} response: {e}") from e

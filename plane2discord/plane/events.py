"""Parsing and enrichment of Plane webhook events."""

import asyncio
import json
from typing import TYPE_CHECKING, assert_never

from pydantic import ValidationError

from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import ImageStoreError, ParseError
from plane2discord.shared.models import (
    EVENT_VARIANTS,
    EnrichedEvent,
    InboundEvent,
    IssueCommentCreatedEvent,
    IssueCommentDeletedEvent,
    IssueCommentUpdatedEvent,
    IssueCreatedEvent,
    IssueDeletedEvent,
    IssueUpdatedEvent,
    UnknownEvent,
)

if TYPE_CHECKING:
    from plane2discord.images.store import ImageStore
    from plane2discord.plane.client import PlaneClient

logger = get_logger(__name__)


def normalize(raw_body: bytes, workspace_slug: str | None = None) -> InboundEvent:
    """Parse a webhook body into its event variant.

    Known ``(event, action)`` pairs are validated against their variant
    model. Any other pair becomes an `UnknownEvent`, which is acknowledged
    without a notification. A JSON object with a missing or non-string
    ``event`` or ``action`` is treated the same way, with the bad field
    replaced by an empty string.

    Args:
        raw_body: Request body (already signature-checked)
        workspace_slug: Workspace taken from the URL path; used only when the
            body has no ``workspace_id``

    Returns:
        The parsed event

    Raises:
        ParseError: If the body is not a JSON object or fails validation
    """
    try:
        payload = json.loads(raw_body)
    except ValueError as e:
        raise ParseError(f"Body is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ParseError("Body must be a JSON object")

    event, action = payload.get("event"), payload.get("action")
    if not isinstance(event, str) or not isinstance(action, str):
        logger.warning(
            "event.discriminant.missing",
            plane_event=repr(event),
            action=repr(action),
        )
        event = event if isinstance(event, str) else ""
        action = action if isinstance(action, str) else ""
        payload = {**payload, "event": event, "action": action}

    if workspace_slug and not payload.get("workspace_id"):
        payload = {**payload, "workspace_id": workspace_slug}

    variant = EVENT_VARIANTS.get((event, action), UnknownEvent)
    try:
        parsed: InboundEvent = variant.model_validate(payload)  # type: ignore[assignment]
    except ValidationError as e:
        raise ParseError(f"Invalid {event}/{action} payload: {e.error_count()} error(s)") from e

    logger.info(
        "event.normalized",
        plane_event=event,
        action=action,
        known=variant is not UnknownEvent,
        workspace=parsed.workspace_id,
    )
    return parsed


class EventEnricher:
    """Adds Plane context (project, work item, labels, avatar) to events.

    Attributes:
        plane: Plane API client
        browse_base_url: Base URL of the Plane web app for links
        plane_hostname: Host used to absolutize relative avatar paths
        image_store: Optional re-hosting for avatars
    """

    def __init__(
        self,
        plane: "PlaneClient",
        browse_base_url: str,
        plane_hostname: str = "",
        image_store: "ImageStore | None" = None,
    ) -> None:
        self.plane = plane
        self.browse_base_url = browse_base_url.rstrip("/")
        self.plane_hostname = plane_hostname
        self.image_store = image_store

    def absolute_avatar_url(self, reference: str | None) -> str | None:
        """Turn an avatar reference into an absolute URL.

        Returns:
            The URL, or None when it is relative and no hostname is configured
        """
        if not reference:
            return None
        if reference.startswith(("http://", "https://")):
            return reference
        if not self.plane_hostname:
            return None
        return f"https://{self.plane_hostname}/{reference.lstrip('/')}"

    async def actor_avatar(self, event: InboundEvent) -> str | None:
        """Resolve the actor's avatar, re-hosting it when possible.

        Image store failures fall back to the upstream avatar URL.
        """
        actor = event.actor
        avatar_url = self.absolute_avatar_url(actor.avatar_reference if actor else None)
        if not avatar_url or self.image_store is None:
            return avatar_url

        try:
            return await self.image_store.resolve(avatar_url)
        except ImageStoreError as e:
            logger.warning("event.avatar.rehost_failed", avatar_url=avatar_url, error=str(e))
            return avatar_url

    def browse_url(self, workspace: str, project_identifier: str, sequence_id: int) -> str:
        return f"{self.browse_base_url}/{workspace}/browse/{project_identifier}-{sequence_id}/"

    async def label_names(self, workspace: str, project_id: str, label_ids: list[str]) -> list[str]:
        """Fetch display names for labels, concurrently, preserving order."""
        labels = await asyncio.gather(
            *(self.plane.get_label(workspace, project_id, label_id) for label_id in label_ids)
        )
        return [label.name for label in labels]

    async def enrich(self, event: InboundEvent) -> EnrichedEvent:
        """Fetch the context a notification needs.

        Lookups for one event run concurrently; if any of them fails the
        whole enrichment fails.

        Args:
            event: Normalized event

        Returns:
            Event with project, work item, labels and avatar attached

        Raises:
            UpstreamLookupError: If any Plane lookup fails
        """
        workspace = event.workspace_id

        if isinstance(event, (IssueCreatedEvent, IssueUpdatedEvent)):
            issue = event.data
            avatar, project, work_item, label_names = await asyncio.gather(
                self.actor_avatar(event),
                self.plane.get_project(workspace, issue.project),
                self.plane.get_work_item(workspace, issue.project, issue.id),
                self.label_names(workspace, issue.project, issue.label_ids),
            )
        elif isinstance(event, (IssueCommentCreatedEvent, IssueCommentUpdatedEvent)):
            comment = event.data
            avatar, project, work_item = await asyncio.gather(
                self.actor_avatar(event),
                self.plane.get_project(workspace, comment.project),
                self.plane.get_work_item(workspace, comment.project, comment.issue),
            )
            label_names = []
        elif isinstance(event, (IssueDeletedEvent, IssueCommentDeletedEvent)):
            # The entity is gone; there is nothing left to look up
            return EnrichedEvent(event=event, actor_avatar_url=await self.actor_avatar(event))
        elif isinstance(event, UnknownEvent):
            return EnrichedEvent(event=event)
        else:
            assert_never(event)

        logger.info(
            "event.enriched",
            reference=f"{project.identifier}-{work_item.sequence_id}",
            labels=len(label_names),
        )
        return EnrichedEvent(
            event=event,
            project_identifier=project.identifier,
            sequence_id=work_item.sequence_id,
            work_item_name=work_item.name,
            label_names=label_names,
            browse_url=self.browse_url(workspace, project.identifier, work_item.sequence_id),
            actor_avatar_url=avatar,
        )

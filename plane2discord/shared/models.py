"""Data models for plane2discord.

Plane webhook payloads are modelled as one frozen pydantic class per
``(event, action)`` pair. Payload keys that the relay does not use are kept
as model extras, so a parsed event still carries everything Plane sent.
"""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

_PAYLOAD_CONFIG = ConfigDict(frozen=True, extra="allow")


def parse_plane_timestamp(value: str | None) -> datetime | None:
    """Parse a Plane ISO-8601 timestamp into an aware datetime.

    Args:
        value: Timestamp string such as ``2024-05-01T10:00:00.123456Z``

    Returns:
        Timezone-aware datetime, or None for empty/unparseable input
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


class PlaneUser(BaseModel):
    """A Plane workspace member as embedded in webhook payloads.

    ``avatar_url`` is either absolute or a path on the Plane host.
    """

    model_config = _PAYLOAD_CONFIG

    id: str | None = None
    display_name: str = ""
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    avatar: str | None = None
    avatar_url: str | None = None

    @property
    def avatar_reference(self) -> str | None:
        """Best available avatar reference (may be relative)."""
        return self.avatar_url or self.avatar or None

    @property
    def name(self) -> str:
        """Display name with fallbacks for sparsely populated users."""
        if self.display_name:
            return self.display_name
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email or "Unknown user"


class IssueLabel(BaseModel):
    """Label reference embedded in an issue payload."""

    model_config = _PAYLOAD_CONFIG

    id: str
    name: str | None = None
    color: str | None = None


class IssueState(BaseModel):
    """Workflow state embedded in an issue payload."""

    model_config = _PAYLOAD_CONFIG

    id: str | None = None
    name: str = ""
    color: str | None = None
    group: str | None = None


class Activity(BaseModel):
    """Change description attached to every webhook delivery.

    Attributes:
        field: Name of the changed attribute (None for create/delete)
        old_value: Value before the change
        new_value: Value after the change
        actor: User who triggered the change
        old_identifier: ID of the removed reference, if any
        new_identifier: ID of the added reference, if any
    """

    model_config = _PAYLOAD_CONFIG

    field: str | None = None
    old_value: Any = None
    new_value: Any = None
    actor: PlaneUser | None = None
    old_identifier: str | None = None
    new_identifier: str | None = None


class Issue(BaseModel):
    """Work item (issue) entity."""

    model_config = _PAYLOAD_CONFIG

    id: str
    name: str
    project: str
    workspace: str | None = None
    state: IssueState | None = None
    priority: str | None = None
    labels: list[IssueLabel | str] = Field(default_factory=list)
    assignees: list[PlaneUser | str] = Field(default_factory=list)
    description_stripped: str | None = None
    sequence_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def label_ids(self) -> list[str]:
        """IDs of all referenced labels, whether embedded or bare."""
        return [label if isinstance(label, str) else label.id for label in self.labels]

    @property
    def assignee_names(self) -> list[str]:
        """Display names of assignees (bare IDs are shown as-is)."""
        return [user if isinstance(user, str) else user.name for user in self.assignees]


class IssueComment(BaseModel):
    """Comment on a work item."""

    model_config = _PAYLOAD_CONFIG

    id: str
    issue: str
    project: str
    workspace: str | None = None
    comment_stripped: str | None = None
    comment_html: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class DeletedObject(BaseModel):
    """ID-only stub sent for deleted entities."""

    model_config = _PAYLOAD_CONFIG

    id: str


class WebhookEnvelope(BaseModel):
    """Fields common to every Plane webhook delivery."""

    model_config = _PAYLOAD_CONFIG

    webhook_id: str | None = None
    workspace_id: str = ""
    activity: Activity = Field(default_factory=Activity)

    @property
    def actor(self) -> PlaneUser | None:
        """User who triggered the event."""
        return self.activity.actor


class IssueCreatedEvent(WebhookEnvelope):
    event: Literal["issue"]
    action: Literal["created"]
    data: Issue


class IssueUpdatedEvent(WebhookEnvelope):
    event: Literal["issue"]
    action: Literal["updated"]
    data: Issue


class IssueDeletedEvent(WebhookEnvelope):
    event: Literal["issue"]
    action: Literal["deleted"]
    data: DeletedObject


class IssueCommentCreatedEvent(WebhookEnvelope):
    event: Literal["issue_comment"]
    action: Literal["created"]
    data: IssueComment


class IssueCommentUpdatedEvent(WebhookEnvelope):
    event: Literal["issue_comment"]
    action: Literal["updated"]
    data: IssueComment


class IssueCommentDeletedEvent(WebhookEnvelope):
    event: Literal["issue_comment"]
    action: Literal["deleted"]
    data: DeletedObject


class UnknownEvent(WebhookEnvelope):
    """Any ``(event, action)`` pair the relay does not notify about."""

    event: str
    action: str
    data: Any = None


KnownEvent = (
    IssueCreatedEvent
    | IssueUpdatedEvent
    | IssueDeletedEvent
    | IssueCommentCreatedEvent
    | IssueCommentUpdatedEvent
    | IssueCommentDeletedEvent
)
InboundEvent = KnownEvent | UnknownEvent

# (event, action) -> variant model; the closed set of notified events
EVENT_VARIANTS: dict[tuple[str, str], type[WebhookEnvelope]] = {
    ("issue", "created"): IssueCreatedEvent,
    ("issue", "updated"): IssueUpdatedEvent,
    ("issue", "deleted"): IssueDeletedEvent,
    ("issue_comment", "created"): IssueCommentCreatedEvent,
    ("issue_comment", "updated"): IssueCommentUpdatedEvent,
    ("issue_comment", "deleted"): IssueCommentDeletedEvent,
}


class EnrichedEvent(BaseModel):
    """A parsed event plus the context fetched from Plane.

    Attributes:
        event: The normalized webhook event
        project_identifier: Project short code (e.g. ``WEB``)
        sequence_id: Work item number within the project
        work_item_name: Work item title
        label_names: Display names of the work item's labels
        browse_url: Link to the work item in the Plane web app
        actor_avatar_url: Absolute (possibly re-hosted) avatar URL
    """

    model_config = ConfigDict(frozen=True)

    event: InboundEvent
    project_identifier: str | None = None
    sequence_id: int | None = None
    work_item_name: str | None = None
    label_names: list[str] = Field(default_factory=list)
    browse_url: str | None = None
    actor_avatar_url: str | None = None

    @property
    def reference(self) -> str:
        """Human-readable work item reference such as ``WEB-42``."""
        return f"{self.project_identifier}-{self.sequence_id}"


class NotificationField(BaseModel):
    """One named field of a notification."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    inline: bool = True


class NotificationAuthor(BaseModel):
    """Author block shown above the notification title."""

    model_config = ConfigDict(frozen=True)

    name: str
    icon_url: str | None = None


class NotificationDocument(BaseModel):
    """Chat-platform-agnostic notification produced for one event."""

    model_config = ConfigDict(frozen=True)

    title: str
    color: int = Field(..., ge=0, le=0xFFFFFF)
    description: str | None = None
    fields: tuple[NotificationField, ...] = ()
    author: NotificationAuthor | None = None
    url: str | None = None
    timestamp: datetime | None = None

"""Notification builders for Plane webhook events.

Pure functions: an enriched event goes in, a `NotificationDocument` (or None
for events the relay ignores) comes out. No I/O happens here.
"""

from collections.abc import Callable
from typing import Any

from plane2discord.discord.event_colors import (
    ALERT_COLOR,
    COMMENT_COLOR,
    DEFAULT_STATE_RULES,
    INFO_COLOR,
    StateColorRule,
)
from plane2discord.shared.models import (
    EVENT_VARIANTS,
    EnrichedEvent,
    IssueCommentCreatedEvent,
    IssueCommentDeletedEvent,
    IssueCommentUpdatedEvent,
    IssueCreatedEvent,
    IssueDeletedEvent,
    IssueUpdatedEvent,
    NotificationAuthor,
    NotificationDocument,
    NotificationField,
    UnknownEvent,
    WebhookEnvelope,
    parse_plane_timestamp,
)

# Discord embed limits
MAX_TITLE_LENGTH = 256
MAX_DESCRIPTION_LENGTH = 4096
MAX_FIELD_VALUE_LENGTH = 1024

StateRules = tuple[StateColorRule, ...]
Builder = Callable[[EnrichedEvent, Any, StateRules], NotificationDocument]


def truncate_message(message: str, max_length: int = 200) -> str:
    """Truncate message if it exceeds max length.

    Args:
        message: Text to truncate
        max_length: Maximum length before truncation (default: 200)

    Returns:
        Truncated message with "..." if needed
    """
    if len(message) > max_length:
        return message[: max_length - 3] + "..."
    return message


def format_value(value: Any) -> str:
    """Render an activity value for display."""
    if value is None or value == "":
        return "(none)"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value) or "(none)"
    return str(value)


def _field(name: str, value: str, inline: bool = True) -> NotificationField:
    return NotificationField(
        name=truncate_message(name, MAX_TITLE_LENGTH),
        value=truncate_message(value, MAX_FIELD_VALUE_LENGTH),
        inline=inline,
    )


def _author(enriched: EnrichedEvent) -> NotificationAuthor | None:
    actor = enriched.event.actor
    if actor is None:
        return None
    return NotificationAuthor(name=actor.name, icon_url=enriched.actor_avatar_url)


def _description(text: str | None) -> str | None:
    if not text:
        return None
    return truncate_message(text, MAX_DESCRIPTION_LENGTH)


def _title(text: str) -> str:
    return truncate_message(text, MAX_TITLE_LENGTH)


def _workspace_title(event: WebhookEnvelope, notice: str, reference: str) -> str:
    return _title(f"[{event.workspace_id}] {notice} {reference}")


def build_issue_created(
    enriched: EnrichedEvent, event: IssueCreatedEvent, state_rules: StateRules
) -> NotificationDocument:
    issue = event.data
    fields: list[NotificationField] = []
    if enriched.label_names:
        fields.append(_field("Labels", ", ".join(enriched.label_names)))
    fields.append(_field("Status", issue.state.name if issue.state and issue.state.name else "Unknown"))
    fields.append(_field("Priority", format_value(issue.priority)))
    if issue.assignee_names:
        fields.append(_field("Assignees", ", ".join(issue.assignee_names)))

    return NotificationDocument(
        title=_title(issue.name or "Untitled work item"),
        description=_description(issue.description_stripped),
        fields=tuple(fields),
        color=INFO_COLOR,
        author=_author(enriched),
        url=enriched.browse_url,
        timestamp=parse_plane_timestamp(issue.created_at),
    )


def build_comment_created(
    enriched: EnrichedEvent, event: IssueCommentCreatedEvent, state_rules: StateRules
) -> NotificationDocument:
    comment = event.data
    return NotificationDocument(
        title=_title(
            f"[{event.workspace_id}] New comment on issue #{enriched.reference}: "
            f"{enriched.work_item_name}"
        ),
        description=_description(comment.comment_stripped),
        color=COMMENT_COLOR,
        author=_author(enriched),
        url=enriched.browse_url,
        timestamp=parse_plane_timestamp(comment.created_at),
    )


def _change_field(event: WebhookEnvelope) -> NotificationField:
    activity = event.activity
    return _field(
        activity.field or "Update",
        f"{format_value(activity.old_value)} → {format_value(activity.new_value)}",
    )


def build_issue_updated(
    enriched: EnrichedEvent, event: IssueUpdatedEvent, state_rules: StateRules
) -> NotificationDocument:
    notice = "Card Updated"
    color = INFO_COLOR
    if event.activity.field == "state":
        for rule in state_rules:
            if rule.matches(event.activity.new_value):
                color = rule.color
                notice = rule.notice or notice
                break

    return NotificationDocument(
        title=_workspace_title(event, notice, enriched.reference),
        description=f"Updated issue ID: {event.data.id}",
        fields=(_change_field(event),),
        color=color,
        author=_author(enriched),
        url=enriched.browse_url,
        timestamp=parse_plane_timestamp(event.data.updated_at),
    )


def build_comment_updated(
    enriched: EnrichedEvent, event: IssueCommentUpdatedEvent, state_rules: StateRules
) -> NotificationDocument:
    return NotificationDocument(
        title=_workspace_title(event, "Comment Updated", enriched.reference),
        description=_description(event.data.comment_stripped),
        fields=(_change_field(event),),
        color=INFO_COLOR,
        author=_author(enriched),
        url=enriched.browse_url,
        timestamp=parse_plane_timestamp(event.data.updated_at),
    )


def build_issue_deleted(
    enriched: EnrichedEvent, event: IssueDeletedEvent, state_rules: StateRules
) -> NotificationDocument:
    return NotificationDocument(
        title="Card Deleted",
        description=f"Deleted issue ID: {event.data.id}",
        color=ALERT_COLOR,
        author=_author(enriched),
    )


def build_comment_deleted(
    enriched: EnrichedEvent, event: IssueCommentDeletedEvent, state_rules: StateRules
) -> NotificationDocument:
    return NotificationDocument(
        title="Comment Deleted",
        description=f"Deleted comment ID: {event.data.id}",
        color=ALERT_COLOR,
        author=_author(enriched),
    )


NOTIFICATION_BUILDERS: dict[tuple[str, str], Builder] = {
    ("issue", "created"): build_issue_created,
    ("issue", "updated"): build_issue_updated,
    ("issue", "deleted"): build_issue_deleted,
    ("issue_comment", "created"): build_comment_created,
    ("issue_comment", "updated"): build_comment_updated,
    ("issue_comment", "deleted"): build_comment_deleted,
}

_unhandled = set(EVENT_VARIANTS) ^ set(NOTIFICATION_BUILDERS)
if _unhandled:
    raise RuntimeError(f"Event variants without a notification builder: {sorted(_unhandled)}")


def build_notification(
    enriched: EnrichedEvent, state_rules: StateRules = DEFAULT_STATE_RULES
) -> NotificationDocument | None:
    """Build the notification for an enriched event.

    Args:
        enriched: Event with Plane context attached
        state_rules: Workflow-state recoloring for "updated" events

    Returns:
        The notification, or None if the event is not one the relay posts

    Example:
        >>> document = build_notification(enriched)
        >>> document.title
        'Fix login bug'
    """
    event = enriched.event
    if isinstance(event, UnknownEvent):
        return None

    builder = NOTIFICATION_BUILDERS.get((event.event, event.action))
    if builder is None:
        return None
    return builder(enriched, event, state_rules)

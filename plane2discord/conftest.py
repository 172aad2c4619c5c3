"""Shared pytest fixtures for plane2discord tests."""

import copy
from collections.abc import Callable, Generator
from typing import Any

import pytest

from plane2discord.core.config import Settings

ACTOR = {
    "id": "user-1",
    "display_name": "ada",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "avatar_url": "/api/assets/v2/static/avatar-ada.png",
}

ISSUE_DATA = {
    "id": "issue-1",
    "name": "Fix login bug",
    "project": "project-1",
    "workspace": "workspace-uuid",
    "state": {"id": "state-1", "name": "In Review", "color": "#f59e0b", "group": "started"},
    "priority": "high",
    "labels": [],
    "assignees": [],
    "description_stripped": "Users are logged out after submitting the form.",
    "sequence_id": 42,
    "estimate_point": None,
    "created_at": "2024-05-01T10:00:00.123456Z",
    "updated_at": "2024-05-01T10:05:00.000000Z",
}

COMMENT_DATA = {
    "id": "comment-1",
    "issue": "issue-1",
    "project": "project-1",
    "workspace": "workspace-uuid",
    "comment_stripped": "Reproduced on staging.",
    "comment_html": "<p>Reproduced on staging.</p>",
    "actor": "user-1",
    "created_at": "2024-05-01T11:00:00.000000Z",
    "updated_at": "2024-05-01T11:00:00.000000Z",
}

SAMPLE_PAYLOADS: dict[tuple[str, str], dict[str, Any]] = {
    ("issue", "created"): {
        "event": "issue",
        "action": "created",
        "webhook_id": "webhook-1",
        "workspace_id": "acme",
        "data": ISSUE_DATA,
        "activity": {"field": None, "new_value": None, "old_value": None, "actor": ACTOR},
    },
    ("issue", "updated"): {
        "event": "issue",
        "action": "updated",
        "webhook_id": "webhook-1",
        "workspace_id": "acme",
        "data": ISSUE_DATA,
        "activity": {
            "field": "state",
            "old_value": "In Review",
            "new_value": "Done",
            "actor": ACTOR,
        },
    },
    ("issue", "deleted"): {
        "event": "issue",
        "action": "deleted",
        "webhook_id": "webhook-1",
        "workspace_id": "acme",
        "data": {"id": "abc123"},
        "activity": {"field": None, "new_value": None, "old_value": None, "actor": ACTOR},
    },
    ("issue_comment", "created"): {
        "event": "issue_comment",
        "action": "created",
        "webhook_id": "webhook-1",
        "workspace_id": "acme",
        "data": COMMENT_DATA,
        "activity": {"field": None, "new_value": None, "old_value": None, "actor": ACTOR},
    },
    ("issue_comment", "updated"): {
        "event": "issue_comment",
        "action": "updated",
        "webhook_id": "webhook-1",
        "workspace_id": "acme",
        "data": {**COMMENT_DATA, "comment_stripped": "Reproduced on staging and prod."},
        "activity": {
            "field": "comment",
            "old_value": "Reproduced on staging.",
            "new_value": "Reproduced on staging and prod.",
            "actor": ACTOR,
        },
    },
    ("issue_comment", "deleted"): {
        "event": "issue_comment",
        "action": "deleted",
        "webhook_id": "webhook-1",
        "workspace_id": "acme",
        "data": {"id": "comment-1"},
        "activity": {"field": None, "new_value": None, "old_value": None, "actor": ACTOR},
    },
}


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the global settings cache before and after each test.

    This ensures tests don't interfere with each other via cached settings.
    """
    import plane2discord.core.config

    plane2discord.core.config._settings = None
    yield
    plane2discord.core.config._settings = None


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Factory for Plane webhook payloads.

    Returns:
        ``make_payload(event, action, **overrides)`` returning a fresh dict;
        overrides replace top-level keys
    """

    def _make(event: str, action: str, /, **overrides: Any) -> dict[str, Any]:
        payload = copy.deepcopy(SAMPLE_PAYLOADS[(event, action)])
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def sample_payloads() -> dict[tuple[str, str], dict[str, Any]]:
    """Deep copy of one sample payload per notified (event, action) pair."""
    return copy.deepcopy(SAMPLE_PAYLOADS)


@pytest.fixture
def test_settings() -> Settings:
    """Create Settings instance with test values."""
    return Settings(
        webhook_secret="test_webhook_secret",
        discord_webhook_url="https://discord.com/api/webhooks/1/token",
        plane_api_key="test_plane_api_key",
        plane_api_base_url="https://plane.example.com",
        plane_hostname="plane.example.com",
        log_level="INFO",
        app_version="0.1.0",
        environment="test",
    )

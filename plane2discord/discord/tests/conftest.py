"""Shared fixtures for Discord notification tests."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from plane2discord.plane.events import normalize
from plane2discord.shared.models import EnrichedEvent


@pytest.fixture
def enrich_payload() -> Callable[..., EnrichedEvent]:
    """Factory turning a payload dict into an enriched event.

    Lookups are filled in as if Plane returned project WEB and work item 42.
    """

    def _enrich(payload: dict[str, Any], **overrides: Any) -> EnrichedEvent:
        event = normalize(json.dumps(payload).encode())
        context: dict[str, Any] = {
            "project_identifier": "WEB",
            "sequence_id": 42,
            "work_item_name": "Fix login bug",
            "browse_url": "https://plane.example.com/acme/browse/WEB-42/",
            "actor_avatar_url": "https://plane.example.com/avatar-ada.png",
        }
        context.update(overrides)
        return EnrichedEvent(event=event, **context)

    return _enrich

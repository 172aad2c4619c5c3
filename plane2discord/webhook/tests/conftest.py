"""Shared fixtures for webhook pipeline tests."""

import hashlib
import hmac
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from plane2discord.plane.client import PlaneLabel, PlaneProject, PlaneWorkItem
from plane2discord.plane.events import EventEnricher
from plane2discord.webhook.dispatcher import Dispatcher

WEBHOOK_SECRET = "test_webhook_secret"


@pytest.fixture
def signed_body() -> Callable[[dict[str, Any]], tuple[bytes, str]]:
    """Factory returning ``(body, signature)`` for a payload."""

    def _sign(payload: dict[str, Any]) -> tuple[bytes, str]:
        body = json.dumps(payload).encode()
        signature = hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()
        return body, signature

    return _sign


@pytest.fixture
def plane() -> MagicMock:
    """Plane client stub with successful lookups."""
    plane = MagicMock()
    plane.get_project = AsyncMock(return_value=PlaneProject(id="project-1", identifier="WEB"))
    plane.get_work_item = AsyncMock(
        return_value=PlaneWorkItem(id="issue-1", sequence_id=42, name="Fix login bug")
    )
    plane.get_label = AsyncMock(return_value=PlaneLabel(id="label-1", name="bug"))
    return plane


@pytest.fixture
def forwarder() -> MagicMock:
    """Discord forwarder stub recording deliveries."""
    forwarder = MagicMock()
    forwarder.forward = AsyncMock(return_value=None)
    return forwarder


@pytest.fixture
def dispatcher(plane: MagicMock, forwarder: MagicMock) -> Dispatcher:
    enricher = EventEnricher(
        plane, browse_base_url="https://plane.example.com", plane_hostname="plane.example.com"
    )
    return Dispatcher(WEBHOOK_SECRET, enricher, forwarder)

"""Shared fixtures for Plane integration tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from plane2discord.plane.client import PlaneLabel, PlaneProject, PlaneWorkItem


@pytest.fixture
def mock_plane() -> MagicMock:
    """Create a Plane client stub with successful lookups.

    Returns:
        MagicMock whose get_* coroutines return project WEB, work item 42 and
        labels named after their IDs
    """
    plane = MagicMock()
    plane.get_project = AsyncMock(
        return_value=PlaneProject(id="project-1", identifier="WEB", name="Website")
    )
    plane.get_work_item = AsyncMock(
        return_value=PlaneWorkItem(id="issue-1", sequence_id=42, name="Fix login bug")
    )

    async def get_label(workspace: str, project_id: str, label_id: str) -> PlaneLabel:
        return PlaneLabel(id=label_id, name=f"name-of-{label_id}")

    plane.get_label = AsyncMock(side_effect=get_label)
    return plane

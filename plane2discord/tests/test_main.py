"""Tests for application startup and shutdown."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from plane2discord import main as main_module
from plane2discord.core.config import Settings
from plane2discord.shared.exceptions import ConfigError, DatabaseError


@pytest.mark.asyncio
async def test_startup_wires_pipeline_and_shutdown_closes(test_settings):
    with (
        patch("plane2discord.main.get_settings", return_value=test_settings),
        patch("plane2discord.main.WebhookServer.start", new_callable=AsyncMock) as mock_start,
        patch("plane2discord.main.WebhookServer.stop", new_callable=AsyncMock) as mock_stop,
    ):
        await main_module.startup()

        server = main_module.webhook_server
        assert server is not None
        assert server.port == 3000
        dispatcher = server.dispatcher
        assert dispatcher.webhook_secret == "test_webhook_secret"
        assert dispatcher.forwarder.webhook_url == "https://discord.com/api/webhooks/1/token"
        assert dispatcher.enricher.image_store is None
        assert dispatcher.enricher.browse_base_url == "https://plane.example.com"
        mock_start.assert_awaited_once()

        session = main_module.http_session
        await main_module.shutdown()

        mock_stop.assert_awaited_once()
        assert session.closed
        assert main_module.http_session is None
        assert main_module.webhook_server is None


@pytest.mark.asyncio
async def test_startup_missing_required_settings_raises():
    with patch("plane2discord.main.get_settings", return_value=Settings(webhook_secret="")):
        with pytest.raises(ConfigError, match="WEBHOOK_SECRET"):
            await main_module.startup()


@pytest.mark.asyncio
async def test_build_image_store_disabled_without_s3(test_settings):
    assert await main_module.build_image_store(test_settings, MagicMock()) is None


@pytest.mark.asyncio
async def test_build_image_store_opens_cache_and_bucket(test_settings):
    settings = test_settings.model_copy(
        update={
            "s3_bucket_name": "images",
            "s3_access_key_id": "key",
            "s3_secret_access_key": "secret",
            "s3_region": "auto",
            "s3_endpoint": "https://s3.example.com",
        }
    )
    session = MagicMock()

    with (
        patch("plane2discord.main.DatabaseClient") as mock_db_class,
        patch("plane2discord.main.S3ObjectStore") as mock_store_class,
    ):
        mock_db = mock_db_class.return_value
        mock_db.__aenter__ = AsyncMock(return_value=mock_db)
        mock_db.ensure_schema = AsyncMock()
        mock_store = mock_store_class.return_value
        mock_store.__aenter__ = AsyncMock(return_value=mock_store)

        image_store = await main_module.build_image_store(settings, session)

        assert image_store is not None
        assert image_store.cache is mock_db
        assert image_store.object_store is mock_store
        assert image_store.session is session
        mock_db.ensure_schema.assert_awaited_once()
        assert mock_store_class.call_args.kwargs["bucket"] == "images"

    main_module.database_client = None
    main_module.object_store = None


@pytest.mark.asyncio
@pytest.mark.parametrize("failing_step", ["__aenter__", "ensure_schema"])
async def test_build_image_store_disabled_when_cache_unavailable(test_settings, failing_step):
    settings = test_settings.model_copy(
        update={
            "s3_bucket_name": "images",
            "s3_access_key_id": "key",
            "s3_secret_access_key": "secret",
            "s3_region": "auto",
            "s3_endpoint": "https://s3.example.com",
        }
    )

    with (
        patch("plane2discord.main.DatabaseClient") as mock_db_class,
        patch("plane2discord.main.S3ObjectStore") as mock_store_class,
    ):
        mock_db = mock_db_class.return_value
        mock_db.__aenter__ = AsyncMock(return_value=mock_db)
        mock_db.__aexit__ = AsyncMock(return_value=None)
        mock_db.ensure_schema = AsyncMock()
        setattr(mock_db, failing_step, AsyncMock(side_effect=DatabaseError("connection refused")))

        image_store = await main_module.build_image_store(settings, MagicMock())

        assert image_store is None
        mock_store_class.assert_not_called()
        mock_db.__aexit__.assert_awaited_once()
        assert main_module.database_client is None
        assert main_module.object_store is None


def test_run_exits_on_config_error():
    with patch("plane2discord.main.get_settings", side_effect=ConfigError("Invalid log level")):
        with pytest.raises(SystemExit) as exc_info:
            main_module.run()

    assert exc_info.value.code == 1

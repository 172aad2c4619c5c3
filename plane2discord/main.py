"""plane2discord main entry point."""

import asyncio
import signal
import sys

import aiohttp

from plane2discord.core.config import Settings, get_settings
from plane2discord.core.database import DatabaseClient
from plane2discord.core.logging import get_logger, setup_logging
from plane2discord.discord.event_colors import build_state_rules
from plane2discord.discord.forwarder import DiscordForwarder
from plane2discord.images.object_store import S3ObjectStore
from plane2discord.images.store import ImageStore
from plane2discord.plane.client import PlaneClient
from plane2discord.plane.events import EventEnricher
from plane2discord.shared.exceptions import ConfigError, DatabaseError
from plane2discord.webhook.dispatcher import Dispatcher
from plane2discord.webhook.server import WebhookServer

logger = get_logger(__name__)

# Module-level variables for lifecycle management
database_client: DatabaseClient | None = None
object_store: S3ObjectStore | None = None
http_session: aiohttp.ClientSession | None = None
plane_client: PlaneClient | None = None
webhook_server: WebhookServer | None = None


async def build_image_store(settings: Settings, session: aiohttp.ClientSession) -> ImageStore | None:
    """Open the image cache and object store when S3 is configured.

    Returns:
        The image store, or None when images are not re-hosted
    """
    global database_client, object_store

    if not settings.image_store_enabled:
        logger.info("image_store.disabled", reason="s3_not_configured")
        return None

    database_client = DatabaseClient()
    try:
        await database_client.__aenter__()
        await database_client.ensure_schema()
    except DatabaseError as e:
        logger.warning("image_store.disabled", reason="cache_unavailable", error=str(e))
        await database_client.__aexit__(None, None, None)
        database_client = None
        return None

    object_store = S3ObjectStore(
        bucket=settings.s3_bucket_name,
        endpoint=settings.s3_endpoint,
        region=settings.s3_region,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        timeout_seconds=settings.http_timeout_seconds,
    )
    await object_store.__aenter__()

    logger.info("image_store.enabled", bucket=settings.s3_bucket_name)
    return ImageStore(database_client, object_store, session)


async def startup() -> None:
    """Initialize all services on application startup.

    Raises:
        ConfigError: If a required setting is missing
    """
    global http_session, plane_client, webhook_server

    settings = get_settings()
    settings.validate_required()

    logger.info(
        "application.startup.started",
        version=settings.app_version,
        environment=settings.environment,
    )

    http_session = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout_seconds)
    )

    plane_client = PlaneClient(
        base_url=settings.plane_api_base_url,
        api_key=settings.plane_api_key,
        timeout_seconds=settings.http_timeout_seconds,
    )
    await plane_client.__aenter__()

    image_store = await build_image_store(settings, http_session)

    enricher = EventEnricher(
        plane=plane_client,
        browse_base_url=settings.browse_base_url,
        plane_hostname=settings.plane_hostname,
        image_store=image_store,
    )
    dispatcher = Dispatcher(
        webhook_secret=settings.webhook_secret,
        enricher=enricher,
        forwarder=DiscordForwarder(settings.discord_webhook_url, http_session),
        state_rules=build_state_rules(
            settings.completed_states_list, settings.in_progress_states_list
        ),
    )

    webhook_server = WebhookServer(
        host=settings.server_host,
        port=settings.server_port,
        dispatcher=dispatcher,
        version=settings.app_version,
    )
    await webhook_server.start()

    logger.info("application.startup.completed")


async def shutdown() -> None:
    """Cleanup on application shutdown."""
    global database_client, object_store, http_session, plane_client, webhook_server

    logger.info("application.shutdown.started")

    # Stop accepting deliveries first
    if webhook_server:
        await webhook_server.stop()
        webhook_server = None

    if plane_client:
        await plane_client.__aexit__(None, None, None)
        plane_client = None

    if object_store:
        await object_store.__aexit__(None, None, None)
        object_store = None

    if http_session:
        await http_session.close()
        http_session = None

    if database_client:
        await database_client.__aexit__(None, None, None)
        database_client = None

    logger.info("application.shutdown.completed")


async def main() -> None:
    """Main application loop."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        logger.info("application.signal.received", signal=signal.Signals(sig).name)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):

        def make_handler(s: int = sig) -> None:
            signal_handler(s)

        loop.add_signal_handler(sig, make_handler)

    try:
        await startup()
        await stop_event.wait()
    except Exception as e:
        logger.error("application.error.fatal", error=str(e), exc_info=True)
        raise
    finally:
        await shutdown()


def run() -> None:
    """Entry point for running the relay."""
    try:
        # Load settings first to validate configuration
        settings = get_settings()

        setup_logging(log_level=settings.log_level)

        asyncio.run(main())

    except ConfigError as e:
        # Configuration errors should exit immediately with clear message
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()

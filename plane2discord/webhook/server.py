"""Webhook server for receiving Plane events."""

from aiohttp import web

from plane2discord.core.logging import get_logger, new_correlation_id
from plane2discord.webhook.dispatcher import Dispatcher
from plane2discord.webhook.signature import SIGNATURE_HEADER

logger = get_logger(__name__)


class WebhookServer:
    """Async HTTP server for receiving Plane webhook deliveries.

    Provides endpoints for:
    - POST /webhook: Plane webhook events
    - POST /webhook/{workspace} and /{workspace}/webhook: same, with the
      workspace slug taken from the path
    - GET /health: Health check endpoint

    Attributes:
        host: Server host address
        port: Server port
        dispatcher: Pipeline that handles each delivery
    """

    def __init__(self, host: str, port: int, dispatcher: Dispatcher, version: str = "") -> None:
        """Initialize webhook server.

        Args:
            host: Host address to bind to
            port: Port to listen on
            dispatcher: Pipeline that handles each delivery
            version: Application version reported by /health
        """
        self.host = host
        self.port = port
        self.dispatcher = dispatcher
        self.version = version
        self.app: web.Application | None = None
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._running = False

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes registered."""
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_post("/webhook", self._handle_webhook)
        app.router.add_post("/webhook/{workspace}", self._handle_webhook)
        app.router.add_post("/{workspace}/webhook", self._handle_webhook)
        return app

    async def start(self) -> None:
        """Start the webhook server."""
        self.app = self.build_app()

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        self._running = True
        logger.info("webhook.server.started", host=self.host, port=self.port)

    async def stop(self) -> None:
        """Stop the webhook server gracefully."""
        self._running = False

        if self.site:
            await self.site.stop()

        if self.runner:
            await self.runner.cleanup()

        logger.info("webhook.server.stopped")

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response(
            {"status": "healthy", "service": "plane2discord", "version": self.version}
        )

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Handle one Plane webhook delivery.

        The body is processed before responding so the status code reflects
        the outcome (Plane shows it in its delivery log).

        Args:
            request: Incoming HTTP request

        Returns:
            JSON response with the dispatch outcome
        """
        correlation_id = new_correlation_id()
        workspace = request.match_info.get("workspace")
        logger.info(
            "webhook.received",
            path=request.path,
            workspace=workspace,
            content_length=request.content_length,
        )

        try:
            body = await request.read()
        except (ConnectionError, web.HTTPException) as e:
            logger.error("webhook.read.failed", error=str(e))
            return web.json_response({"error": "Failed to read body"}, status=400)

        try:
            result = await self.dispatcher.dispatch(
                body, request.headers.get(SIGNATURE_HEADER), workspace
            )
        except Exception as e:
            logger.error("webhook.process.failed", error=str(e), exc_info=True)
            return web.json_response(
                {"status": "error", "correlation_id": correlation_id}, status=500
            )

        logger.info(
            "webhook.completed",
            outcome=result.outcome.value,
            status=result.status,
        )
        return web.json_response(
            {
                "status": result.outcome.value,
                "detail": result.detail,
                "correlation_id": correlation_id,
            },
            status=result.status,
        )

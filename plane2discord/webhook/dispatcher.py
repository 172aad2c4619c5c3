"""Per-request orchestration of the relay pipeline.

A request moves through ``Received -> Verified -> Normalized -> Built`` and
ends in exactly one terminal `DispatchOutcome`. Every outcome carries the
HTTP status the server answers with.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from plane2discord.core.logging import get_logger
from plane2discord.discord.event_colors import DEFAULT_STATE_RULES, StateColorRule
from plane2discord.discord.notifications import build_notification
from plane2discord.plane.events import normalize
from plane2discord.shared.exceptions import (
    AuthenticationError,
    ConfigError,
    ForwardError,
    ParseError,
    UpstreamLookupError,
)
from plane2discord.webhook.signature import require_valid_signature

if TYPE_CHECKING:
    from plane2discord.discord.forwarder import DiscordForwarder
    from plane2discord.plane.events import EventEnricher
    from plane2discord.shared.models import NotificationDocument

logger = get_logger(__name__)


class DispatchState(Enum):
    """Terminal pipeline states."""

    FORWARDED = "forwarded"
    BUILT = "built"
    REJECTED = "rejected"
    FAILED = "failed"


class DispatchOutcome(Enum):
    """How a request ended."""

    FORWARDED = "forwarded"
    IGNORED = "ignored"
    UNAUTHORIZED = "unauthorized"
    MISCONFIGURED = "misconfigured"
    MALFORMED = "malformed"
    UPSTREAM_FAILED = "upstream_failed"
    FORWARD_FAILED = "forward_failed"

    @property
    def state(self) -> DispatchState:
        return OUTCOME_TABLE[self][0]

    @property
    def status(self) -> int:
        return OUTCOME_TABLE[self][1]


OUTCOME_TABLE: dict[DispatchOutcome, tuple[DispatchState, int]] = {
    DispatchOutcome.FORWARDED: (DispatchState.FORWARDED, 200),
    DispatchOutcome.IGNORED: (DispatchState.BUILT, 200),
    DispatchOutcome.UNAUTHORIZED: (DispatchState.REJECTED, 403),
    DispatchOutcome.MISCONFIGURED: (DispatchState.REJECTED, 500),
    DispatchOutcome.MALFORMED: (DispatchState.FAILED, 400),
    DispatchOutcome.UPSTREAM_FAILED: (DispatchState.FAILED, 502),
    DispatchOutcome.FORWARD_FAILED: (DispatchState.FAILED, 502),
}

if set(OUTCOME_TABLE) != set(DispatchOutcome):
    raise RuntimeError("Every dispatch outcome needs a state and HTTP status")


@dataclass(frozen=True)
class DispatchResult:
    """Result of handling one webhook request.

    Attributes:
        outcome: Terminal outcome
        detail: Short human-readable reason
        document: Notification that was built, if any
    """

    outcome: DispatchOutcome
    detail: str = ""
    document: "NotificationDocument | None" = None

    @property
    def status(self) -> int:
        return self.outcome.status

    @property
    def state(self) -> DispatchState:
        return self.outcome.state


class Dispatcher:
    """Runs verify, normalize, enrich, build and forward for one request.

    Attributes:
        webhook_secret: Shared HMAC secret
        enricher: Plane context lookups
        forwarder: Outbound Discord delivery, or None when unconfigured
        state_rules: Workflow-state recoloring table
    """

    def __init__(
        self,
        webhook_secret: str,
        enricher: "EventEnricher",
        forwarder: "DiscordForwarder | None",
        state_rules: tuple[StateColorRule, ...] = DEFAULT_STATE_RULES,
    ) -> None:
        self.webhook_secret = webhook_secret
        self.enricher = enricher
        self.forwarder = forwarder
        self.state_rules = state_rules

    async def dispatch(
        self,
        body: bytes,
        signature: str | None,
        workspace_slug: str | None = None,
    ) -> DispatchResult:
        """Handle one webhook delivery.

        Args:
            body: Raw request body
            signature: ``X-Plane-Signature`` header value, if sent
            workspace_slug: Workspace segment from the request path

        Returns:
            The terminal result; expected failures never raise
        """
        try:
            if self.forwarder is None:
                raise ConfigError("Discord webhook URL is not configured")
            require_valid_signature(body, signature, self.webhook_secret)
        except ConfigError as e:
            logger.error("dispatch.misconfigured", error=str(e))
            return DispatchResult(DispatchOutcome.MISCONFIGURED, str(e))
        except AuthenticationError as e:
            return DispatchResult(DispatchOutcome.UNAUTHORIZED, str(e))

        try:
            event = normalize(body, workspace_slug)
        except ParseError as e:
            logger.warning("dispatch.malformed", error=str(e))
            return DispatchResult(DispatchOutcome.MALFORMED, str(e))

        try:
            enriched = await self.enricher.enrich(event)
        except UpstreamLookupError as e:
            logger.error(
                "dispatch.upstream_failed",
                plane_event=event.event,
                action=event.action,
                error=str(e),
            )
            return DispatchResult(DispatchOutcome.UPSTREAM_FAILED, str(e))

        document = build_notification(enriched, self.state_rules)
        if document is None:
            logger.info("dispatch.ignored", plane_event=event.event, action=event.action)
            return DispatchResult(DispatchOutcome.IGNORED, f"Ignored {event.event}/{event.action}")

        try:
            await self.forwarder.forward(document)
        except ForwardError as e:
            return DispatchResult(DispatchOutcome.FORWARD_FAILED, str(e), document)

        logger.info("dispatch.forwarded", plane_event=event.event, action=event.action)
        return DispatchResult(DispatchOutcome.FORWARDED, "Forwarded", document)

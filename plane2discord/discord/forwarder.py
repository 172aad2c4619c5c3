"""Delivery of notifications to a Discord webhook."""

import asyncio
from typing import Any

import aiohttp
import discord

from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import ForwardError
from plane2discord.shared.models import NotificationDocument

logger = get_logger(__name__)


def to_discord_embed(document: NotificationDocument) -> discord.Embed:
    """Convert a notification into a Discord embed.

    Args:
        document: Platform-agnostic notification

    Returns:
        Embed carrying the same title, fields, color, author and link
    """
    embed = discord.Embed(
        title=document.title,
        description=document.description,
        color=document.color,
        url=document.url,
        timestamp=document.timestamp,
    )
    for field in document.fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)
    if document.author:
        embed.set_author(name=document.author.name, icon_url=document.author.icon_url)
    return embed


def webhook_payload(document: NotificationDocument) -> dict[str, Any]:
    """JSON body for Discord's execute-webhook endpoint."""
    return {"embeds": [to_discord_embed(document).to_dict()]}


class DiscordForwarder:
    """Posts notifications to one Discord webhook URL.

    Deliveries are not retried; a rejected or failed POST raises ForwardError
    and the caller reports it.
    """

    def __init__(self, webhook_url: str, session: aiohttp.ClientSession) -> None:
        """Initialize forwarder.

        Args:
            webhook_url: Discord webhook URL
            session: Shared HTTP session (its timeout bounds each POST)
        """
        self.webhook_url = webhook_url
        self.session = session

    async def forward(self, document: NotificationDocument) -> None:
        """Send one notification.

        Args:
            document: Notification to deliver

        Raises:
            ForwardError: On a non-2xx response or transport failure
        """
        payload = webhook_payload(document)
        try:
            async with self.session.post(self.webhook_url, json=payload) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    logger.error(
                        "discord.forward.rejected",
                        status=response.status,
                        response=body[:500],
                    )
                    raise ForwardError(f"Discord rejected notification: {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("discord.forward.failed", error=str(e))
            raise ForwardError(f"Failed to reach Discord: {e}") from e

        logger.info("discord.forward.success", title=document.title)

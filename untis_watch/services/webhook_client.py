"""Discord webhook client for delivering timetable notifications"""
import asyncio
from typing import Optional

import aiohttp
import discord

from ..errors import DeliveryError, MessageRejectedError
from ..utils.logger import setup_logger
from .card_renderer import NotificationCard, OutboundMessage

logger = setup_logger(__name__)


class WebhookClient:
    """Sends notification cards as Discord embeds through a webhook"""

    def __init__(self, webhook_id: str, webhook_token: str):
        """
        Initialize webhook client

        Args:
            webhook_id: Numeric webhook ID
            webhook_token: Webhook token
        """
        self.webhook_id = int(webhook_id)
        self.webhook_token = webhook_token
        self._session: Optional[aiohttp.ClientSession] = None
        self._webhook: Optional[discord.Webhook] = None

    async def start(self):
        """Open the HTTP session used by the webhook"""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._webhook = discord.Webhook.partial(
                self.webhook_id,
                self.webhook_token,
                session=self._session
            )
            logger.info(f"Webhook client ready for webhook {self.webhook_id}")

    async def close(self):
        """Close the HTTP session"""
        if self._session is not None:
            await self._session.close()
            self._session = None
            self._webhook = None

    def to_embed(self, card: NotificationCard) -> discord.Embed:
        """
        Convert a card to a Discord embed

        Args:
            card: Notification card

        Returns:
            Embed with an Old/New/spacer row per changed field
        """
        embed = discord.Embed(
            title=card.title,
            description=card.description,
            colour=discord.Colour(card.color)
        )
        for name, value in card.fields():
            embed.add_field(name=name, value=value, inline=True)
        embed.set_footer(text=card.footer)
        return embed

    async def send_message(self, message: OutboundMessage):
        """
        Send one batch of cards

        Args:
            message: Up to ten cards plus optional content

        Raises:
            discord.HTTPException: Discord rejected the request
            aiohttp.ClientError: The request could not be made
        """
        if self._webhook is None:
            await self.start()

        kwargs = {"embeds": [self.to_embed(card) for card in message.cards]}
        if message.content:
            kwargs["content"] = message.content

        await self._webhook.send(**kwargs)
        logger.info(f"Sent {len(message.cards)} notification(s) to webhook {self.webhook_id}")

    async def send_with_retry(self, message: OutboundMessage, max_retries: int = 3):
        """
        Send a batch with exponential backoff retry

        Args:
            message: Batch to send
            max_retries: Maximum number of attempts

        Raises:
            MessageRejectedError: Discord refused the message contents
            DeliveryError: The batch could not be delivered
        """
        for attempt in range(max_retries):
            try:
                await self.send_message(message)
                return
            except (discord.Forbidden, discord.NotFound) as e:
                raise DeliveryError(f"Webhook {self.webhook_id} is not usable: {e}") from e
            except discord.HTTPException as e:
                if e.status == 400:
                    raise MessageRejectedError(f"Webhook {self.webhook_id} rejected the message: {e}") from e
                logger.error(f"Error sending notification: {e}")
                if attempt >= max_retries - 1:
                    raise DeliveryError(
                        f"Failed to send notification after {max_retries} attempts: {e}"
                    ) from e
            except aiohttp.ClientError as e:
                logger.error(f"Error sending notification: {e}")
                if attempt >= max_retries - 1:
                    raise DeliveryError(
                        f"Failed to send notification after {max_retries} attempts: {e}"
                    ) from e

            wait_time = 2 ** attempt  # Exponential backoff
            logger.info(f"Retrying notification in {wait_time} seconds...")
            await asyncio.sleep(wait_time)

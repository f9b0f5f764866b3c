# catalog_bot/services/delivery_service.py

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence

from telegram import Bot, CallbackQuery, InputMediaPhoto, Message
from telegram.constants import ParseMode
from telegram.error import (
    BadRequest,
    Forbidden,
    NetworkError,
    RetryAfter,
    TelegramError,
    TimedOut,
)

from ..config import (
    DEFAULT_INTER_MESSAGE_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_AFTER_SECONDS,
    MEDIA_GROUP_LIMIT,
    logger,
)
from ..utils import chunked, retry_after_seconds


class TransportError(Exception):
    """Base class for failures talking to the chat transport."""


class TransientTransportError(TransportError):
    """Flood control or network trouble that outlasted the retry bound."""


class PermanentTransportError(TransportError):
    """The transport rejected the payload (bad request, forbidden, ...)."""


class DeliveryClient:
    """
    Sends single outbound payloads to Telegram.

    Flood-control responses are honoured by sleeping for the interval the
    server asks for (or `default_retry_after` when it gives none) and
    retrying, at most `max_retries` times. Timeouts and network errors are
    retried with a short exponential backoff under the same bound. Any other
    Telegram error is raised immediately as a PermanentTransportError.
    """

    def __init__(
        self,
        bot: Bot,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        default_retry_after: float = DEFAULT_RETRY_AFTER_SECONDS,
        inter_message_delay: float = DEFAULT_INTER_MESSAGE_DELAY,
        network_base_delay: float = 0.6,
    ) -> None:
        self.bot = bot
        self.max_retries = max_retries
        self.default_retry_after = default_retry_after
        self.inter_message_delay = inter_message_delay
        self.network_base_delay = network_base_delay

    async def throttle(self) -> None:
        """Waits the fixed policy delay between messages of one dispatch."""
        if self.inter_message_delay > 0:
            await asyncio.sleep(self.inter_message_delay)

    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        reply_markup: Any = None,
        parse_mode: str | None = ParseMode.HTML,
    ) -> Message:
        return await self._call(
            "send_message",
            self.bot.send_message,
            chat_id=chat_id,
            text=text,
            parse_mode=parse_mode,
            reply_markup=reply_markup,
        )

    async def send_photo(
        self, chat_id: int, url: str, caption: str | None = None
    ) -> Message:
        return await self._call(
            "send_photo",
            self.bot.send_photo,
            chat_id=chat_id,
            photo=url,
            caption=caption or None,
            parse_mode=ParseMode.HTML,
        )

    async def send_video(
        self, chat_id: int, url: str, caption: str | None = None
    ) -> Message:
        return await self._call(
            "send_video",
            self.bot.send_video,
            chat_id=chat_id,
            video=url,
            caption=caption or None,
            parse_mode=ParseMode.HTML,
        )

    async def send_photo_group(self, chat_id: int, urls: Sequence[str]) -> list[Message]:
        """
        Sends photos as albums of at most MEDIA_GROUP_LIMIT. Telegram rejects
        single-item albums, so a lone photo goes out through send_photo.
        """
        sent: list[Message] = []
        for index, album in enumerate(chunked(list(urls), MEDIA_GROUP_LIMIT)):
            if index > 0:
                await self.throttle()
            if len(album) == 1:
                sent.append(await self.send_photo(chat_id, album[0]))
                continue
            messages = await self._call(
                "send_media_group",
                self.bot.send_media_group,
                chat_id=chat_id,
                media=[InputMediaPhoto(media=url) for url in album],
            )
            sent.extend(messages)
        return sent

    async def acknowledge_callback(self, query: CallbackQuery) -> bool:
        """Removes the client-side loading indicator. Failures are only logged."""
        try:
            await query.answer()
            return True
        except TelegramError as e:
            logger.warning(f"Could not acknowledge callback query {query.id}: {e}")
            return False

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        try:
            await self.bot.delete_message(chat_id=chat_id, message_id=message_id)
            return True
        except TelegramError as e:
            logger.warning(
                f"Could not delete message {message_id} in chat {chat_id}: {e}"
            )
            return False

    async def _call(
        self, description: str, func: Callable[..., Awaitable[Any]], /, **kwargs: Any
    ) -> Any:
        retries = 0
        network_delay = self.network_base_delay

        while True:
            try:
                return await func(**kwargs)
            except RetryAfter as e:
                wait = retry_after_seconds(
                    getattr(e, "retry_after", None), self.default_retry_after
                )
                reason = f"rate limited, retry after {wait:.1f}s"
                error: TelegramError = e
            except (BadRequest, Forbidden) as e:
                logger.error(f"[DELIVERY] {description} rejected: {e}")
                raise PermanentTransportError(str(e)) from e
            except (TimedOut, NetworkError) as e:
                wait = network_delay
                network_delay *= 2
                reason = f"network error ({e}), retrying in {wait:.1f}s"
                error = e
            except TelegramError as e:
                logger.error(f"[DELIVERY] {description} failed: {e}")
                raise PermanentTransportError(str(e)) from e

            if retries >= self.max_retries:
                logger.error(
                    f"[DELIVERY] {description} gave up after {retries + 1} attempts: {error}"
                )
                raise TransientTransportError(str(error)) from error

            retries += 1
            logger.warning(
                f"[DELIVERY] {description} {reason} (retry {retries}/{self.max_retries})."
            )
            await asyncio.sleep(wait)

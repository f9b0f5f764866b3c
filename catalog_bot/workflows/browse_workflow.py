# catalog_bot/workflows/browse_workflow.py

from __future__ import annotations

from typing import Any, Awaitable, Callable

from telegram.ext import ContextTypes

from ..config import SEARCH_RESULT_LIMIT, logger
from ..services.catalog_store import CatalogStore, StoreQueryError
from ..services.delivery_service import DeliveryClient
from ..ui import messages
from ..ui.views import (
    build_episode_keyboard,
    build_main_menu_keyboard,
    build_search_results_keyboard,
    build_season_keyboard,
)
from ..utils import unique_in_order
from .callback_tokens import BrowseAction, CallbackToken


def get_services(
    context: ContextTypes.DEFAULT_TYPE,
) -> tuple[CatalogStore, DeliveryClient]:
    """Returns the process-wide store and delivery client set up in post_init."""
    return context.bot_data["CATALOG_STORE"], context.bot_data["DELIVERY_CLIENT"]


async def send_main_menu(chat_id: int, context: ContextTypes.DEFAULT_TYPE) -> None:
    _, delivery = get_services(context)
    await delivery.send_text(
        chat_id, messages.WELCOME_TEXT, reply_markup=build_main_menu_keyboard()
    )


async def send_help(chat_id: int, context: ContextTypes.DEFAULT_TYPE) -> None:
    _, delivery = get_services(context)
    await delivery.send_text(chat_id, messages.get_help_message_text())


async def send_search_prompt(chat_id: int, context: ContextTypes.DEFAULT_TYPE) -> None:
    _, delivery = get_services(context)
    await delivery.send_text(chat_id, messages.SEARCH_PROMPT_TEXT)


async def search_catalog(
    chat_id: int, query: str, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Replies with up to SEARCH_RESULT_LIMIT matching entries as buttons."""
    store, delivery = get_services(context)
    query = query.strip()
    if not query:
        await delivery.send_text(chat_id, messages.EMPTY_QUERY_TEXT)
        return

    try:
        entries = await store.find_catalog_entries(query, limit=SEARCH_RESULT_LIMIT)
    except StoreQueryError as e:
        logger.error(f"Search for '{query}' failed in chat {chat_id}: {e}")
        await delivery.send_text(chat_id, messages.SEARCH_FAILED_TEXT)
        return

    logger.info(f"Search '{query}' in chat {chat_id} matched {len(entries)} entries.")
    if not entries:
        await delivery.send_text(chat_id, messages.NO_RESULTS_TEXT)
        return

    await delivery.send_text(
        chat_id,
        messages.SEARCH_RESULTS_TEXT,
        reply_markup=build_search_results_keyboard(entries),
    )


async def show_seasons(
    chat_id: int, entry_id: int, context: ContextTypes.DEFAULT_TYPE
) -> None:
    store, delivery = get_services(context)
    loading_message = await delivery.send_text(chat_id, messages.LOADING_SEASONS_TEXT)

    try:
        seasons = await store.distinct_seasons(entry_id)
    except StoreQueryError as e:
        logger.error(f"Loading seasons for entry {entry_id} failed: {e}")
        seasons = None

    await delivery.delete_message(chat_id, loading_message.message_id)

    if seasons is None:
        await delivery.send_text(chat_id, messages.SEASONS_FAILED_TEXT)
        return

    await delivery.send_text(
        chat_id,
        messages.SELECT_SEASON_TEXT,
        reply_markup=build_season_keyboard(entry_id, seasons),
    )


async def show_episodes(
    chat_id: int, entry_id: int, season: str, context: ContextTypes.DEFAULT_TYPE
) -> None:
    store, delivery = get_services(context)
    try:
        episodes = await store.distinct_episodes(entry_id, season)
    except StoreQueryError as e:
        logger.error(f"Loading episodes for entry {entry_id} '{season}' failed: {e}")
        await delivery.send_text(chat_id, messages.EPISODES_FAILED_TEXT)
        return

    await delivery.send_text(
        chat_id,
        messages.SELECT_EPISODE_TEXT,
        reply_markup=build_episode_keyboard(entry_id, season, episodes),
    )


async def send_episode_media(
    chat_id: int,
    entry_id: int,
    season: str,
    episode: str,
    context: ContextTypes.DEFAULT_TYPE,
) -> None:
    """
    Terminal screen: posts the episode's images as one album, then its videos
    one by one in stored order with the caption on the first video only.
    Rows that went out are flagged as delivered afterwards, even when a later
    send fails.
    """
    store, delivery = get_services(context)
    try:
        items = await store.media_for(entry_id, season, episode)
    except StoreQueryError as e:
        logger.error(
            f"Loading media for entry {entry_id} '{season}' '{episode}' failed: {e}"
        )
        await delivery.send_text(chat_id, messages.MEDIA_FAILED_TEXT)
        return

    if not items:
        await delivery.send_text(chat_id, messages.NO_MEDIA_TEXT)
        return

    images = [item for item in items if item.kind == "image"]
    videos = [item for item in items if item.kind == "video"]
    delivered_ids: list[int] = []

    try:
        if images:
            await delivery.send_photo_group(
                chat_id, unique_in_order(item.url for item in images)
            )
            delivered_ids.extend(item.id for item in images)

        caption = messages.format_video_caption(season, episode)
        for index, video in enumerate(videos):
            if index > 0 or images:
                await delivery.throttle()
            await delivery.send_video(
                chat_id, video.url, caption=caption if index == 0 else None
            )
            delivered_ids.append(video.id)
    finally:
        await _mark_delivered(store, delivered_ids)


async def _mark_delivered(store: CatalogStore, item_ids: list[int]) -> None:
    if not item_ids:
        return
    try:
        await store.mark_delivered(item_ids)
    except StoreQueryError as e:
        logger.warning(f"Could not flag {len(item_ids)} media rows as delivered: {e}")


async def handle_browse_token(
    chat_id: int, token: CallbackToken, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Renders the screen a decoded callback token addresses."""
    routes: dict[BrowseAction, Callable[[], Awaitable[Any]]] = {
        BrowseAction.SEARCH_INIT: lambda: send_search_prompt(chat_id, context),
        BrowseAction.HELP: lambda: send_help(chat_id, context),
        BrowseAction.PAGE: lambda: show_seasons(chat_id, token.entry_id, context),
        BrowseAction.SEASON: lambda: show_episodes(
            chat_id, token.entry_id, token.season or "", context
        ),
        BrowseAction.EPISODE: lambda: send_episode_media(
            chat_id, token.entry_id, token.season or "", token.episode or "", context
        ),
        BrowseAction.BACK_SEARCH: lambda: send_search_prompt(chat_id, context),
        BrowseAction.BACK_PAGE: lambda: show_seasons(chat_id, token.entry_id, context),
    }
    await routes[token.action]()

# catalog_bot/ui/views.py

from typing import Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from ..config import logger
from ..services.db_models import CatalogEntry
from ..workflows.callback_tokens import (
    BrowseAction,
    CallbackToken,
    UnencodableCallbackToken,
)
from .messages import episode_button_label, season_button_label

BACK_LABEL = "← Back"


def _button_row(label: str, token: CallbackToken) -> list[InlineKeyboardButton] | None:
    """A one-button row, or None when the token cannot fit in callback data."""
    try:
        return [InlineKeyboardButton(label, callback_data=token.encode())]
    except UnencodableCallbackToken as e:
        logger.warning(f"Leaving out button '{label}': {e}")
        return None


def build_main_menu_keyboard() -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                "🔍 Search Content",
                callback_data=CallbackToken(BrowseAction.SEARCH_INIT).encode(),
            )
        ],
        [
            InlineKeyboardButton(
                "ℹ️ Help", callback_data=CallbackToken(BrowseAction.HELP).encode()
            )
        ],
    ]
    return InlineKeyboardMarkup(keyboard)


def build_search_results_keyboard(
    entries: Sequence[CatalogEntry],
) -> InlineKeyboardMarkup:
    """One button per catalog entry, in the order the store returned them."""
    keyboard = [
        [
            InlineKeyboardButton(
                entry.name, callback_data=CallbackToken.page(entry.id).encode()
            )
        ]
        for entry in entries
    ]
    return InlineKeyboardMarkup(keyboard)


def build_season_keyboard(entry_id: int, seasons: Sequence[str]) -> InlineKeyboardMarkup:
    """
    One button per season plus a back button. Seasons whose token cannot be
    carried in callback data are logged and left out.
    """
    rows = (
        _button_row(season_button_label(season), CallbackToken.season_of(entry_id, season))
        for season in seasons
    )
    keyboard = [row for row in rows if row is not None]
    keyboard.append(
        [
            InlineKeyboardButton(
                BACK_LABEL, callback_data=CallbackToken.back_to_search().encode()
            )
        ]
    )
    return InlineKeyboardMarkup(keyboard)


def build_episode_keyboard(
    entry_id: int, season: str, episodes: Sequence[str]
) -> InlineKeyboardMarkup:
    rows = (
        _button_row(
            episode_button_label(episode),
            CallbackToken.episode_of(entry_id, season, episode),
        )
        for episode in episodes
    )
    keyboard = [row for row in rows if row is not None]
    keyboard.append(
        [
            InlineKeyboardButton(
                BACK_LABEL, callback_data=CallbackToken.back_to_page(entry_id).encode()
            )
        ]
    )
    return InlineKeyboardMarkup(keyboard)

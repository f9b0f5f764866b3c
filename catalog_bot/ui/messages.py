# catalog_bot/ui/messages.py

from __future__ import annotations

from ..utils import escape_html

WELCOME_TEXT = "Welcome to the bot! Choose an option:"
SEARCH_PROMPT_TEXT = "Please use /search &lt;query&gt; to find content"
EMPTY_QUERY_TEXT = "Please enter your search query after /search"
FALLBACK_TEXT = "Use /search &lt;query&gt; to find content"
SEARCH_RESULTS_TEXT = "🔎 Search results:"
NO_RESULTS_TEXT = "🔍 No results found"
LOADING_SEASONS_TEXT = "⏳ Loading seasons..."
SELECT_SEASON_TEXT = "📺 Select season:"
SELECT_EPISODE_TEXT = "Select episode:"
NO_MEDIA_TEXT = "🔍 No media found for this episode"
SEARCH_FAILED_TEXT = "❌ Search failed. Please try again."
SEASONS_FAILED_TEXT = "❌ Failed to load seasons"
EPISODES_FAILED_TEXT = "❌ Failed to load episodes"
MEDIA_FAILED_TEXT = "❌ Failed to load media"
GENERIC_ERROR_TEXT = "⚠️ An error occurred. Please try again."


def get_help_message_text() -> str:
    """Returns the HTML help text."""
    return (
        "🤖 <b>Bot Commands</b>\n\n"
        "/start - Show main menu\n"
        "/search &lt;query&gt; - Find content\n\n"
        "Navigate using the inline buttons!"
    )


def season_button_label(season: str) -> str:
    """
    Seasons are stored either as bare numbers ("1") or as labels
    ("Season 01"); items without a season are grouped under "No Season".
    """
    if not season:
        return "No Season"
    if season.isdigit():
        return f"Season {season}"
    return season


def episode_button_label(episode: str) -> str:
    if not episode:
        return "Unknown Episode"
    if episode.isdigit():
        return f"Episode {episode}"
    return episode


def format_video_caption(season: str, episode: str) -> str:
    """Caption for the first video of an episode, safe for HTML parse mode."""
    episode_label = episode_button_label(episode)
    if season:
        return escape_html(f"{season_button_label(season)} {episode_label}")
    return escape_html(episode_label)

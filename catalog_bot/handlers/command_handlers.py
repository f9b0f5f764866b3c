# catalog_bot/handlers/command_handlers.py

import re

from telegram import Message, Update
from telegram.ext import ContextTypes

from ..config import logger
from ..workflows.browse_workflow import search_catalog, send_help, send_main_menu

# Slash commands, optionally addressed to the bot, with or without arguments
START_COMMAND_PATTERN = re.compile(r"^/start(?:@\w+)?(?:\s|$)", re.IGNORECASE)
HELP_COMMAND_PATTERN = re.compile(r"^/help(?:@\w+)?(?:\s|$)", re.IGNORECASE)
SEARCH_COMMAND_PATTERN = re.compile(r"^/search(?:@\w+)?(?:\s+|$)", re.IGNORECASE)


def extract_search_query(text: str) -> str:
    """Returns whatever follows the search command, e.g. "/search west" -> "west"."""
    return SEARCH_COMMAND_PATTERN.sub("", text.strip(), count=1).strip()


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Shows the main menu."""
    chat = update.effective_chat
    if not chat:
        logger.warning("start_command was triggered but could not find an effective_chat.")
        return
    await send_main_menu(chat.id, context)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Sends the list of available commands."""
    chat = update.effective_chat
    if not chat:
        logger.warning("help_command was triggered but could not find an effective_chat.")
        return
    await send_help(chat.id, context)


async def search_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Searches the catalog for the text following the command."""
    message = update.message
    chat = update.effective_chat
    if not isinstance(message, Message) or not chat or message.text is None:
        logger.warning("search_command cannot proceed without a chat and message text.")
        return

    query = extract_search_query(message.text)
    logger.info(f"Chat {chat.id} searched for '{query}'.")
    await search_catalog(chat.id, query, context)

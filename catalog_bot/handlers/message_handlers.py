# catalog_bot/handlers/message_handlers.py

from telegram import Update
from telegram.ext import ContextTypes

from ..config import logger
from ..ui.messages import FALLBACK_TEXT
from ..workflows.browse_workflow import get_services


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Any text that is not a known command gets a pointer to /search."""
    chat = update.effective_chat
    if not chat:
        return

    logger.info(f"Unrecognised message in chat {chat.id}; replying with usage hint.")
    _, delivery = get_services(context)
    await delivery.send_text(chat.id, FALLBACK_TEXT)

# catalog_bot/handlers/callback_handlers.py

from telegram import Update
from telegram.ext import ContextTypes

from ..config import logger
from ..services.delivery_service import TransportError
from ..ui.messages import GENERIC_ERROR_TEXT
from ..workflows.browse_workflow import get_services, handle_browse_token
from ..workflows.callback_tokens import (
    UNKNOWN_COMMAND_MESSAGE,
    MalformedCallbackToken,
    decode_callback_token,
)


async def button_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handles all callback queries from inline buttons.

    The query is acknowledged first so the client stops showing its loading
    indicator, then the callback data is decoded and the addressed screen is
    rendered. Nothing but the callback data decides what is shown.
    """
    query = update.callback_query
    if not query or not query.data:
        return

    _, delivery = get_services(context)
    await delivery.acknowledge_callback(query)

    chat = update.effective_chat
    if not chat:
        logger.warning("button_handler was triggered but could not find an effective_chat.")
        return

    try:
        try:
            token = decode_callback_token(query.data)
        except MalformedCallbackToken as e:
            logger.warning(f"Rejected callback from chat {chat.id}: {e}")
            await delivery.send_text(chat.id, UNKNOWN_COMMAND_MESSAGE)
            return

        logger.info(f"Chat {chat.id} requested '{token.encode()}'.")
        await handle_browse_token(chat.id, token, context)

    except TransportError as e:
        logger.error(f"Callback handling error in chat {chat.id}: {e}", exc_info=True)
        try:
            await delivery.send_text(chat.id, GENERIC_ERROR_TEXT)
        except TransportError as notify_error:
            logger.error(f"Failed to send the error notice to chat {chat.id}: {notify_error}")

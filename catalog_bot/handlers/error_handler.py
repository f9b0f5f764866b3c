# catalog_bot/handlers/error_handler.py

import json
import traceback

from telegram import Update
from telegram.ext import ContextTypes

from ..config import logger
from ..ui.messages import GENERIC_ERROR_TEXT


async def global_error_handler(
    update: object, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """
    Catches all unhandled exceptions and logs them with the update that
    triggered them, so one failing chat never takes the bot down.
    """
    if not context.error:
        logger.warning("Error handler was called but context.error is None.")
        return

    logger.error("An unhandled exception occurred:", exc_info=context.error)

    tb_string = "".join(
        traceback.format_exception(
            type(context.error), context.error, context.error.__traceback__
        )
    )
    update_str = update.to_dict() if isinstance(update, Update) else str(update)

    report = (
        "An exception was raised while handling an update\n"
        f"update = {json.dumps(update_str, indent=2, ensure_ascii=False)}\n\n"
        f"Traceback:\n{tb_string}"
    )
    logger.error(f"DETAILED EXCEPTION REPORT:\n{report}")

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(
                text=GENERIC_ERROR_TEXT,
            )
        except Exception as e:
            logger.error(f"Failed to send the user-facing error message: {e}")

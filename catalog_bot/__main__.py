# catalog_bot/__main__.py

import os
from urllib.parse import urlparse

# RetryAfter.retry_after as a timedelta; must be set before PTB is imported
os.environ.setdefault("PTB_TIMEDELTA", "1")

from telegram import Update  # noqa: E402
from telegram.ext import (  # noqa: E402
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    MessageHandler,
    filters,
)

from catalog_bot.config import get_configuration, logger  # noqa: E402
from catalog_bot.handlers.callback_handlers import button_handler  # noqa: E402
from catalog_bot.handlers.command_handlers import (  # noqa: E402
    HELP_COMMAND_PATTERN,
    SEARCH_COMMAND_PATTERN,
    START_COMMAND_PATTERN,
    help_command,
    search_command,
    start_command,
)
from catalog_bot.handlers.error_handler import global_error_handler  # noqa: E402
from catalog_bot.handlers.message_handlers import handle_text_message  # noqa: E402
from catalog_bot.state import post_init, post_shutdown  # noqa: E402


def register_handlers(application: Application) -> None:
    """
    Registers all the command, message, and callback handlers for the bot.
    """
    # Commands match case-insensitively; /start may carry a deep-link payload
    application.add_handler(
        MessageHandler(filters.Regex(START_COMMAND_PATTERN), start_command)
    )
    application.add_handler(
        MessageHandler(filters.Regex(HELP_COMMAND_PATTERN), help_command)
    )
    application.add_handler(
        MessageHandler(filters.Regex(SEARCH_COMMAND_PATTERN), search_command)
    )

    # Callback Query Handler for all button presses
    application.add_handler(CallbackQueryHandler(button_handler))

    # Anything else gets a usage hint
    application.add_handler(MessageHandler(filters.TEXT, handle_text_message))

    application.add_error_handler(global_error_handler)

    logger.info("All handlers have been registered.")


def main() -> None:
    """
    Main function to initialize and run the Telegram bot.
    """
    logger.info("Starting bot...")

    config = get_configuration()

    application = (
        ApplicationBuilder()
        .token(config.token)
        .post_init(post_init)  # Opens the store, starts ingestion
        .post_shutdown(post_shutdown)  # Releases them again
        .build()
    )
    application.bot_data["CONFIG"] = config

    register_handlers(application)

    if config.webhook_url:
        logger.info(
            f"Bot startup complete. Listening for webhooks on port {config.webhook_port}..."
        )
        application.run_webhook(
            listen="0.0.0.0",
            port=config.webhook_port,
            url_path=urlparse(config.webhook_url).path.lstrip("/"),
            webhook_url=config.webhook_url,
            allowed_updates=Update.ALL_TYPES,
        )
    else:
        logger.info("Bot startup complete. Starting polling...")
        application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()

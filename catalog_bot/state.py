# catalog_bot/state.py

import asyncio

from telegram.ext import Application

from .config import BotConfig, logger
from .services.catalog_store import CatalogStore
from .services.delivery_service import DeliveryClient
from .services.ingestion_service import DirectoryWatcher, IngestionPipeline


async def post_init(application: Application) -> None:
    """
    Opens the catalog database, builds the delivery client and starts the
    ingestion watcher. Called once by the ApplicationBuilder; the objects
    created here live in bot_data until post_shutdown.
    """
    config: BotConfig = application.bot_data["CONFIG"]

    logger.info("--- Opening catalog store ---")
    store = CatalogStore(config.database_url)
    await store.create_all()
    application.bot_data["CATALOG_STORE"] = store

    delivery = DeliveryClient(
        application.bot,
        max_retries=config.delivery.max_retries,
        inter_message_delay=config.delivery.inter_message_delay,
    )
    application.bot_data["DELIVERY_CLIENT"] = delivery

    if config.ingest is None:
        logger.info("Ingestion disabled; only the browse bot is running.")
        return

    pipeline = IngestionPipeline(
        delivery,
        config.ingest.chat_id,
        caption_max_length=config.delivery.caption_max_length,
        store=store if config.ingest.record_catalog else None,
    )
    watcher = DirectoryWatcher(
        config.ingest.watch_directory, poll_interval=config.ingest.poll_interval
    )
    application.bot_data["INGEST_TASK"] = asyncio.create_task(pipeline.run(watcher))
    logger.info("--- Ingestion watcher started ---")


async def post_shutdown(application: Application) -> None:
    """Stops the ingestion watcher and releases the database engine."""
    logger.info("--- Shutting down ---")

    task = application.bot_data.pop("INGEST_TASK", None)
    if task is not None and not task.done():
        logger.info("Stopping ingestion watcher...")
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    store = application.bot_data.pop("CATALOG_STORE", None)
    if store is not None:
        await store.dispose()
        logger.info("Catalog store closed.")

    application.bot_data.pop("DELIVERY_CLIENT", None)
    logger.info("--- Shutdown complete. ---")

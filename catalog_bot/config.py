# catalog_bot/config.py

import configparser
import logging
import os
import sys
from dataclasses import dataclass

# --- Constants ---
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
VIDEO_EXTENSIONS = (".mkv", ".mp4")
SEARCH_RESULT_LIMIT = 10
MEDIA_GROUP_LIMIT = 10
DEFAULT_CAPTION_MAX_LENGTH = 1024
DEFAULT_INTER_MESSAGE_DELAY = 0.5
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_AFTER_SECONDS = 10.0
DEFAULT_DB_PATH = "./crawler.db"
DEFAULT_WEBHOOK_PORT = 3000
DEFAULT_POLL_INTERVAL = 2.0
CONFIG_FILE = "config.ini"

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)


@dataclass(frozen=True)
class IngestConfig:
    """Settings for the directory-watching ingestion pipeline."""

    watch_directory: str
    chat_id: int
    poll_interval: float = DEFAULT_POLL_INTERVAL
    record_catalog: bool = True


@dataclass(frozen=True)
class DeliveryConfig:
    caption_max_length: int = DEFAULT_CAPTION_MAX_LENGTH
    inter_message_delay: float = DEFAULT_INTER_MESSAGE_DELAY
    max_retries: int = DEFAULT_MAX_RETRIES


@dataclass(frozen=True)
class BotConfig:
    token: str
    database_url: str
    delivery: DeliveryConfig
    ingest: IngestConfig | None = None
    webhook_url: str | None = None
    webhook_port: int = DEFAULT_WEBHOOK_PORT


def get_configuration(config_path: str = CONFIG_FILE) -> BotConfig:
    """
    Reads the bot token, database location, delivery policy and ingestion
    settings. Values come from `config.ini` when it exists; environment
    variables always take precedence so the bot can run from the environment
    alone.
    """
    parser = configparser.ConfigParser()
    if os.path.exists(config_path):
        with open(config_path, encoding="utf-8") as f:
            parser.read_string(f.read())
        logger.info(f"[CONFIG] Loaded settings from '{config_path}'.")
    else:
        logger.info(
            f"[CONFIG] '{config_path}' not found. Reading settings from the environment."
        )

    token = _read(parser, "telegram", "bot_token", "TELEGRAM_BOT_API_KEY")
    if not token or token == "PLACE_TOKEN_HERE":
        logger.critical(
            "Bot token not set. Provide TELEGRAM_BOT_API_KEY or [telegram] bot_token."
        )
        sys.exit(1)

    webhook_url = _read(parser, "telegram", "webhook_url", "WEBHOOK_URL") or None
    webhook_port = _read_int(
        parser, "telegram", "port", "PORT", DEFAULT_WEBHOOK_PORT
    )

    db_path = _read(parser, "database", "path", "DB_PATH") or DEFAULT_DB_PATH
    database_url = f"sqlite+aiosqlite:///{os.path.expanduser(db_path)}"
    logger.info(f"[CONFIG] Catalog database: {db_path}")

    delivery = DeliveryConfig(
        caption_max_length=_read_int(
            parser,
            "delivery",
            "caption_max_length",
            "CAPTION_MAX_LENGTH",
            DEFAULT_CAPTION_MAX_LENGTH,
        ),
        inter_message_delay=_read_float(
            parser,
            "delivery",
            "inter_message_delay",
            "INTER_MESSAGE_DELAY",
            DEFAULT_INTER_MESSAGE_DELAY,
        ),
        max_retries=_read_int(
            parser, "delivery", "max_retries", "MAX_RETRIES", DEFAULT_MAX_RETRIES
        ),
    )
    if delivery.caption_max_length <= 0:
        raise ValueError("caption_max_length must be a positive integer.")
    if delivery.max_retries < 0:
        raise ValueError("max_retries cannot be negative.")

    return BotConfig(
        token=token,
        database_url=database_url,
        delivery=delivery,
        ingest=_load_ingest_config(parser),
        webhook_url=webhook_url,
        webhook_port=webhook_port,
    )


def _read(
    parser: configparser.ConfigParser, section: str, option: str, env_name: str
) -> str:
    """Returns the environment value if set, otherwise the ini value, stripped."""
    env_value = os.environ.get(env_name)
    if env_value is not None and env_value.strip():
        return env_value.strip()
    return parser.get(section, option, fallback="").strip()


def _read_int(
    parser: configparser.ConfigParser,
    section: str,
    option: str,
    env_name: str,
    default: int,
) -> int:
    raw = _read(parser, section, option, env_name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for '{option}' ({env_name}): {raw!r}")


def _read_float(
    parser: configparser.ConfigParser,
    section: str,
    option: str,
    env_name: str,
    default: float,
) -> float:
    raw = _read(parser, section, option, env_name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid number for '{option}' ({env_name}): {raw!r}")


def _load_ingest_config(parser: configparser.ConfigParser) -> IngestConfig | None:
    """
    Loads the ingestion settings. Ingestion is disabled when no watch
    directory is configured; the directory is created if it does not exist.
    """
    directory = _read(parser, "ingest", "watch_directory", "WATCH_DIRECTORY")
    if not directory:
        logger.info("No watch directory configured. Ingestion pipeline disabled.")
        return None

    chat_id_raw = _read(parser, "ingest", "chat_id", "INGEST_CHAT_ID")
    if not chat_id_raw:
        raise ValueError(
            "'chat_id' (INGEST_CHAT_ID) is mandatory when a watch directory is set."
        )
    try:
        chat_id = int(chat_id_raw)
    except ValueError:
        raise ValueError(f"Invalid ingest chat id: {chat_id_raw!r}")

    record_raw = _read(parser, "ingest", "record_catalog", "INGEST_RECORD_CATALOG")
    record_catalog = (
        record_raw.lower() not in ("0", "false", "no", "off") if record_raw else True
    )

    watch_directory = os.path.expanduser(directory)
    if not os.path.exists(watch_directory):
        logger.info(f"Watch directory '{watch_directory}' not found. Creating it.")
        os.makedirs(watch_directory)
    logger.info(f"[CONFIG] Watching '{watch_directory}' for link files.")

    return IngestConfig(
        watch_directory=watch_directory,
        chat_id=chat_id,
        poll_interval=_read_float(
            parser,
            "ingest",
            "poll_interval",
            "WATCH_POLL_INTERVAL",
            DEFAULT_POLL_INTERVAL,
        ),
        record_catalog=record_catalog,
    )

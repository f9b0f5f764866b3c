import itertools
import os
import sys
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Set PTB timedelta before importing telegram types; keep imports at top via noqa
os.environ.setdefault("PTB_TIMEDELTA", "1")
from telegram import Update, Message, Chat, User, CallbackQuery, Bot  # noqa: E402

# Ensure root path is available for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from catalog_bot.services.catalog_store import CatalogStore, NewMediaItem  # noqa: E402
from catalog_bot.services.delivery_service import DeliveryClient  # noqa: E402


@pytest.fixture
def user():
    return User(id=123, first_name="Test", is_bot=False)


@pytest.fixture
def chat():
    return Chat(id=456, type="private")


@pytest.fixture
def make_message(user, chat):
    def _make(text: str = "", message_id: int = 1):
        msg = Message(
            message_id=message_id,
            date=datetime.now(),
            chat=chat,
            from_user=user,
            text=text,
        )
        bot = Mock(spec=Bot)
        bot.delete_message = AsyncMock()
        bot.edit_message_text = AsyncMock()
        msg.set_bot(bot)
        return msg

    return _make


@pytest.fixture
def make_callback_query(user, make_message):
    def _make(data: str, message: Message | None = None):
        if message is None:
            message = make_message()
        return CallbackQuery(
            id="1", from_user=user, chat_instance="1", data=data, message=message
        )

    return _make


@pytest.fixture
def make_update():
    def _make(
        message: Message | None = None,
        callback_query: CallbackQuery | None = None,
        update_id: int = 1,
    ):
        return Update(
            update_id=update_id, message=message, callback_query=callback_query
        )

    return _make


@pytest.fixture
def bot(make_message):
    """Stand-in for telegram.Bot recording every outbound call."""
    message_ids = itertools.count(100)

    def _sent(**kwargs):
        return make_message(kwargs.get("text") or "", next(message_ids))

    return SimpleNamespace(
        send_message=AsyncMock(side_effect=_sent),
        send_photo=AsyncMock(side_effect=_sent),
        send_video=AsyncMock(side_effect=_sent),
        send_media_group=AsyncMock(
            side_effect=lambda **kwargs: [_sent() for _ in kwargs["media"]]
        ),
        delete_message=AsyncMock(return_value=True),
    )


@pytest.fixture
def delivery(bot):
    return DeliveryClient(bot, inter_message_delay=0)


@pytest.fixture
def context(bot, delivery):
    return SimpleNamespace(
        bot=bot,
        user_data={},
        bot_data={"DELIVERY_CLIENT": delivery, "CATALOG_STORE": Mock()},
    )


@pytest_asyncio.fixture
async def catalog_store(tmp_path):
    store = CatalogStore(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await store.create_all()
    yield store
    await store.dispose()


@pytest.fixture
def seed_catalog():
    """Adds an entry with the given media items and returns the entry id."""

    async def _seed(store: CatalogStore, name: str, items: list[NewMediaItem]) -> int:
        entry = await store.get_or_create_entry(name)
        await store.add_media_items(entry.id, items)
        return entry.id

    return _seed

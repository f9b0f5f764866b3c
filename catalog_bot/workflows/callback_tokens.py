from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

UNKNOWN_COMMAND_MESSAGE = "❌ Unknown command"
TOKEN_SEPARATOR = ":"
# Telegram rejects callback_data longer than this (UTF-8 bytes)
MAX_CALLBACK_DATA_BYTES = 64


class BrowseAction(str, Enum):
    """Every transition an inline button can request."""

    SEARCH_INIT = "search_init"
    HELP = "help"
    PAGE = "page"
    SEASON = "season"
    EPISODE = "episode"
    BACK_SEARCH = "back:search"
    BACK_PAGE = "back:page"


class MalformedCallbackToken(ValueError):
    """Raised for callback data that does not decode to a known transition."""

    def __init__(self, data: str, reason: str):
        super().__init__(f"Malformed callback token {data!r}: {reason}")
        self.data = data
        self.reason = reason


class UnencodableCallbackToken(ValueError):
    """Raised when a token cannot be carried in an inline button's callback data."""


@dataclass(frozen=True)
class CallbackToken:
    """
    Complete addressing context for the next screen.

    A token carries everything needed to render its screen, so browsing never
    depends on what the bot remembers about a chat.
    """

    action: BrowseAction
    entry_id: int | None = None
    season: str | None = None
    episode: str | None = None

    def encode(self) -> str:
        parts: list[str] = [self.action.value]
        if self.action in (
            BrowseAction.PAGE,
            BrowseAction.SEASON,
            BrowseAction.EPISODE,
            BrowseAction.BACK_PAGE,
        ):
            parts.append(str(self.entry_id))
        if self.action in (BrowseAction.SEASON, BrowseAction.EPISODE):
            parts.append(self.season or "")
        if self.action is BrowseAction.EPISODE:
            parts.append(self.episode or "")

        for value in parts[2:]:
            if TOKEN_SEPARATOR in value:
                raise UnencodableCallbackToken(
                    f"{value!r} contains the token separator {TOKEN_SEPARATOR!r}"
                )
        data = TOKEN_SEPARATOR.join(parts)
        if len(data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
            raise UnencodableCallbackToken(
                f"{data!r} exceeds {MAX_CALLBACK_DATA_BYTES} bytes"
            )
        return data

    @classmethod
    def page(cls, entry_id: int) -> "CallbackToken":
        return cls(BrowseAction.PAGE, entry_id=entry_id)

    @classmethod
    def season_of(cls, entry_id: int, season: str) -> "CallbackToken":
        return cls(BrowseAction.SEASON, entry_id=entry_id, season=season)

    @classmethod
    def episode_of(cls, entry_id: int, season: str, episode: str) -> "CallbackToken":
        return cls(
            BrowseAction.EPISODE, entry_id=entry_id, season=season, episode=episode
        )

    @classmethod
    def back_to_search(cls) -> "CallbackToken":
        return cls(BrowseAction.BACK_SEARCH)

    @classmethod
    def back_to_page(cls, entry_id: int) -> "CallbackToken":
        return cls(BrowseAction.BACK_PAGE, entry_id=entry_id)


# Expected field count (tag included) for each tag
_ARITY = {
    "search_init": 1,
    "help": 1,
    "page": 2,
    "season": 3,
    "episode": 4,
}


def decode_callback_token(data: str | None) -> CallbackToken:
    """
    Decodes inline-button callback data. Anything that is not exactly one of
    the known token shapes raises MalformedCallbackToken.
    """
    if not data:
        raise MalformedCallbackToken(data or "", "empty callback data")

    fields = data.split(TOKEN_SEPARATOR)
    tag = fields[0]

    if tag == "back":
        return _decode_back(data, fields[1:])

    expected = _ARITY.get(tag)
    if expected is None:
        raise MalformedCallbackToken(data, f"unknown tag '{tag}'")
    if len(fields) != expected:
        raise MalformedCallbackToken(
            data, f"'{tag}' expects {expected - 1} fields, got {len(fields) - 1}"
        )

    action = BrowseAction(tag)
    if action in (BrowseAction.SEARCH_INIT, BrowseAction.HELP):
        return CallbackToken(action)

    entry_id = _parse_entry_id(data, fields[1])
    if action is BrowseAction.PAGE:
        return CallbackToken.page(entry_id)
    if action is BrowseAction.SEASON:
        return CallbackToken.season_of(entry_id, fields[2])
    return CallbackToken.episode_of(entry_id, fields[2], fields[3])


def _decode_back(data: str, fields: list[str]) -> CallbackToken:
    if fields == ["search"]:
        return CallbackToken.back_to_search()
    if len(fields) == 2 and fields[0] == "page":
        return CallbackToken.back_to_page(_parse_entry_id(data, fields[1]))
    raise MalformedCallbackToken(data, "unknown back target")


def _parse_entry_id(data: str, raw: str) -> int:
    if not raw.isdigit():
        raise MalformedCallbackToken(data, f"invalid catalog entry id '{raw}'")
    return int(raw)

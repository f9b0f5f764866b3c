# catalog_bot/utils.py

import html
from datetime import timedelta
from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")


def escape_html(text: str) -> str:
    """
    Escapes `&`, `<` and `>` so arbitrary text (catalog names, file names)
    cannot inject formatting into an HTML parse-mode message.
    """
    return html.escape(str(text), quote=False)


def escape_html_attribute(text: str) -> str:
    """Like escape_html, but also escapes quotes for use inside href="..."."""
    return html.escape(str(text), quote=True)


def retry_after_seconds(retry_after: timedelta | float | int | None, default: float) -> float:
    """
    Normalizes the retry hint carried by a flood-control error to seconds.
    PTB reports it either as a timedelta or as a plain number of seconds.
    """
    if retry_after is None:
        return default
    if isinstance(retry_after, timedelta):
        return retry_after.total_seconds()
    try:
        return float(retry_after)
    except (TypeError, ValueError):
        return default


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Splits a sequence into consecutive lists of at most `size` items."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def unique_in_order(items: Iterable[T]) -> list[T]:
    """Drops repeated items while keeping the first-seen order."""
    seen: set = set()
    result: list[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result

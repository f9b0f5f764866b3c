# catalog_bot/services/caption_batcher.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..config import DEFAULT_CAPTION_MAX_LENGTH, logger
from ..utils import escape_html, escape_html_attribute
from .metadata_extractor import file_name_from_url

ELLIPSIS = "…"


@dataclass(frozen=True)
class CaptionBatch:
    """One outbound caption: the shared header followed by its link lines."""

    header: str
    lines: tuple[str, ...]
    urls: tuple[str, ...]

    @property
    def text(self) -> str:
        return self.header + "".join(self.lines)

    def __len__(self) -> int:
        return len(self.text)


def format_caption_header(title: str, resolution: str) -> str:
    """Bold title line, bold resolution line, blank line."""
    return f"<b>{escape_html(title)}</b>\n<b>{escape_html(resolution)}</b>\n\n"


def format_caption_line(label: str, url: str, link_text: str | None = None) -> str:
    """One `<label>: <link>` line, linked text defaulting to the URL's file name."""
    text = link_text if link_text is not None else file_name_from_url(url) or url
    return (
        f"{escape_html(label)}: "
        f'<a href="{escape_html_attribute(url)}">{escape_html(text)}</a>\n'
    )


def build_caption_batches(
    title: str,
    resolution: str,
    items: Iterable[tuple[str, str]],
    max_length: int = DEFAULT_CAPTION_MAX_LENGTH,
) -> list[CaptionBatch]:
    """
    Packs `(season_episode_label, url)` items into as few captions as a
    first-fit greedy pass allows.

    Every caption starts with the same header and no caption is longer than
    `max_length`. Items keep their input order and each one appears in exactly
    one caption, except an item whose href alone cannot fit, which is logged
    and left out.
    """
    header = format_caption_header(title, resolution)
    if len(header) >= max_length:
        raise ValueError(
            f"Caption header alone ({len(header)} chars) does not fit in {max_length}."
        )

    batches: list[CaptionBatch] = []
    lines: list[str] = []
    urls: list[str] = []
    length = len(header)

    for label, url in items:
        try:
            line = _fit_line(label, url, max_length - len(header))
        except ValueError as e:
            logger.warning(f"[CAPTION] Skipping link: {e}")
            continue
        if length + len(line) > max_length and lines:
            batches.append(CaptionBatch(header, tuple(lines), tuple(urls)))
            lines, urls, length = [], [], len(header)
        lines.append(line)
        urls.append(url)
        length += len(line)

    if lines:
        batches.append(CaptionBatch(header, tuple(lines), tuple(urls)))

    return batches


def _fit_line(label: str, url: str, budget: int) -> str:
    """
    Returns the formatted line, shortening its link text when the line cannot
    fit even in an otherwise empty caption. The href is never altered.
    """
    line = format_caption_line(label, url)
    if len(line) <= budget:
        return line

    link_text = file_name_from_url(url) or url
    while link_text:
        link_text = link_text[:-1]
        line = format_caption_line(label, url, link_text + ELLIPSIS)
        if len(line) <= budget:
            return line

    raise ValueError(f"Link line for {url!r} cannot fit in a {budget}-char caption.")

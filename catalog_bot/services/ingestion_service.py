# catalog_bot/services/ingestion_service.py

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Literal, Sequence

from ..config import DEFAULT_CAPTION_MAX_LENGTH, DEFAULT_POLL_INTERVAL, logger
from ..utils import unique_in_order
from .caption_batcher import CaptionBatch, build_caption_batches
from .catalog_store import CatalogStore, NewMediaItem, StoreQueryError
from .delivery_service import DeliveryClient, TransportError
from .metadata_extractor import (
    MediaKind,
    classify,
    display_name_from_path,
    extract_metadata,
)


@dataclass(frozen=True)
class FileEvent:
    kind: Literal["added", "changed"]
    path: Path


@dataclass
class MediaGroup:
    """A lead image and the videos listed after it, in file order."""

    lead_image_url: str
    video_urls: list[str] = field(default_factory=list)


@dataclass
class IngestionReport:
    path: Path
    groups: int = 0
    batches_sent: int = 0
    batches_failed: int = 0


class DirectoryWatcher:
    """
    Polls a directory and reports files that appear or change.

    A file counts as changed when its modification time or size differs from
    what was last reported. A new or changed file is only reported once its
    modification time and size have held still for one poll, so a file that
    is still being written is not read half-way. Files already present when
    watching starts form the baseline and are not reported.
    """

    def __init__(self, directory: str | Path, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.directory = Path(directory)
        self.poll_interval = poll_interval
        self._known: dict[Path, tuple[int, int]] = {}
        self._pending: dict[Path, tuple[int, int]] = {}

    def snapshot(self) -> dict[Path, tuple[int, int]]:
        files: dict[Path, tuple[int, int]] = {}
        try:
            with os.scandir(self.directory) as iterator:
                for entry in iterator:
                    try:
                        if not entry.is_file(follow_symlinks=False):
                            continue
                        stat = entry.stat(follow_symlinks=False)
                    except OSError as exc:
                        logger.info(f"Skipping unreadable entry '{entry.path}': {exc}")
                        continue
                    files[Path(entry.path)] = (stat.st_mtime_ns, stat.st_size)
        except OSError as exc:
            logger.error(f"[WATCH] Unable to scan '{self.directory}': {exc}")
        return files

    def prime(self) -> None:
        self._known = self.snapshot()
        self._pending = {}
        logger.info(
            f"[WATCH] Watching '{self.directory}' ({len(self._known)} existing files ignored)."
        )

    def scan(self) -> list[FileEvent]:
        current = self.snapshot()
        events: list[FileEvent] = []
        for path in sorted(current):
            stat = current[path]
            if self._known.get(path) == stat:
                self._pending.pop(path, None)
                continue
            if self._pending.get(path) != stat:
                # Still being written, or first seen on this poll
                self._pending[path] = stat
                continue

            del self._pending[path]
            kind = "changed" if path in self._known else "added"
            self._known[path] = stat
            events.append(FileEvent(kind, path))

        for tracked in (self._known, self._pending):
            for path in [path for path in tracked if path not in current]:
                del tracked[path]
        return events

    async def watch(self) -> AsyncIterator[FileEvent]:
        self.prime()
        while True:
            await asyncio.sleep(self.poll_interval)
            for event in self.scan():
                yield event


def parse_lines(text: str) -> list[str]:
    """Splits file content into stripped, non-blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def group_media(urls: Sequence[str]) -> list[MediaGroup]:
    """
    Builds media groups in file order. An image opens a new group and the
    videos that follow attach to it. Videos seen before any image have no
    group and are dropped; lines of unknown type are skipped.
    """
    groups: list[MediaGroup] = []
    current: MediaGroup | None = None

    for url in urls:
        kind = classify(url)
        if kind is MediaKind.IMAGE:
            current = MediaGroup(lead_image_url=url)
            groups.append(current)
        elif kind is MediaKind.VIDEO:
            if current is None:
                logger.debug(f"[INGEST] Dropping video with no preceding image: {url}")
                continue
            current.video_urls.append(url)
        else:
            logger.debug(f"[INGEST] Ignoring line of unknown media type: {url}")

    return groups


def partition_by_resolution(video_urls: Sequence[str]) -> dict[str, list[str]]:
    """Buckets videos by extracted resolution, keeping first-seen bucket order."""
    buckets: dict[str, list[str]] = {}
    for url in video_urls:
        buckets.setdefault(extract_metadata(url).resolution, []).append(url)
    return buckets


class IngestionPipeline:
    """
    Turns link files into chat posts: one photo per caption batch, captioned
    with the episode links for one resolution of one media group.

    There is no record of what was already posted, so processing the same
    file twice posts it twice.
    """

    def __init__(
        self,
        delivery: DeliveryClient,
        chat_id: int,
        *,
        caption_max_length: int = DEFAULT_CAPTION_MAX_LENGTH,
        store: CatalogStore | None = None,
    ):
        self.delivery = delivery
        self.chat_id = chat_id
        self.caption_max_length = caption_max_length
        self.store = store

    async def run(self, watcher: DirectoryWatcher) -> None:
        """Processes watcher events one at a time until cancelled."""
        async for event in watcher.watch():
            logger.info(f"[INGEST] File {event.kind}: {event.path}")
            try:
                await self.process_file(event.path)
            except Exception:
                logger.error(
                    f"[INGEST] Failed to process '{event.path}'.", exc_info=True
                )

    async def process_file(self, path: str | Path) -> IngestionReport:
        path = Path(path)
        report = IngestionReport(path=path)
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        title = display_name_from_path(path)
        groups = group_media(parse_lines(text))
        report.groups = len(groups)

        if not groups:
            logger.info(f"[INGEST] '{path.name}' contains no media groups.")
            return report

        first_delivery = True
        for group in groups:
            delivered_urls: list[str] = []
            for resolution_label, urls in partition_by_resolution(group.video_urls).items():
                try:
                    batches = build_caption_batches(
                        title,
                        resolution_label,
                        [(extract_metadata(url).season_episode_label, url) for url in urls],
                        max_length=self.caption_max_length,
                    )
                except ValueError as e:
                    logger.error(f"[INGEST] Cannot caption {resolution_label} links: {e}")
                    report.batches_failed += 1
                    continue

                for batch in batches:
                    if not first_delivery:
                        await self.delivery.throttle()
                    first_delivery = False
                    if await self._deliver_batch(group, batch):
                        report.batches_sent += 1
                        delivered_urls.extend(batch.urls)
                    else:
                        report.batches_failed += 1

            if self.store is not None:
                await self._record_group(title, group, delivered_urls)

        logger.info(
            f"[INGEST] '{path.name}': {report.groups} groups, "
            f"{report.batches_sent} batches sent, {report.batches_failed} failed."
        )
        return report

    async def _deliver_batch(self, group: MediaGroup, batch: CaptionBatch) -> bool:
        try:
            await self.delivery.send_photo(
                self.chat_id, group.lead_image_url, caption=batch.text
            )
            return True
        except TransportError as e:
            logger.error(
                f"[INGEST] Could not post batch for {group.lead_image_url}: {e}"
            )
            return False

    async def _record_group(
        self, title: str, group: MediaGroup, delivered_urls: Sequence[str]
    ) -> None:
        """
        Adds the group to the catalog under `title`. The lead image is stored
        once per episode it illustrates so each episode view includes it.
        """
        store = self.store
        if store is None:
            return

        delivered = set(delivered_urls)
        items: list[NewMediaItem] = []
        episodes: list[tuple[str | None, str | None]] = []

        for url in group.video_urls:
            meta = extract_metadata(url)
            season, episode = meta.season or None, meta.episode or None
            episodes.append((season, episode))
            items.append(
                NewMediaItem(
                    url=url,
                    kind=MediaKind.VIDEO.value,
                    season=season,
                    episode=episode,
                    resolution=meta.resolution,
                    delivered=url in delivered,
                )
            )

        if not episodes:
            meta = extract_metadata(group.lead_image_url)
            episodes.append((meta.season or None, meta.episode or None))

        lead_items = [
            NewMediaItem(
                url=group.lead_image_url,
                kind=MediaKind.IMAGE.value,
                season=season,
                episode=episode,
                delivered=bool(delivered),
            )
            for season, episode in unique_in_order(episodes)
        ]

        try:
            entry = await store.get_or_create_entry(title)
            await store.add_media_items(entry.id, lead_items + items)
        except StoreQueryError as e:
            logger.error(f"[INGEST] Could not record '{title}' in the catalog: {e}")

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from telegram.error import BadRequest

from catalog_bot.services.delivery_service import DeliveryClient
from catalog_bot.services.ingestion_service import (
    DirectoryWatcher,
    FileEvent,
    IngestionPipeline,
    MediaGroup,
    group_media,
    parse_lines,
    partition_by_resolution,
)

CDN = "https://cdn.example"
LINK_FILE = "\n".join(
    [
        f"{CDN}/img1.jpg",
        f"{CDN}/vid1.S01.E01.720p.mp4",
        f"{CDN}/vid2.S01.E01.1080p.mp4",
        "",
        f"{CDN}/img2.png",
        f"{CDN}/vid3.S01.E02.mp4",
    ]
)


def test_parse_lines_drops_blank_lines():
    assert parse_lines("  a \n\n\t\nb\r\n") == ["a", "b"]


def test_group_media_builds_image_led_groups():
    urls = [
        "img1.jpg",
        "vid1.S01.E01.720p.mp4",
        "vid2.S01.E01.1080p.mp4",
        "img2.png",
        "vid3.S01.E02.mp4",
    ]

    assert group_media(urls) == [
        MediaGroup("img1.jpg", ["vid1.S01.E01.720p.mp4", "vid2.S01.E01.1080p.mp4"]),
        MediaGroup("img2.png", ["vid3.S01.E02.mp4"]),
    ]


def test_group_media_drops_leading_videos_and_unknown_lines():
    urls = ["orphan.S01.E01.mp4", "notes.txt", "img1.jpg", "vid1.S01.E01.mp4"]

    assert group_media(urls) == [MediaGroup("img1.jpg", ["vid1.S01.E01.mp4"])]


def test_partition_by_resolution_keeps_first_seen_order():
    buckets = partition_by_resolution(
        ["a.S01.E01.1080p.mp4", "b.S01.E01.720p.mp4", "c.S01.E02.1080p.mp4", "d.mp4"]
    )

    assert list(buckets) == ["1080P", "720P", "Unknown Resolution"]
    assert buckets["1080P"] == ["a.S01.E01.1080p.mp4", "c.S01.E02.1080p.mp4"]


def _write_link_file(directory: Path, name: str = "My-Show.txt") -> Path:
    path = directory / name
    path.write_text(LINK_FILE, encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_process_file_posts_one_photo_per_batch(tmp_path, bot):
    pipeline = IngestionPipeline(DeliveryClient(bot, inter_message_delay=0), chat_id=-100)

    report = await pipeline.process_file(_write_link_file(tmp_path))

    assert report.groups == 2
    assert report.batches_sent == 3
    assert report.batches_failed == 0

    calls = [call.kwargs for call in bot.send_photo.await_args_list]
    assert [call["photo"] for call in calls] == [
        f"{CDN}/img1.jpg",
        f"{CDN}/img1.jpg",
        f"{CDN}/img2.png",
    ]
    assert all(call["chat_id"] == -100 for call in calls)
    assert calls[0]["caption"].startswith("<b>My Show</b>\n<b>720P</b>\n\n")
    assert "Season 01 Episode 01: " in calls[0]["caption"]
    assert calls[1]["caption"].startswith("<b>My Show</b>\n<b>1080P</b>\n\n")
    assert calls[2]["caption"].startswith("<b>My Show</b>\n<b>Unknown Resolution</b>\n\n")
    assert ">vid3.S01.E02.mp4</a>" in calls[2]["caption"]


@pytest.mark.asyncio
async def test_process_file_waits_between_batches(tmp_path, bot, mocker):
    sleep_mock = mocker.patch("asyncio.sleep", new=AsyncMock())
    pipeline = IngestionPipeline(DeliveryClient(bot, inter_message_delay=0.5), chat_id=1)

    await pipeline.process_file(_write_link_file(tmp_path))

    assert [call.args[0] for call in sleep_mock.await_args_list] == [0.5, 0.5]


@pytest.mark.asyncio
async def test_failed_batch_does_not_stop_the_file(tmp_path, bot, make_message):
    bot.send_photo.side_effect = [BadRequest("wrong file identifier"), make_message(), make_message()]
    pipeline = IngestionPipeline(DeliveryClient(bot, inter_message_delay=0), chat_id=1)

    report = await pipeline.process_file(_write_link_file(tmp_path))

    assert bot.send_photo.await_count == 3
    assert report.batches_sent == 2
    assert report.batches_failed == 1


@pytest.mark.asyncio
async def test_reprocessing_a_file_posts_again(tmp_path, bot):
    pipeline = IngestionPipeline(DeliveryClient(bot, inter_message_delay=0), chat_id=1)
    path = _write_link_file(tmp_path)

    await pipeline.process_file(path)
    await pipeline.process_file(path)

    assert bot.send_photo.await_count == 6


@pytest.mark.asyncio
async def test_small_caption_limit_splits_batches(tmp_path, bot):
    lines = [f"{CDN}/poster.jpg"] + [
        f"{CDN}/show.S01.E{i:02d}.720p.mp4" for i in range(1, 21)
    ]
    path = tmp_path / "Show.txt"
    path.write_text("\n".join(lines), encoding="utf-8")
    pipeline = IngestionPipeline(
        DeliveryClient(bot, inter_message_delay=0), chat_id=1, caption_max_length=400
    )

    report = await pipeline.process_file(path)

    captions = [call.kwargs["caption"] for call in bot.send_photo.await_args_list]
    assert report.batches_sent == len(captions) > 1
    assert all(len(caption) <= 400 for caption in captions)
    assert sum(caption.count("<a href=") for caption in captions) == 20


@pytest.mark.asyncio
async def test_process_file_records_catalog(tmp_path, bot, catalog_store):
    pipeline = IngestionPipeline(
        DeliveryClient(bot, inter_message_delay=0), chat_id=1, store=catalog_store
    )

    await pipeline.process_file(_write_link_file(tmp_path))

    entries = await catalog_store.find_catalog_entries("my show")
    assert [entry.name for entry in entries] == ["My Show"]
    entry_id = entries[0].id
    assert await catalog_store.distinct_seasons(entry_id) == ["Season 01"]
    assert await catalog_store.distinct_episodes(entry_id, "Season 01") == [
        "Episode 01",
        "Episode 02",
    ]
    media = await catalog_store.media_for(entry_id, "Season 01", "Episode 01")
    assert [(item.kind, item.url) for item in media] == [
        ("image", f"{CDN}/img1.jpg"),
        ("video", f"{CDN}/vid1.S01.E01.720p.mp4"),
        ("video", f"{CDN}/vid2.S01.E01.1080p.mp4"),
    ]
    assert all(item.delivered for item in media)


def test_directory_watcher_reports_added_and_changed_files(tmp_path):
    existing = tmp_path / "old.txt"
    existing.write_text("a", encoding="utf-8")
    watcher = DirectoryWatcher(tmp_path, poll_interval=0)
    watcher.prime()

    assert watcher.scan() == []

    new_file = tmp_path / "new.txt"
    new_file.write_text("b", encoding="utf-8")
    assert watcher.scan() == []
    assert watcher.scan() == [FileEvent("added", new_file)]

    existing.write_text("a longer body", encoding="utf-8")
    assert watcher.scan() == []
    assert watcher.scan() == [FileEvent("changed", existing)]
    assert watcher.scan() == []


def test_directory_watcher_waits_for_file_to_stop_growing(tmp_path):
    watcher = DirectoryWatcher(tmp_path, poll_interval=0)
    watcher.prime()
    growing = tmp_path / "growing.txt"

    growing.write_text("https://cdn.example/a.jpg\n", encoding="utf-8")
    assert watcher.scan() == []

    with growing.open("a", encoding="utf-8") as f:
        f.write("https://cdn.example/a.S01.E01.mp4\n")
    assert watcher.scan() == []

    assert watcher.scan() == [FileEvent("added", growing)]
    assert watcher.scan() == []


def test_directory_watcher_forgets_deleted_files(tmp_path):
    watcher = DirectoryWatcher(tmp_path, poll_interval=0)
    watcher.prime()
    path = tmp_path / "links.txt"
    path.write_text("x", encoding="utf-8")
    watcher.scan()
    assert watcher.scan() == [FileEvent("added", path)]

    path.unlink()
    assert watcher.scan() == []

    path.write_text("x", encoding="utf-8")
    watcher.scan()
    assert watcher.scan() == [FileEvent("added", path)]


@pytest.mark.asyncio
async def test_run_isolates_failing_files(tmp_path, bot, mocker):
    events = [FileEvent("added", tmp_path / "bad.txt"), FileEvent("added", tmp_path / "good.txt")]

    async def fake_watch():
        for event in events:
            yield event

    watcher = DirectoryWatcher(tmp_path)
    mocker.patch.object(watcher, "watch", fake_watch)
    pipeline = IngestionPipeline(DeliveryClient(bot, inter_message_delay=0), chat_id=1)
    process_mock = mocker.patch.object(
        pipeline, "process_file", AsyncMock(side_effect=[FileNotFoundError("gone"), None])
    )

    await pipeline.run(watcher)

    assert [call.args[0] for call in process_mock.await_args_list] == [
        tmp_path / "bad.txt",
        tmp_path / "good.txt",
    ]


@pytest.mark.asyncio
async def test_unpostable_link_does_not_drop_its_bucket(tmp_path, bot):
    huge_url = f"{CDN}/" + "y" * 1100 + ".S01.E02.720p.mp4"
    path = tmp_path / "Show.txt"
    path.write_text(
        "\n".join([f"{CDN}/poster.jpg", f"{CDN}/ok.S01.E01.720p.mp4", huge_url]),
        encoding="utf-8",
    )
    pipeline = IngestionPipeline(DeliveryClient(bot, inter_message_delay=0), chat_id=1)

    report = await pipeline.process_file(path)

    assert report.batches_sent == 1
    assert report.batches_failed == 0
    caption = bot.send_photo.await_args.kwargs["caption"]
    assert ">ok.S01.E01.720p.mp4</a>" in caption
    assert huge_url not in caption


@pytest.mark.asyncio
async def test_file_names_with_hash_map_to_separate_entries(tmp_path, bot, catalog_store):
    pipeline = IngestionPipeline(
        DeliveryClient(bot, inter_message_delay=0), chat_id=1, store=catalog_store
    )

    await pipeline.process_file(_write_link_file(tmp_path, "Show #1.txt"))
    await pipeline.process_file(_write_link_file(tmp_path, "Show #2.txt"))

    entries = await catalog_store.find_catalog_entries("show #")
    assert [entry.name for entry in entries] == ["Show #1", "Show #2"]
    assert bot.send_photo.await_args.kwargs["caption"].startswith("<b>Show #2</b>")

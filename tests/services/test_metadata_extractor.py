import pytest

from catalog_bot.services.metadata_extractor import (
    UNKNOWN_RESOLUTION,
    UNKNOWN_SEASON_EPISODE,
    MediaKind,
    classify,
    display_name,
    display_name_from_path,
    extract_metadata,
    file_name_from_url,
    resolution,
    season_episode,
    season_episode_label,
)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://cdn.example/poster.jpg", MediaKind.IMAGE),
        ("https://cdn.example/poster.JPEG", MediaKind.IMAGE),
        ("https://cdn.example/poster.png?size=large", MediaKind.IMAGE),
        ("https://cdn.example/show.S01.E01.720p.mp4", MediaKind.VIDEO),
        ("https://cdn.example/show.S01.E01.1080p.MKV", MediaKind.VIDEO),
        ("https://cdn.example/readme.txt", MediaKind.UNKNOWN),
        ("https://cdn.example/folder/", MediaKind.UNKNOWN),
    ],
)
def test_classify_by_extension(url, expected):
    assert classify(url) == expected


def test_file_name_from_url_ignores_query_and_decodes():
    url = "https://cdn.example/a/b/My%20Show.S01.E02.mkv?token=abc#frag"
    assert file_name_from_url(url) == "My Show.S01.E02.mkv"


def test_display_name_strips_extension_and_dashes():
    assert display_name("https://cdn.example/The-Last-Show.jpg") == "The Last Show"
    assert display_name("West-Side-Story.txt") == "West Side Story"


def test_display_name_from_path_keeps_url_special_characters(tmp_path):
    assert display_name_from_path("Show #2.txt") == "Show #2"
    assert display_name_from_path(tmp_path / "What-If?.txt") == "What If?"
    assert display_name_from_path("West-Side-Story.txt") == "West Side Story"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("show.S01.E03.1080p.mkv", ("Season 01", "Episode 03")),
        ("https://cdn.example/show.s2.e10.720p.mp4", ("Season 2", "Episode 10")),
        ("show.S01.04.mkv", ("Season 01", "Episode 04")),
        ("show.07.mp4", ("", "Episode 07")),
        ("show.mp4", ("", UNKNOWN_SEASON_EPISODE)),
        ("show.S01.123.mp4", ("", UNKNOWN_SEASON_EPISODE)),
    ],
)
def test_season_episode_conventions(url, expected):
    assert season_episode(url) == expected


def test_season_episode_label_joins_parts():
    assert season_episode_label("show.S01.E03.mkv") == "Season 01 Episode 03"
    assert season_episode_label("show.07.mp4") == "Episode 07"
    assert season_episode_label("show.mp4") == UNKNOWN_SEASON_EPISODE


@pytest.mark.parametrize(
    "url, expected",
    [
        ("show.S01.E03.1080p.mkv", "1080P"),
        ("show.S01.E03.720P.mp4", "720P"),
        ("show.480p.mp4", "480P"),
        ("show.2160p.mp4", UNKNOWN_RESOLUTION),
        ("show-1080p.mp4", UNKNOWN_RESOLUTION),
    ],
)
def test_resolution(url, expected):
    assert resolution(url) == expected


def test_extract_metadata_keeps_sentinels_for_unparseable_names():
    meta = extract_metadata("https://cdn.example/Random-Clip.mp4")

    assert meta.kind is MediaKind.VIDEO
    assert meta.display_name == "Random Clip"
    assert meta.season == ""
    assert meta.episode == UNKNOWN_SEASON_EPISODE
    assert meta.resolution == UNKNOWN_RESOLUTION
    assert meta.season_episode_label == UNKNOWN_SEASON_EPISODE

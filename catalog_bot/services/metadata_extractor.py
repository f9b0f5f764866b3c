# catalog_bot/services/metadata_extractor.py

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import unquote, urlparse

from ..config import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS

UNKNOWN_SEASON_EPISODE = "Unknown Season and Episode"
UNKNOWN_RESOLUTION = "Unknown Resolution"

# Tokens are only recognised when they sit between dots, e.g. "Show.S01.E03.mkv"
_SEASON_EPISODE_PATTERN = re.compile(
    r"\.S(\d+)\.(?:E(\d+)|(\d{2}))(?=\.)", re.IGNORECASE
)
_BARE_EPISODE_PATTERN = re.compile(r"\.(\d{2})(?=\.)")
_RESOLUTION_PATTERN = re.compile(r"\.(480p|720p|1080p)(?=\.)", re.IGNORECASE)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MediaMetadata:
    """Everything the naming conventions of a media URL can tell us."""

    kind: MediaKind
    display_name: str
    season: str
    episode: str
    resolution: str

    @property
    def season_episode_label(self) -> str:
        return _join_season_episode(self.season, self.episode)


def file_name_from_url(url: str) -> str:
    """
    Returns the final path segment of a URL with percent-escapes decoded.
    Query strings and fragments are ignored. Plain file names are returned as-is.
    """
    path = urlparse(url.strip()).path
    segment = path.rstrip("/").rsplit("/", 1)[-1]
    return unquote(segment)


def classify(url: str) -> MediaKind:
    """Classifies a URL as image, video or unknown by its file extension."""
    _, extension = os.path.splitext(file_name_from_url(url))
    extension = extension.lower()
    if extension in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE
    if extension in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    return MediaKind.UNKNOWN


def display_name(url: str) -> str:
    """
    Derives a human-readable name from a URL's file name.

    Examples:
        - "https://cdn.example/The-Last-Show.jpg" -> "The Last Show"
        - "Some-Show.S01.E03.mkv" -> "Some Show.S01.E03"
    """
    stem, _ = os.path.splitext(file_name_from_url(url))
    return stem.replace("-", " ").strip()


def display_name_from_path(path: str | Path) -> str:
    """
    Same naming rule for a local file. The name is taken literally, so
    characters such as `#` or `?` are kept rather than read as URL parts.
    """
    return Path(path).stem.replace("-", " ").strip()


def season_episode(url: str) -> tuple[str, str]:
    """
    Extracts season and episode labels from the URL's file name.

    Returns ("Season NN", "Episode MM") for the `S<n>.E<m>` / `S<n>.<mm>`
    convention, ("", "Episode NN") for a bare two-digit episode number, and
    ("", UNKNOWN_SEASON_EPISODE) when neither convention matches. Leading zeros
    are kept as they appear in the source.
    """
    name = file_name_from_url(url)

    match = _SEASON_EPISODE_PATTERN.search(name)
    if match:
        episode = match.group(2) or match.group(3)
        return f"Season {match.group(1)}", f"Episode {episode}"

    match = _BARE_EPISODE_PATTERN.search(name)
    if match:
        return "", f"Episode {match.group(1)}"

    return "", UNKNOWN_SEASON_EPISODE


def season_episode_label(url: str) -> str:
    """Joins the season and episode labels into a single display string."""
    return _join_season_episode(*season_episode(url))


def resolution(url: str) -> str:
    """Returns "480P", "720P" or "1080P" when tagged, else UNKNOWN_RESOLUTION."""
    match = _RESOLUTION_PATTERN.search(file_name_from_url(url))
    if match:
        return match.group(1).upper()
    return UNKNOWN_RESOLUTION


def extract_metadata(url: str) -> MediaMetadata:
    season, episode = season_episode(url)
    return MediaMetadata(
        kind=classify(url),
        display_name=display_name(url),
        season=season,
        episode=episode,
        resolution=resolution(url),
    )


def _join_season_episode(season: str, episode: str) -> str:
    if season:
        return f"{season} {episode}"
    return episode

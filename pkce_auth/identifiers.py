"""Spotify identifier parsing and validation.

Extracts the category and ID from Spotify URIs and open.spotify.com URLs and
checks the category against what an endpoint accepts.

Supports these formats:
    - spotify:track:6rqhFgbbKwnb9MLmUQDhG6
    - spotify:local:Artist:Album:Title:215
    - https://open.spotify.com/track/6rqhFgbbKwnb9MLmUQDhG6?si=abc123
    - https://open.spotify.com/intl-de/album/4aawyAB9vmqN3uQ7FjRGTy
    - 6rqhFgbbKwnb9MLmUQDhG6  (bare ID, only when a single category is expected)
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from .constants import LOGGER, SPOTIFY_OPEN_URL
from .errors import IdentifierParsingError, InvalidURIType


class IDCategory(str, Enum):
    ARTIST = "artist"
    ALBUM = "album"
    TRACK = "track"
    PLAYLIST = "playlist"
    SHOW = "show"
    EPISODE = "episode"
    AUDIOBOOK = "audiobook"
    CHAPTER = "chapter"
    USER = "user"
    LOCAL = "local"
    GENRE = "genre"


# Base-62 resource IDs; user IDs are free-form and validated separately.
SPOTIFY_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]{22}$")
_USER_ID_PATTERN = re.compile(r"^[^\s:/?#]+$")
_LOCALE_SEGMENT = re.compile(r"^intl-[a-z]{2}(?:[-_][a-z]{2})?$", re.IGNORECASE)
_OPEN_SPOTIFY_HOSTS = {"open.spotify.com", "play.spotify.com"}


@dataclass(frozen=True)
class SpotifyIdentifier:
    id: str
    category: IDCategory

    @property
    def uri(self) -> str:
        return f"spotify:{self.category.value}:{self.id}"

    @property
    def url(self) -> str:
        return f"{SPOTIFY_OPEN_URL}/{self.category.value}/{self.id}"


def _category_from(raw: str, identifier: str) -> IDCategory:
    try:
        return IDCategory(raw.lower())
    except ValueError:
        raise IdentifierParsingError(
            f"unknown identifier category {raw!r} in {identifier!r}"
        ) from None


def _check_id(resource_id: str, category: IDCategory, identifier: str) -> str:
    if category is IDCategory.USER:
        valid = bool(_USER_ID_PATTERN.match(resource_id))
    elif category is IDCategory.GENRE:
        valid = bool(resource_id)
    else:
        valid = bool(SPOTIFY_ID_PATTERN.match(resource_id))
    if not valid:
        raise IdentifierParsingError(
            f"invalid {category.value} id {resource_id!r} in {identifier!r}"
        )
    return resource_id


def _parse_uri(identifier: str) -> SpotifyIdentifier:
    parts = identifier.split(":")
    if len(parts) < 3 or parts[0] != "spotify":
        raise IdentifierParsingError(f"could not parse Spotify URI {identifier!r}")

    category = _category_from(parts[1], identifier)
    if category is IDCategory.LOCAL:
        # spotify:local:artist:album:title:duration carries no base-62 id.
        return SpotifyIdentifier(id=":".join(parts[2:]), category=category)

    if len(parts) != 3:
        raise IdentifierParsingError(f"could not parse Spotify URI {identifier!r}")
    return SpotifyIdentifier(id=_check_id(parts[2], category, identifier), category=category)


def _parse_url(identifier: str) -> SpotifyIdentifier:
    parsed = urlparse(identifier if "://" in identifier else f"https://{identifier}")
    if parsed.hostname not in _OPEN_SPOTIFY_HOSTS:
        raise IdentifierParsingError(f"not a Spotify URL: {identifier!r}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    if segments and _LOCALE_SEGMENT.match(segments[0]):
        segments = segments[1:]
    if len(segments) != 2:
        raise IdentifierParsingError(f"could not parse Spotify URL {identifier!r}")

    category = _category_from(segments[0], identifier)
    return SpotifyIdentifier(id=_check_id(segments[1], category, identifier), category=category)


def parse_identifier(
    identifier: str,
    expected_categories: Sequence[IDCategory] | None = None,
) -> SpotifyIdentifier:
    """Parse a Spotify URI, URL or bare ID into its ID and category.

    A bare ID carries no category, so it is accepted only when exactly one
    category is expected.
    """
    if not isinstance(identifier, str) or not identifier.strip():
        raise IdentifierParsingError("identifier is empty")

    cleaned = identifier.strip()
    if cleaned.startswith("spotify:"):
        parsed = _parse_uri(cleaned)
    elif "spotify.com" in cleaned:
        parsed = _parse_url(cleaned)
    elif SPOTIFY_ID_PATTERN.match(cleaned):
        if not expected_categories or len(expected_categories) != 1:
            raise IdentifierParsingError(
                f"cannot infer the category of bare id {cleaned!r}"
            )
        parsed = SpotifyIdentifier(id=cleaned, category=expected_categories[0])
    else:
        raise IdentifierParsingError(f"could not parse Spotify identifier {cleaned!r}")

    LOGGER.debug("Parsed %s identifier %s", parsed.category.value, parsed.id)
    return parsed


def validate(identifier: str, expected_categories: Sequence[IDCategory]) -> IDCategory:
    """Return the category of ``identifier`` if it is one of ``expected_categories``.

    Raises:
        IdentifierParsingError: The identifier is malformed.
        InvalidURIType: The identifier belongs to an unexpected category.
    """
    expected = tuple(expected_categories)
    if not expected:
        raise ValueError("expected_categories must not be empty")

    parsed = parse_identifier(identifier, expected)
    if parsed.category not in expected:
        raise InvalidURIType(expected=expected, received=parsed.category)
    return parsed.category

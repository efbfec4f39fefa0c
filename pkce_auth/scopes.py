from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum


class Scope(str, Enum):
    """Authorization scopes understood by the Spotify accounts service."""

    UGC_IMAGE_UPLOAD = "ugc-image-upload"
    USER_READ_PLAYBACK_STATE = "user-read-playback-state"
    USER_MODIFY_PLAYBACK_STATE = "user-modify-playback-state"
    USER_READ_CURRENTLY_PLAYING = "user-read-currently-playing"
    APP_REMOTE_CONTROL = "app-remote-control"
    STREAMING = "streaming"
    PLAYLIST_READ_PRIVATE = "playlist-read-private"
    PLAYLIST_READ_COLLABORATIVE = "playlist-read-collaborative"
    PLAYLIST_MODIFY_PRIVATE = "playlist-modify-private"
    PLAYLIST_MODIFY_PUBLIC = "playlist-modify-public"
    USER_FOLLOW_MODIFY = "user-follow-modify"
    USER_FOLLOW_READ = "user-follow-read"
    USER_READ_PLAYBACK_POSITION = "user-read-playback-position"
    USER_TOP_READ = "user-top-read"
    USER_READ_RECENTLY_PLAYED = "user-read-recently-played"
    USER_LIBRARY_MODIFY = "user-library-modify"
    USER_LIBRARY_READ = "user-library-read"
    USER_READ_EMAIL = "user-read-email"
    USER_READ_PRIVATE = "user-read-private"


def _scope_value(scope: Scope | str) -> str:
    if isinstance(scope, Scope):
        return scope.value
    return str(scope)


@dataclass(frozen=True)
class ScopeSet:
    """Immutable set of scope strings.

    Order is irrelevant and duplicates collapse. ``Scope`` members and plain
    strings are interchangeable.
    """

    scopes: frozenset[str] = field(default_factory=frozenset)

    def __init__(self, scopes: Iterable[Scope | str] = ()) -> None:
        if isinstance(scopes, (str, Scope)):
            scopes = (scopes,)
        object.__setattr__(self, "scopes", frozenset(_scope_value(scope) for scope in scopes))

    @classmethod
    def parse(cls, raw: str | None) -> "ScopeSet":
        if not raw:
            return cls()
        return cls(raw.split())

    def to_string(self) -> str:
        return " ".join(sorted(self.scopes))

    def __contains__(self, scope: object) -> bool:
        if not isinstance(scope, (str, Scope)):
            return False
        return _scope_value(scope) in self.scopes

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.scopes))

    def __len__(self) -> int:
        return len(self.scopes)

    def __bool__(self) -> bool:
        return bool(self.scopes)

    def issubset(self, other: "ScopeSet | Iterable[Scope | str]") -> bool:
        return self.scopes <= _coerce(other).scopes

    def union(self, other: "ScopeSet | Iterable[Scope | str]") -> "ScopeSet":
        return ScopeSet(self.scopes | _coerce(other).scopes)

    def difference(self, other: "ScopeSet | Iterable[Scope | str]") -> "ScopeSet":
        return ScopeSet(self.scopes - _coerce(other).scopes)

    def __or__(self, other: "ScopeSet") -> "ScopeSet":
        return self.union(other)

    def __le__(self, other: "ScopeSet") -> bool:
        return self.issubset(other)

    def __repr__(self) -> str:
        return f"ScopeSet({sorted(self.scopes)!r})"


def _coerce(value: ScopeSet | Iterable[Scope | str]) -> ScopeSet:
    if isinstance(value, ScopeSet):
        return value
    return ScopeSet(value)

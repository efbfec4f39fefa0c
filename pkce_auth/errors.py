"""Errors raised by the credential lifecycle.

``SpotifyLocalError`` is the closed family of failures detected locally,
before or instead of a network call. Each variant keeps the structured fields
its message is rendered from, so callers can branch on the type and inspect
the fields without parsing text.

``AuthorizationServerError`` is the remote counterpart: an OAuth error that
the Spotify accounts service reported. Transport failures are not wrapped and
surface as ``httpx.HTTPError``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from .constants import MAX_PAYLOAD_CHARS
from .scopes import ScopeSet

if TYPE_CHECKING:
    from .identifiers import IDCategory


def bounded_repr(payload: Any, limit: int = MAX_PAYLOAD_CHARS) -> str:
    text = repr(payload)
    if len(text) > limit:
        text = text[:limit] + "...<truncated>"
    return text


class SpotifyLocalError(Exception):
    """Base class for failures that are not produced by the Spotify web API."""

    summary = "local error"

    def __post_init__(self) -> None:
        Exception.__init__(self, *self._fields())
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False) and name in {field.name for field in fields(self)}:
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), self._fields())

    def describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()

    def _fields(self) -> tuple[Any, ...]:
        return tuple(getattr(self, field.name) for field in fields(self))

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._fields() == other._fields()

    def __hash__(self) -> int:
        return hash((type(self), self._fields()))


@dataclass(eq=False)
class Unauthorized(SpotifyLocalError):
    """An operation that needs a credential ran before one was established."""

    message: str

    summary = "unauthorized"

    def describe(self) -> str:
        return self.message


@dataclass(eq=False)
class InvalidState(SpotifyLocalError):
    """The redirect state did not match the state issued for the attempt.

    ``supplied`` is the state this client issued, ``received`` the one found
    in the redirect URI. Either may be ``None``.
    """

    supplied: str | None
    received: str | None

    summary = "invalid state"

    def describe(self) -> str:
        supplied = "nil" if self.supplied is None else self.supplied
        received = "nil" if self.received is None else self.received
        return (
            "The value for the state parameter provided when requesting access "
            f"and refresh tokens '{supplied}' did not match the value in the "
            f"query string of the redirect URI: '{received}'"
        )


@dataclass(eq=False)
class IdentifierParsingError(SpotifyLocalError):
    message: str

    summary = "identifier parsing error"

    def describe(self) -> str:
        return f"identifier parsing error: {self.message}"


@dataclass(eq=False)
class InsufficientScope(SpotifyLocalError):
    required: ScopeSet
    authorized: ScopeSet

    summary = "insufficient scope"

    @property
    def missing(self) -> ScopeSet:
        return self.required.difference(self.authorized)

    def describe(self) -> str:
        return (
            "The endpoint you tried to access requires the following scopes: "
            f"{list(self.required)} but your app is only authorized for these "
            f"scopes: {list(self.authorized)}"
        )


@dataclass(eq=False)
class InvalidURIType(SpotifyLocalError):
    expected: tuple[IDCategory, ...]
    received: IDCategory

    summary = "invalid URI type"

    def __post_init__(self) -> None:
        self.expected = tuple(self.expected)
        super().__post_init__()

    def describe(self) -> str:
        expected = [category.value for category in self.expected]
        return (
            f"expected URI to be one of the following types: {expected}, "
            f"but received {self.received.value}"
        )


@dataclass(eq=False)
class TopLevelKeyNotFound(SpotifyLocalError):
    """A response was expected to carry its data under ``key`` but did not.

    ``payload`` holds a bounded rendering of the response, captured when the
    error is built.
    """

    key: str
    payload: str

    summary = "top-level key not found"

    def __post_init__(self) -> None:
        if not isinstance(self.payload, str):
            self.payload = bounded_repr(self.payload)
        elif len(self.payload) > MAX_PAYLOAD_CHARS:
            self.payload = self.payload[:MAX_PAYLOAD_CHARS] + "...<truncated>"
        super().__post_init__()

    def describe(self) -> str:
        return (
            f"The expected top level key '{self.key}' was not found in the "
            f"dictionary: {self.payload}"
        )


@dataclass(eq=False)
class Other(SpotifyLocalError):
    message: str

    summary = "other"

    def describe(self) -> str:
        return self.message


LOCAL_ERROR_TYPES = (
    Unauthorized,
    InvalidState,
    IdentifierParsingError,
    InsufficientScope,
    InvalidURIType,
    TopLevelKeyNotFound,
    Other,
)


class AuthorizationServerError(RuntimeError):
    """An OAuth error reported by the Spotify accounts service."""

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.error = error
        self.error_description = error_description
        self.status_code = status_code
        detail = f"{error}: {error_description}" if error_description else error
        if status_code is not None:
            detail = f"{detail} (status {status_code})"
        super().__init__(f"Spotify authorization server error {detail}")

    @classmethod
    def from_payload(cls, payload: Any, *, status_code: int | None = None) -> "AuthorizationServerError":
        if isinstance(payload, dict) and isinstance(payload.get("error"), str):
            description = payload.get("error_description")
            return cls(
                payload["error"],
                description if isinstance(description, str) else None,
                status_code=status_code,
            )
        return cls("unknown_error", bounded_repr(payload), status_code=status_code)

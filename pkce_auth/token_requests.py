"""Form bodies for the Spotify token endpoint.

Token requests must be form encoded, not JSON. Both grants here belong to the
PKCE flow, so neither carries a client secret.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from typing import ClassVar

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


def _require_text(name: str, value: object) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")


@dataclass(frozen=True)
class PKCERefreshTokenRequest:
    """Refresh-token grant for the PKCE flow.

    A PKCE refresh token can be exchanged only once. Spotify answers with a
    new refresh token alongside the new access token.
    """

    grant_type: ClassVar[str] = "refresh_token"

    refresh_token: str
    client_id: str

    def __post_init__(self) -> None:
        _require_text("refresh_token", self.refresh_token)
        _require_text("client_id", self.client_id)

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
        }

    def form_urlencoded(self) -> bytes:
        return urllib.parse.urlencode(self.to_form_data()).encode("ascii")

    def __repr__(self) -> str:
        return f"PKCERefreshTokenRequest(client_id={self.client_id!r})"


@dataclass(frozen=True)
class PKCETokenExchangeRequest:
    grant_type: ClassVar[str] = "authorization_code"

    code: str
    code_verifier: str
    redirect_uri: str
    client_id: str

    def __post_init__(self) -> None:
        _require_text("code", self.code)
        _require_text("code_verifier", self.code_verifier)
        _require_text("redirect_uri", self.redirect_uri)
        _require_text("client_id", self.client_id)

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "code_verifier": self.code_verifier,
        }

    def form_urlencoded(self) -> bytes:
        return urllib.parse.urlencode(self.to_form_data()).encode("ascii")

    def __repr__(self) -> str:
        return (
            f"PKCETokenExchangeRequest(client_id={self.client_id!r}, "
            f"redirect_uri={self.redirect_uri!r})"
        )

from __future__ import annotations

import base64
import hashlib
import secrets
import urllib.parse
from dataclasses import dataclass

from .constants import SPOTIFY_AUTHORIZE_URL
from .scopes import ScopeSet


def generate_code_verifier() -> str:
    while True:
        verifier = secrets.token_urlsafe(64)
        if 43 <= len(verifier) <= 128:
            return verifier


def generate_code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_state() -> str:
    return secrets.token_urlsafe(32)


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: ScopeSet,
    state: str,
    code_challenge: str,
    *,
    show_dialog: bool = False,
    authorize_url: str = SPOTIFY_AUTHORIZE_URL,
) -> str:
    query = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "code_challenge_method": "S256",
        "code_challenge": code_challenge,
        "state": state,
    }
    if scopes:
        query["scope"] = scopes.to_string()
    if show_dialog:
        query["show_dialog"] = "true"
    return f"{authorize_url}?{urllib.parse.urlencode(query)}"


@dataclass(frozen=True)
class RedirectQuery:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None


def parse_redirect_query(redirect_uri_with_query: str) -> RedirectQuery:
    parsed = urllib.parse.urlparse(redirect_uri_with_query)
    query = urllib.parse.parse_qs(parsed.query, keep_blank_values=True)

    def _single(key: str) -> str | None:
        values = query.get(key, [])
        return values[0] if values else None

    return RedirectQuery(
        code=_single("code"),
        state=_single("state"),
        error=_single("error"),
        error_description=_single("error_description"),
    )


def is_allowed_redirect_uri(uri: str) -> bool:
    parsed = urllib.parse.urlparse(uri)
    if parsed.scheme == "https":
        return bool(parsed.netloc)
    if parsed.scheme != "http":
        return False
    return parsed.hostname in {"127.0.0.1", "localhost", "::1"} and bool(parsed.port)

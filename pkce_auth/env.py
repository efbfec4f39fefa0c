from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .constants import (
    DEFAULT_EXPIRY_MARGIN_SECONDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_SCOPES,
    LOGGER,
)
from .scopes import ScopeSet
from .spotify_oauth2 import is_allowed_redirect_uri

REQUIRED_ENV = (
    "SPOTIFY_CLIENT_ID",
    "SPOTIFY_REDIRECT_URI",
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")
    if value < 0:
        raise RuntimeError(f"{key} must not be negative.")
    return value


def load_env(env_path: Path | None = None) -> None:
    env_path = env_path or Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def validate_env() -> None:
    missing = [key for key in REQUIRED_ENV if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    redirect_uri = os.getenv("SPOTIFY_REDIRECT_URI", "").strip()
    if not is_allowed_redirect_uri(redirect_uri):
        raise RuntimeError(
            "SPOTIFY_REDIRECT_URI must be an HTTPS URL or a loopback HTTP URL with a "
            "port (for example: http://127.0.0.1:8888/callback)."
        )


def configured_scopes() -> ScopeSet:
    raw = os.getenv("SPOTIFY_SCOPES")
    if raw is None:
        return ScopeSet(DEFAULT_SCOPES)
    return ScopeSet.parse(raw)


def http_timeout() -> float:
    return _get_env_float("SPOTIFY_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS)


def expiry_margin() -> float:
    return _get_env_float("SPOTIFY_EXPIRY_MARGIN", DEFAULT_EXPIRY_MARGIN_SECONDS)


def callback_port() -> int:
    port = _get_env_int("CALLBACK_PORT", 8888)
    if not 0 < port < 65536:
        raise RuntimeError("CALLBACK_PORT must be between 1 and 65535.")
    return port


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("PKCE_AUTH_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled

import logging
import os

import pytest

from pkce_auth import env
from pkce_auth.scopes import ScopeSet


def _set_required(monkeypatch, redirect_uri: str = "http://127.0.0.1:8888/callback") -> None:
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "spotify-client")
    monkeypatch.setenv("SPOTIFY_REDIRECT_URI", redirect_uri)


def test_is_truthy() -> None:
    assert env.is_truthy("1")
    assert env.is_truthy(" Yes ")
    assert not env.is_truthy("0")
    assert not env.is_truthy(None)


def test_validate_env_lists_missing_variables(monkeypatch) -> None:
    monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTIFY_REDIRECT_URI", raising=False)

    with pytest.raises(RuntimeError, match="SPOTIFY_CLIENT_ID, SPOTIFY_REDIRECT_URI"):
        env.validate_env()


def test_validate_env_accepts_loopback_redirect(monkeypatch) -> None:
    _set_required(monkeypatch)

    env.validate_env()


def test_validate_env_rejects_plain_http_redirect(monkeypatch) -> None:
    _set_required(monkeypatch, "http://app.example.com/callback")

    with pytest.raises(RuntimeError, match="SPOTIFY_REDIRECT_URI"):
        env.validate_env()


def test_configured_scopes(monkeypatch) -> None:
    monkeypatch.delenv("SPOTIFY_SCOPES", raising=False)
    assert env.configured_scopes() == ScopeSet(["user-read-private", "playlist-read-private"])

    monkeypatch.setenv("SPOTIFY_SCOPES", "streaming user-top-read")
    assert env.configured_scopes() == ScopeSet(["streaming", "user-top-read"])


def test_numeric_settings(monkeypatch) -> None:
    monkeypatch.setenv("SPOTIFY_HTTP_TIMEOUT", "12.5")
    monkeypatch.setenv("SPOTIFY_EXPIRY_MARGIN", "")
    monkeypatch.setenv("CALLBACK_PORT", "9000")

    assert env.http_timeout() == 12.5
    assert env.expiry_margin() == 60.0
    assert env.callback_port() == 9000


@pytest.mark.parametrize(
    ("key", "value", "getter"),
    [
        ("SPOTIFY_HTTP_TIMEOUT", "soon", env.http_timeout),
        ("SPOTIFY_EXPIRY_MARGIN", "-1", env.expiry_margin),
        ("CALLBACK_PORT", "eighty", env.callback_port),
        ("CALLBACK_PORT", "70000", env.callback_port),
    ],
)
def test_invalid_numeric_settings(monkeypatch, key, value, getter) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError, match=key):
        getter()


def test_load_env_reads_dotenv_file(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "placeholder")
    env_file = tmp_path / ".env"
    env_file.write_text("SPOTIFY_CLIENT_ID=from-dotenv\n", encoding="utf-8")

    env.load_env(env_file)

    assert os.environ["SPOTIFY_CLIENT_ID"] == "from-dotenv"


def test_load_env_without_file(tmp_path) -> None:
    env.load_env(tmp_path / "missing.env")


def test_setup_logging(monkeypatch) -> None:
    monkeypatch.setenv("PKCE_AUTH_DEBUG", "0")
    assert env.setup_logging() is False

    monkeypatch.setenv("PKCE_AUTH_DEBUG", "1")
    assert env.setup_logging() is True
    assert logging.getLogger("pkce_auth").level == logging.INFO

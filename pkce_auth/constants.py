from __future__ import annotations

import logging

LOGGER = logging.getLogger("pkce_auth")
APP_VERSION = "0.1.0"

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_OPEN_URL = "https://open.spotify.com"

DEFAULT_SCOPES = ("user-read-private", "playlist-read-private")
DEFAULT_EXPIRY_MARGIN_SECONDS = 60.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# Upper bound on diagnostic payload text kept in errors and logs.
MAX_PAYLOAD_CHARS = 1000

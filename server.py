from __future__ import annotations

import os
from contextlib import asynccontextmanager

from pydantic import AnyHttpUrl
from starlette.applications import Starlette

from pkce_auth.callback import CallbackRoutes
from pkce_auth.constants import LOGGER
from pkce_auth.env import (
    callback_port,
    configured_scopes,
    expiry_margin,
    http_timeout,
    is_truthy,
    load_env,
    setup_logging,
    validate_env,
)
from pkce_auth.manager import TokenLifecycleManager
from pkce_auth.token_store import FileTokenStore
from pkce_auth.transport import HttpxTransport


def create_manager() -> TokenLifecycleManager:
    redirect_uri = os.getenv("SPOTIFY_REDIRECT_URI", "").strip()
    # Spotify compares the registered URI verbatim, so only validate it here.
    AnyHttpUrl(redirect_uri)
    return TokenLifecycleManager(
        os.getenv("SPOTIFY_CLIENT_ID", "").strip(),
        redirect_uri,
        transport=HttpxTransport(timeout=http_timeout()),
        token_store=FileTokenStore(os.getenv("SPOTIFY_TOKEN_STORE_PATH", ".spotify_token.json")),
        expiry_margin_seconds=expiry_margin(),
    )


def create_app() -> Starlette:
    load_env()
    setup_logging()
    validate_env()

    manager = create_manager()
    routes = CallbackRoutes(
        manager,
        scopes=configured_scopes(),
        show_dialog=is_truthy(os.getenv("SPOTIFY_SHOW_DIALOG")),
    )

    @asynccontextmanager
    async def lifespan(app: Starlette):
        restored = await manager.restore()
        if restored is not None:
            LOGGER.info("Using persisted credential; /login is only needed to re-authorize")
        try:
            yield
        finally:
            await manager.aclose()

    app = Starlette(routes=routes.routes(), lifespan=lifespan)
    app.state.manager = manager
    return app


def main() -> None:
    import uvicorn

    host = os.getenv("CALLBACK_HOST", "127.0.0.1")
    port = callback_port()
    app = create_app()
    LOGGER.info("Open http://%s:%s/login to authorize", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()

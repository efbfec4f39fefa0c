"""Starlette routes that drive the browser half of the PKCE flow.

``/login`` sends the user to Spotify, ``/callback`` receives the redirect and
exchanges the code, ``/health`` reports whether a credential is held. Tokens
never appear in a response body.
"""

from __future__ import annotations

import httpx
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from .constants import APP_VERSION, LOGGER
from .errors import AuthorizationServerError, InvalidState, SpotifyLocalError
from .manager import TokenLifecycleManager
from .scopes import ScopeSet


def error_response(code: str, description: str, status_code: int) -> Response:
    return JSONResponse(
        {"error": code, "error_description": description},
        status_code=status_code,
    )


class CallbackRoutes:
    def __init__(
        self,
        manager: TokenLifecycleManager,
        *,
        scopes: ScopeSet | None = None,
        show_dialog: bool = False,
    ) -> None:
        self.manager = manager
        self.scopes = scopes or ScopeSet()
        self.show_dialog = show_dialog

    def routes(self) -> list[Route]:
        return [
            Route("/login", self._handle_login, methods=["GET"]),
            Route("/callback", self._handle_callback, methods=["GET"]),
            Route("/health", self._handle_health, methods=["GET"]),
        ]

    async def _handle_login(self, request: Request) -> Response:
        del request
        url = self.manager.begin_authorization(self.scopes, show_dialog=self.show_dialog)
        return RedirectResponse(url=url, status_code=302)

    async def _handle_callback(self, request: Request) -> Response:
        try:
            credential = await self.manager.request_initial_tokens(str(request.url))
        except InvalidState:
            return error_response("invalid_state", "Unknown, expired or mismatched state.", 400)
        except AuthorizationServerError as error:
            LOGGER.warning("Authorization failed: %s", error)
            return error_response(
                error.error,
                error.error_description or "Spotify rejected the authorization.",
                400 if error.status_code is None else 502,
            )
        except SpotifyLocalError as error:
            # Without a code the redirect itself is malformed; otherwise Spotify answered badly.
            status_code = 400 if not request.query_params.get("code") else 502
            return error_response(error.summary.replace(" ", "_"), str(error), status_code)
        except httpx.HTTPError as error:
            LOGGER.warning("Token endpoint unreachable: %s", type(error).__name__)
            return error_response(
                "token_exchange_failed",
                "Could not reach the Spotify token endpoint.",
                502,
            )

        return JSONResponse(
            {
                "status": "authenticated",
                "scopes": list(credential.scopes),
                "expires_at": credential.expires_at,
            }
        )

    async def _handle_health(self, request: Request) -> Response:
        del request
        return JSONResponse(
            {
                "status": "ok",
                "version": APP_VERSION,
                "authenticated": self.manager.is_authorized(),
            }
        )

"""Credential lifecycle for a public Spotify client using PKCE.

``TokenLifecycleManager`` owns the one credential of a client. It exchanges
the authorization code, keeps the access token fresh and forgets the
credential on revocation. Refreshes are single-flight: concurrent callers
share one token-endpoint call and see the same outcome.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

import httpx

from .constants import (
    DEFAULT_EXPIRY_MARGIN_SECONDS,
    LOGGER,
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_TOKEN_URL,
)
from .credential import Credential
from .errors import AuthorizationServerError, InsufficientScope, Other, Unauthorized
from .handshake import AuthorizationHandshake, AuthorizationState
from .scopes import Scope, ScopeSet
from .spotify_oauth2 import build_authorization_url, parse_redirect_query
from .token_requests import FORM_HEADERS, PKCERefreshTokenRequest, PKCETokenExchangeRequest
from .token_store import TokenStore
from .transport import HttpxTransport, Transport


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZING = "authorizing"
    AUTHENTICATED = "authenticated"


class _InflightRefresh:
    def __init__(self, base: Credential, task: asyncio.Task[Credential]) -> None:
        self.base = base
        self.task = task
        self.waiters = 0


class TokenLifecycleManager:
    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        *,
        transport: Transport | None = None,
        token_store: TokenStore | None = None,
        token_url: str = SPOTIFY_TOKEN_URL,
        authorize_url: str = SPOTIFY_AUTHORIZE_URL,
        expiry_margin_seconds: float = DEFAULT_EXPIRY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
        handshake: AuthorizationHandshake | None = None,
    ) -> None:
        if not client_id:
            raise ValueError("client_id must be a non-empty string")
        if not redirect_uri:
            raise ValueError("redirect_uri must be a non-empty string")
        if expiry_margin_seconds < 0:
            raise ValueError("expiry_margin_seconds must not be negative")

        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.token_url = token_url
        self.authorize_url = authorize_url
        self.expiry_margin_seconds = expiry_margin_seconds
        self._margin = expiry_margin_seconds
        self._transport = transport or HttpxTransport()
        self._token_store = token_store
        self._clock = clock
        self._handshake = handshake or AuthorizationHandshake(clock=clock)
        self._credential: Credential | None = None
        self._inflight: _InflightRefresh | None = None

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def state(self) -> AuthState:
        if self._credential is not None:
            return AuthState.AUTHENTICATED
        if self._handshake.pending:
            return AuthState.AUTHORIZING
        return AuthState.UNAUTHENTICATED

    # -- authorization -------------------------------------------------------

    def begin_authorization(
        self,
        scopes: ScopeSet | Iterable[Scope | str] = (),
        *,
        show_dialog: bool = False,
    ) -> str:
        """Start an attempt and return the URL the user must visit.

        Any earlier pending attempt is superseded.
        """
        attempt = self._handshake.begin_authorization(ScopeSet(scopes))
        LOGGER.info("Authorization started for scopes %s", attempt.scopes.to_string() or "<none>")
        return build_authorization_url(
            self.client_id,
            self.redirect_uri,
            attempt.scopes,
            attempt.value,
            attempt.code_challenge,
            show_dialog=show_dialog,
            authorize_url=self.authorize_url,
        )

    def complete_authorization(self, state: str | None) -> AuthorizationState:
        return self._handshake.complete_authorization(state)

    async def request_initial_tokens(
        self,
        redirect_uri_with_query: str,
        authorization_code: str | None = None,
    ) -> Credential:
        """Exchange the code from the redirect for the first credential.

        The state is checked, and the pending attempt consumed, before any
        network call. An explicit ``authorization_code`` overrides the one in
        the query string.
        """
        query = parse_redirect_query(redirect_uri_with_query)
        attempt = self.complete_authorization(query.state)

        if query.error:
            raise AuthorizationServerError(query.error, query.error_description)

        code = authorization_code or query.code
        if not code:
            raise Other("The redirect URI does not contain an authorization code.")

        request = PKCETokenExchangeRequest(
            code=code,
            code_verifier=attempt.code_verifier,
            redirect_uri=self.redirect_uri,
            client_id=self.client_id,
        )
        issued_at = self._clock()
        payload = await self._token_request(request.form_urlencoded())
        credential = Credential.from_token_response(
            payload,
            issued_at=issued_at,
            fallback_scopes=attempt.scopes,
        )
        await self._replace_credential(credential)
        LOGGER.info("Authenticated with scopes %s", credential.scopes.to_string() or "<none>")
        return credential

    # -- tokens --------------------------------------------------------------

    async def valid_access_token(self) -> str:
        credential = self._credential
        if credential is None:
            raise Unauthorized("No credential has been established; authorize first.")
        if not credential.is_expired(self._clock(), self._margin):
            return credential.access_token

        LOGGER.info("Access token expired or about to expire; refreshing")
        refreshed = await self.refresh()
        return refreshed.access_token

    async def refresh(self) -> Credential:
        """Refresh the credential, joining a refresh already in flight.

        On failure the credential is left as it was and every caller waiting
        on the same refresh receives the same exception.
        """
        credential = self._credential
        if credential is None:
            raise Unauthorized("No credential has been established; authorize first.")
        if credential.refresh_token is None:
            raise Unauthorized("The credential has no refresh token; authorize again.")

        inflight = self._inflight
        if inflight is None or inflight.base is not credential:
            task = asyncio.create_task(self._run_refresh(credential))
            inflight = _InflightRefresh(credential, task)
            self._inflight = inflight
            task.add_done_callback(lambda _task, entry=inflight: self._refresh_done(entry))

        inflight.waiters += 1
        try:
            return await asyncio.shield(inflight.task)
        except asyncio.CancelledError:
            if inflight.waiters == 1 and not inflight.task.done():
                LOGGER.info("Last waiter cancelled; abandoning refresh")
                if self._inflight is inflight:
                    self._inflight = None
                inflight.task.cancel()
            raise
        finally:
            inflight.waiters -= 1

    async def _run_refresh(self, base: Credential) -> Credential:
        refresh_token = base.refresh_token
        if refresh_token is None:
            raise Unauthorized("The credential has no refresh token; authorize again.")
        request = PKCERefreshTokenRequest(refresh_token=refresh_token, client_id=self.client_id)
        issued_at = self._clock()
        payload = await self._token_request(request.form_urlencoded())
        refreshed = Credential.from_token_response(payload, issued_at=issued_at, previous=base)

        current = self._credential
        if current is not base:
            LOGGER.info("Credential changed while refreshing; discarding refresh result")
            if current is None:
                raise Unauthorized("The credential was revoked while it was being refreshed.")
            return current

        await self._replace_credential(refreshed)
        LOGGER.info("Access token refreshed; expires at %s", refreshed.expires_at)
        return refreshed

    def _refresh_done(self, entry: _InflightRefresh) -> None:
        if self._inflight is entry:
            self._inflight = None
        if entry.task.cancelled():
            return
        error = entry.task.exception()
        if error is not None and entry.waiters == 0:
            LOGGER.warning("Refresh failed with no caller waiting: %s", type(error).__name__)

    # -- scopes --------------------------------------------------------------

    def authorize(self, required_scopes: ScopeSet | Iterable[Scope | str]) -> None:
        credential = self._credential
        if credential is None:
            raise Unauthorized("No credential has been established; authorize first.")
        required = ScopeSet(required_scopes)
        if not required.issubset(credential.scopes):
            raise InsufficientScope(required=required, authorized=credential.scopes)

    def is_authorized(self, required_scopes: ScopeSet | Iterable[Scope | str] = ()) -> bool:
        credential = self._credential
        if credential is None:
            return False
        return ScopeSet(required_scopes).issubset(credential.scopes)

    # -- persistence and teardown ---------------------------------------------

    async def restore(self) -> Credential | None:
        if self._token_store is None:
            return None
        snapshot = await self._token_store.load()
        if snapshot is None:
            return None
        credential = Credential.from_snapshot(snapshot)
        self._credential = credential
        self._margin = self.expiry_margin_seconds
        LOGGER.info("Restored persisted credential with scopes %s", credential.scopes.to_string() or "<none>")
        return credential

    async def revoke(self) -> None:
        """Forget the credential. Calling it again is a no-op."""
        had_credential = self._credential is not None
        self._credential = None
        self._margin = self.expiry_margin_seconds
        # An in-flight refresh sees the credential change and discards its result.
        self._inflight = None
        self._handshake.cancel()
        if self._token_store is not None:
            await self._token_store.delete()
        if had_credential:
            LOGGER.info("Credential revoked")

    async def sign_request(self, request: httpx.Request) -> None:
        token = await self.valid_access_token()
        request.headers["Authorization"] = f"Bearer {token}"

    async def aclose(self) -> None:
        await self._transport.aclose()

    # -- helpers ---------------------------------------------------------------

    async def _replace_credential(self, credential: Credential) -> None:
        self._credential = credential
        lifetime = credential.seconds_remaining(self._clock())
        if 0 < lifetime <= self.expiry_margin_seconds:
            # Short-lived tokens refresh at half their lifetime.
            LOGGER.warning(
                "Token lifetime %ss is within the %ss expiry margin; refreshing at half-life",
                lifetime,
                self.expiry_margin_seconds,
            )
            self._margin = lifetime / 2
        else:
            self._margin = self.expiry_margin_seconds
        if self._token_store is not None:
            await self._token_store.save(credential.to_snapshot())

    async def _token_request(self, body: bytes) -> dict[str, Any]:
        request = httpx.Request("POST", self.token_url, content=body, headers=FORM_HEADERS)
        response = await self._transport.send(request)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            raise AuthorizationServerError.from_payload(
                payload if payload is not None else response.text,
                status_code=response.status_code,
            )
        if payload is None:
            raise Other(f"Token endpoint returned a non-JSON body (status {response.status_code}).")
        return payload

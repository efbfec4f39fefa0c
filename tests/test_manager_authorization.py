import urllib.parse

import pytest

from pkce_auth.errors import AuthorizationServerError, InvalidState, Other
from pkce_auth.manager import AuthState
from pkce_auth.scopes import ScopeSet
from pkce_auth.spotify_oauth2 import generate_code_challenge
from pkce_auth.token_store import MemoryTokenStore
from tests.manager_helpers import (
    CLIENT_ID,
    REDIRECT_URI,
    ScriptedTransport,
    build_manager,
    error_response,
    token_response,
)


def _query(url: str) -> dict[str, str]:
    return dict(urllib.parse.parse_qsl(urllib.parse.urlparse(url).query))


def _redirect(**params: str) -> str:
    return f"{REDIRECT_URI}?{urllib.parse.urlencode(params)}"


def test_begin_authorization_builds_url(clock) -> None:
    manager = build_manager(ScriptedTransport(), clock)

    url = manager.begin_authorization(["user-read-private"], show_dialog=True)

    query = _query(url)
    assert url.startswith("https://accounts.spotify.com/authorize?")
    assert query["client_id"] == CLIENT_ID
    assert query["redirect_uri"] == REDIRECT_URI
    assert query["scope"] == "user-read-private"
    assert query["code_challenge_method"] == "S256"
    assert query["show_dialog"] == "true"
    assert manager.state is AuthState.AUTHORIZING


@pytest.mark.asyncio
async def test_request_initial_tokens(clock) -> None:
    transport = ScriptedTransport([token_response("access-1", "refresh-1", expires_in=3600)])
    store = MemoryTokenStore()
    manager = build_manager(transport, clock, token_store=store)
    query = _query(manager.begin_authorization(["user-read-private", "playlist-read-private"]))

    credential = await manager.request_initial_tokens(_redirect(code="code-123", state=query["state"]))

    form = transport.form()
    assert form["grant_type"] == "authorization_code"
    assert form["code"] == "code-123"
    assert form["redirect_uri"] == REDIRECT_URI
    assert form["client_id"] == CLIENT_ID
    assert generate_code_challenge(form["code_verifier"]) == query["code_challenge"]
    assert credential.access_token == "access-1"
    assert credential.expires_at == clock() + 3600
    assert manager.state is AuthState.AUTHENTICATED
    assert (await store.load())["refresh_token"] == "refresh-1"


@pytest.mark.asyncio
async def test_explicit_code_overrides_query(clock) -> None:
    transport = ScriptedTransport()
    manager = build_manager(transport, clock)
    state = _query(manager.begin_authorization())["state"]

    await manager.request_initial_tokens(_redirect(code="from-query", state=state), "explicit")

    assert transport.form()["code"] == "explicit"


@pytest.mark.asyncio
async def test_initial_scopes_default_to_requested(clock) -> None:
    transport = ScriptedTransport([token_response(scope=None)])
    manager = build_manager(transport, clock)
    state = _query(manager.begin_authorization(["user-top-read"]))["state"]

    credential = await manager.request_initial_tokens(_redirect(code="c", state=state))

    assert credential.scopes == ScopeSet(["user-top-read"])


@pytest.mark.asyncio
async def test_state_replay_fails_without_network(clock) -> None:
    transport = ScriptedTransport()
    manager = build_manager(transport, clock)
    state = _query(manager.begin_authorization())["state"]
    redirect = _redirect(code="code-123", state=state)

    await manager.request_initial_tokens(redirect)
    with pytest.raises(InvalidState) as excinfo:
        await manager.request_initial_tokens(redirect)

    assert excinfo.value.supplied is None
    assert excinfo.value.received == state
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_state_mismatch_fails_before_network(clock) -> None:
    transport = ScriptedTransport()
    manager = build_manager(transport, clock)
    manager.begin_authorization()

    with pytest.raises(InvalidState):
        await manager.request_initial_tokens(_redirect(code="code-123", state="forged"))

    assert transport.requests == []
    assert manager.state is AuthState.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_missing_state_in_redirect(clock) -> None:
    transport = ScriptedTransport()
    manager = build_manager(transport, clock)
    manager.begin_authorization()

    with pytest.raises(InvalidState) as excinfo:
        await manager.request_initial_tokens(_redirect(code="code-123"))

    assert excinfo.value.received is None
    assert transport.requests == []


@pytest.mark.asyncio
async def test_user_denied_authorization(clock) -> None:
    transport = ScriptedTransport()
    manager = build_manager(transport, clock)
    state = _query(manager.begin_authorization())["state"]

    with pytest.raises(AuthorizationServerError) as excinfo:
        await manager.request_initial_tokens(_redirect(error="access_denied", state=state))

    assert excinfo.value.error == "access_denied"
    assert transport.requests == []


@pytest.mark.asyncio
async def test_redirect_without_code(clock) -> None:
    manager = build_manager(ScriptedTransport(), clock)
    state = _query(manager.begin_authorization())["state"]

    with pytest.raises(Other):
        await manager.request_initial_tokens(_redirect(state=state))


@pytest.mark.asyncio
async def test_exchange_rejected_by_server(clock) -> None:
    transport = ScriptedTransport([error_response("invalid_grant", "Invalid authorization code")])
    manager = build_manager(transport, clock)
    state = _query(manager.begin_authorization())["state"]

    with pytest.raises(AuthorizationServerError, match="Invalid authorization code"):
        await manager.request_initial_tokens(_redirect(code="bad", state=state))

    assert manager.credential is None


def test_complete_authorization_delegates_to_handshake(clock) -> None:
    manager = build_manager(ScriptedTransport(), clock)
    state = _query(manager.begin_authorization(["streaming"]))["state"]

    attempt = manager.complete_authorization(state)

    assert attempt.scopes == ScopeSet(["streaming"])
    with pytest.raises(InvalidState):
        manager.complete_authorization(state)


@pytest.mark.asyncio
async def test_revoke_cancels_pending_authorization(clock) -> None:
    manager = build_manager(ScriptedTransport(), clock)
    state = _query(manager.begin_authorization())["state"]

    await manager.revoke()

    assert manager.state is AuthState.UNAUTHENTICATED
    with pytest.raises(InvalidState):
        manager.complete_authorization(state)

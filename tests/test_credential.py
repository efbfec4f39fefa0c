import pytest

from pkce_auth.credential import Credential
from pkce_auth.errors import Other, TopLevelKeyNotFound
from pkce_auth.scopes import ScopeSet


def _payload(**overrides):
    payload = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "user-read-private",
    }
    payload.update(overrides)
    return {key: value for key, value in payload.items() if value is not None}


def test_from_token_response() -> None:
    credential = Credential.from_token_response(_payload(), issued_at=1000.0)

    assert credential.access_token == "access-1"
    assert credential.refresh_token == "refresh-1"
    assert credential.expires_at == 4600.0
    assert credential.scopes == ScopeSet(["user-read-private"])


def test_missing_scope_keeps_previous_scopes() -> None:
    previous = Credential("a", "r", 0.0, ScopeSet(["user-top-read"]))

    credential = Credential.from_token_response(
        _payload(scope=None), issued_at=0.0, previous=previous
    )

    assert credential.scopes == ScopeSet(["user-top-read"])


def test_missing_scope_uses_fallback_without_previous() -> None:
    credential = Credential.from_token_response(
        _payload(scope=None), issued_at=0.0, fallback_scopes=ScopeSet(["streaming"])
    )

    assert credential.scopes == ScopeSet(["streaming"])


@pytest.mark.parametrize("key", ["access_token", "expires_in", "refresh_token"])
def test_missing_required_key(key: str) -> None:
    with pytest.raises(TopLevelKeyNotFound) as excinfo:
        Credential.from_token_response(_payload(**{key: None}), issued_at=0.0)

    assert excinfo.value.key == key


def test_missing_key_error_redacts_tokens() -> None:
    with pytest.raises(TopLevelKeyNotFound) as excinfo:
        Credential.from_token_response(_payload(refresh_token=None), issued_at=0.0)

    assert "access-1" not in excinfo.value.payload
    assert "<redacted>" in excinfo.value.payload


def test_refresh_token_optional_when_not_required() -> None:
    credential = Credential.from_token_response(
        _payload(refresh_token=None), issued_at=0.0, require_refresh_token=False
    )

    assert credential.refresh_token is None


@pytest.mark.parametrize("expires_in", [0, -5, "3600", True])
def test_invalid_expires_in(expires_in) -> None:
    with pytest.raises(Other):
        Credential.from_token_response(_payload(expires_in=expires_in), issued_at=0.0)


def test_non_object_payload() -> None:
    with pytest.raises(Other):
        Credential.from_token_response(["access-1"], issued_at=0.0)


def test_expiry_with_margin() -> None:
    credential = Credential("a", "r", expires_at=1000.0)

    assert credential.is_expired(999.0) is False
    assert credential.is_expired(1000.0) is True
    assert credential.is_expired(950.0, margin=60.0) is True
    assert credential.seconds_remaining(400.0) == 600.0


def test_snapshot_round_trip() -> None:
    credential = Credential("a", "r", 1234.5, ScopeSet(["user-read-private", "streaming"]))

    assert Credential.from_snapshot(credential.to_snapshot()) == credential


def test_snapshot_missing_key() -> None:
    with pytest.raises(TopLevelKeyNotFound):
        Credential.from_snapshot({"access_token": "a"})


def test_repr_hides_tokens() -> None:
    credential = Credential("access-secret", "refresh-secret", 1.0)

    assert "secret" not in repr(credential)


@pytest.mark.parametrize(
    "overrides",
    [
        {"scope": ["user-top-read"]},
        {"refresh_token": 12345},
        {"access_token": 42},
        {"access_token": ""},
        {"token_type": None},
        {"expires_at": "soon"},
    ],
)
def test_snapshot_with_wrong_field_types(overrides) -> None:
    snapshot = Credential("a", "r", 1234.5, ScopeSet(["streaming"])).to_snapshot()
    snapshot.update(overrides)

    with pytest.raises(Other):
        Credential.from_snapshot(snapshot)


def test_snapshot_without_optional_fields() -> None:
    credential = Credential.from_snapshot({"access_token": "a", "expires_at": 10})

    assert credential.refresh_token is None
    assert credential.scopes == ScopeSet()
    assert credential.token_type == "Bearer"

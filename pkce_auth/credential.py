from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import Other, TopLevelKeyNotFound
from .scopes import ScopeSet

SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class Credential:
    access_token: str
    refresh_token: str | None
    expires_at: float
    scopes: ScopeSet = field(default_factory=ScopeSet)
    token_type: str = "Bearer"

    def is_expired(self, now: float, margin: float = 0.0) -> bool:
        return now >= self.expires_at - margin

    def seconds_remaining(self, now: float) -> float:
        return self.expires_at - now

    @classmethod
    def from_token_response(
        cls,
        payload: Any,
        *,
        issued_at: float,
        previous: "Credential | None" = None,
        fallback_scopes: ScopeSet | None = None,
        require_refresh_token: bool = True,
    ) -> "Credential":
        if not isinstance(payload, dict):
            raise Other(f"Token response must be a JSON object, got {type(payload).__name__}.")

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        expires_in = payload.get("expires_in")
        scope = payload.get("scope")

        if not isinstance(access_token, str) or not access_token:
            raise TopLevelKeyNotFound(key="access_token", payload=_redacted(payload))
        if expires_in is None:
            raise TopLevelKeyNotFound(key="expires_in", payload=_redacted(payload))
        if isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in <= 0:
            raise Other(f"Token response expires_in must be a positive integer, got {expires_in!r}.")
        if not isinstance(refresh_token, str) or not refresh_token:
            if require_refresh_token:
                raise TopLevelKeyNotFound(key="refresh_token", payload=_redacted(payload))
            refresh_token = None
        if scope is not None and not isinstance(scope, str):
            raise Other("Token response scope must be a string.")

        # Without a scope value the server has not narrowed anything.
        if scope is not None:
            scopes = ScopeSet.parse(scope)
        elif previous is not None:
            scopes = previous.scopes
        else:
            scopes = fallback_scopes or ScopeSet()

        token_type = payload.get("token_type")
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=issued_at + expires_in,
            scopes=scopes,
            token_type=token_type if isinstance(token_type, str) and token_type else "Bearer",
        )

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "scope": self.scopes.to_string(),
            "token_type": self.token_type,
        }

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> "Credential":
        if not isinstance(snapshot, dict):
            raise Other("Credential snapshot must be a JSON object.")
        for key in ("access_token", "expires_at"):
            if key not in snapshot:
                raise TopLevelKeyNotFound(key=key, payload=_redacted(snapshot))

        access_token = snapshot["access_token"]
        refresh_token = snapshot.get("refresh_token")
        expires_at = snapshot["expires_at"]
        scope = snapshot.get("scope")
        token_type = snapshot.get("token_type", "Bearer")

        if not isinstance(access_token, str) or not access_token:
            raise Other("Credential snapshot access_token must be a non-empty string.")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise Other("Credential snapshot refresh_token must be a string or null.")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise Other("Credential snapshot expires_at must be a number.")
        if scope is not None and not isinstance(scope, str):
            raise Other("Credential snapshot scope must be a string or null.")
        if not isinstance(token_type, str) or not token_type:
            raise Other("Credential snapshot token_type must be a non-empty string.")

        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expires_at=float(expires_at),
            scopes=ScopeSet.parse(scope),
            token_type=token_type,
        )

    def __repr__(self) -> str:
        return (
            f"Credential(expires_at={self.expires_at!r}, scopes={self.scopes!r}, "
            f"has_refresh_token={self.refresh_token is not None})"
        )


_SECRET_KEYS = {"access_token", "refresh_token", "id_token"}


def _redacted(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: ("<redacted>" if key in _SECRET_KEYS else value) for key, value in payload.items()}

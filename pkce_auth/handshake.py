from __future__ import annotations

import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .constants import LOGGER
from .errors import InvalidState
from .scopes import ScopeSet
from .spotify_oauth2 import generate_code_challenge, generate_code_verifier, generate_state


@dataclass(frozen=True)
class AuthorizationState:
    """State issued for one authorization attempt.

    The PKCE ``code_verifier`` and the requested scopes live and die with the
    state: they are needed exactly once, when the code is exchanged.
    """

    value: str
    code_verifier: str
    scopes: ScopeSet = field(default_factory=ScopeSet)
    issued_at: float = 0.0

    @property
    def code_challenge(self) -> str:
        return generate_code_challenge(self.code_verifier)

    def __repr__(self) -> str:
        return f"AuthorizationState(scopes={self.scopes!r}, issued_at={self.issued_at!r})"


class AuthorizationHandshake:
    """Holds the single pending anti-forgery state of the redirect step."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: AuthorizationState | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def begin_authorization(self, scopes: ScopeSet | None = None) -> AuthorizationState:
        state = AuthorizationState(
            value=generate_state(),
            code_verifier=generate_code_verifier(),
            scopes=scopes or ScopeSet(),
            issued_at=self._clock(),
        )
        with self._lock:
            if self._pending is not None:
                LOGGER.info("Replacing pending authorization state with a new attempt")
            self._pending = state
        return state

    def complete_authorization(self, received_state: str | None) -> AuthorizationState:
        with self._lock:
            pending, self._pending = self._pending, None

        if pending is None:
            raise InvalidState(supplied=None, received=received_state)
        if received_state is None or not secrets.compare_digest(
            pending.value.encode("utf-8"), received_state.encode("utf-8")
        ):
            LOGGER.warning("Authorization state mismatch; pending state discarded")
            raise InvalidState(supplied=pending.value, received=received_state)
        return pending

    def cancel(self) -> None:
        with self._lock:
            self._pending = None

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class TokenStore(ABC):
    """Persistence sink for a serialized credential snapshot."""

    @abstractmethod
    async def load(self) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    async def save(self, snapshot: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, snapshot: dict[str, Any] | None = None) -> None:
        self._snapshot = dict(snapshot) if snapshot is not None else None

    async def load(self) -> dict[str, Any] | None:
        return dict(self._snapshot) if self._snapshot is not None else None

    async def save(self, snapshot: dict[str, Any]) -> None:
        self._snapshot = dict(snapshot)

    async def delete(self) -> None:
        self._snapshot = None


class FileTokenStore(TokenStore):
    def __init__(self, path: str | Path = ".spotify_token.json") -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None

        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise RuntimeError("Token store file is invalid; expected top-level JSON object.")
        return raw

    async def save(self, snapshot: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot, handle, indent=2, sort_keys=True)
            # Refresh tokens are long-lived secrets.
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    async def delete(self) -> None:
        if self._path.exists():
            self._path.unlink()

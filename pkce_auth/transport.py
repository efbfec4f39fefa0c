from __future__ import annotations

import logging
from typing import Protocol

import httpx

from .constants import DEFAULT_HTTP_TIMEOUT_SECONDS, LOGGER, MAX_PAYLOAD_CHARS


class Transport(Protocol):
    """Sends one token-endpoint request; failures raise ``httpx.HTTPError``."""

    async def send(self, request: httpx.Request) -> httpx.Response: ...

    async def aclose(self) -> None: ...


async def log_request(request: httpx.Request) -> None:
    LOGGER.info("Token endpoint request %s %s", request.method, request.url)


async def log_response(response: httpx.Response) -> None:
    LOGGER.info(
        "Token endpoint response %s %s -> %s",
        response.request.method,
        response.request.url,
        response.status_code,
    )
    if response.status_code >= 400:
        body = await response.aread()
        text = body.decode("utf-8", errors="replace")
        if len(text) > MAX_PAYLOAD_CHARS:
            text = text[:MAX_PAYLOAD_CHARS] + "...<truncated>"
        LOGGER.warning("Token endpoint error body: %s", text)


class HttpxTransport:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            event_hooks={"request": [log_request], "response": [log_response]},
        )
        self._logger = logger or LOGGER

    async def send(self, request: httpx.Request) -> httpx.Response:
        response = await self._client.send(request)
        await response.aread()
        return response

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()
        else:
            self._logger.debug("Leaving caller-owned httpx client open")

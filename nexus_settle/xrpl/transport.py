"""
HTTP seam for ledger queries.

JsonRpcLedgerClient only ever POSTs one JSON body and reads one JSON body
back, so the seam is a single method. Anything that can do that (httpx, a
proxy, a test fake returning canned rippled responses) can stand in.

HttpxTransport is the default. By default it opens a short-lived
httpx.AsyncClient per request. Services verifying many receipts should
pass a long-lived ``client`` so connections are pooled; the transport
never closes a client it was given.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import httpx


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async POST of a JSON-RPC body."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST payload to url and return the decoded JSON response.

        Raises:
            Exception: Connection, timeout, TLS or HTTP status failures.
                The ledger client does not catch these.
        """
        ...


class HttpxTransport:
    """httpx-backed JsonRpcTransport.

    Args:
        timeout: Per-request timeout in seconds.
        headers: Extra headers for every request (e.g. an API key for a
            hosted node).
        client: Optional shared AsyncClient. Owned by the caller.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = client

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self._client is not None:
            return await self._post(self._client, url, payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._post(client, url, payload)

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        response = await client.post(
            url, json=payload, headers=self._headers, timeout=self._timeout
        )
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result

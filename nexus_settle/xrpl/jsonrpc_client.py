"""
XRPL JSON-RPC ledger client, the network implementation of
LedgerQueryClient.

Translates a rippled ``tx`` response into a LedgerPaymentRecord. Uses an
injectable transport (JsonRpcTransport) so the HTTP layer can be swapped
for test fakes without changing parsing logic.

No retry loops. No XRPL logic beyond response parsing.

Response parsing targets rippled JSON-RPC conventions:
    - Found: {"result": {"status": "success", "validated": ..., ...}}
    - Not found: {"result": {"status": "error", "error": "txnNotFound"}}
    - Other errors: {"result": {"status": "error", "error": "...", ...}}
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from typing import Any

from nexus_settle.config import DEFAULT_TIMEOUT_SECONDS, LedgerEndpoints
from nexus_settle.xrpl.ledger import LedgerPaymentRecord, LedgerQueryError
from nexus_settle.xrpl.transport import HttpxTransport, JsonRpcTransport

logger = logging.getLogger(__name__)

_REQUEST_IDS = itertools.count(1)


class JsonRpcLedgerClient:
    """XRPL JSON-RPC client implementing the LedgerQueryClient protocol.

    Args:
        endpoints: LedgerEndpoints, or a plain mapping of network id to
            URL. Defaults to LedgerEndpoints() (public nodes).
        transport: Injectable transport for HTTP POST. Defaults to
            HttpxTransport using the endpoints' timeout.
    """

    def __init__(
        self,
        endpoints: LedgerEndpoints | Mapping[str, str] | None = None,
        transport: JsonRpcTransport | None = None,
    ) -> None:
        if endpoints is None:
            endpoints = LedgerEndpoints()
        if isinstance(endpoints, LedgerEndpoints):
            self._urls = endpoints.as_mapping()
            timeout = endpoints.timeout_seconds
        else:
            self._urls = dict(endpoints)
            timeout = DEFAULT_TIMEOUT_SECONDS
        self._transport = transport or HttpxTransport(timeout=timeout)

    def url_for(self, network: str) -> str:
        """The JSON-RPC endpoint URL for a network.

        Raises:
            ValueError: If no endpoint is configured for the network.
        """
        try:
            return self._urls[network]
        except KeyError:
            raise ValueError(f"no JSON-RPC endpoint for network: {network!r}") from None

    async def fetch(self, network: str, tx_hash: str) -> LedgerPaymentRecord | None:
        """Look up a transaction via the ``tx`` method.

        Returns None for txnNotFound. Transport exceptions propagate.

        Raises:
            LedgerQueryError: On any other server-side error.
            ValueError: If the network has no configured endpoint.
        """
        url = self.url_for(network)
        payload = {
            "method": "tx",
            "params": [{"transaction": tx_hash, "binary": False}],
            "id": next(_REQUEST_IDS),
        }
        logger.debug("tx lookup network=%s tx_hash=%s", network, tx_hash)

        response = await self._transport.post_json(url, payload)
        return _parse_tx_response(response)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _parse_tx_response(response: dict[str, Any]) -> LedgerPaymentRecord | None:
    """Parse a rippled tx JSON-RPC response.

    Handles:
        - Transaction found (validated or not)
        - Transaction not found (txnNotFound error) -> None
        - Server-level errors -> LedgerQueryError
        - Missing result object -> LedgerQueryError
    """
    result = response.get("result") if isinstance(response, dict) else None
    if not isinstance(result, dict):
        raise LedgerQueryError("malformedResponse", "no result object in tx response")

    if result.get("status") == "error" or "error" in result:
        error = str(result.get("error", "unknown"))
        if error == "txnNotFound":
            logger.debug("tx not found")
            return None
        raise LedgerQueryError(error, result.get("error_message") or error)

    return LedgerPaymentRecord.from_xrpl(result)

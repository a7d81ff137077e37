"""
XRPL side of x402 settlement.

Public API:

    Pure layer (no I/O):
        - Amount codec: ``normalize_decimal``, ``xrp_to_drops``,
          ``drops_to_xrp``, ``is_decimal_amount``.
        - Memo codec: ``encode_memo``, ``build_xrpl_memo``,
          ``decode_memo_field``, ``match_memo``.
        - Record types: ``LedgerPaymentRecord``, ``IssuedAmount``,
          ``MemoEntry``.

    Impure layer (network I/O):
        - ``JsonRpcLedgerClient``: rippled ``tx`` lookups.

    Protocols (for dependency injection):
        - ``LedgerQueryClient``: fetch(network, tx_hash).
        - ``JsonRpcTransport``: HTTP POST of a JSON-RPC body.

    Transport:
        - ``HttpxTransport``: default httpx-based transport.
"""

from nexus_settle.xrpl.amount import (
    DROPS_PER_XRP_DIGITS,
    drops_to_xrp,
    is_decimal_amount,
    normalize_decimal,
    xrp_to_drops,
)
from nexus_settle.xrpl.jsonrpc_client import JsonRpcLedgerClient
from nexus_settle.xrpl.ledger import (
    IssuedAmount,
    LedgerPaymentRecord,
    LedgerQueryClient,
    LedgerQueryError,
    MemoEntry,
)
from nexus_settle.xrpl.memo import (
    MEMO_FORMAT,
    MEMO_FORMAT_HEX,
    MEMO_TYPE,
    MEMO_TYPE_HEX,
    MEMO_VERSION,
    build_memo_payload,
    build_xrpl_memo,
    decode_memo_field,
    encode_memo,
    match_memo,
)
from nexus_settle.xrpl.transport import HttpxTransport, JsonRpcTransport

__all__ = [
    "DROPS_PER_XRP_DIGITS",
    "HttpxTransport",
    "IssuedAmount",
    "JsonRpcLedgerClient",
    "JsonRpcTransport",
    "LedgerPaymentRecord",
    "LedgerQueryClient",
    "LedgerQueryError",
    "MEMO_FORMAT",
    "MEMO_FORMAT_HEX",
    "MEMO_TYPE",
    "MEMO_TYPE_HEX",
    "MEMO_VERSION",
    "MemoEntry",
    "build_memo_payload",
    "build_xrpl_memo",
    "decode_memo_field",
    "drops_to_xrp",
    "encode_memo",
    "is_decimal_amount",
    "match_memo",
    "normalize_decimal",
    "xrp_to_drops",
]

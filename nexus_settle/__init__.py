"""
nexus-settle: x402 settlement verification for the XRP Ledger.

Decides whether a client's X-PAYMENT-RECEIPT proves that an XRPL Payment
settled a previously issued x402 challenge, exactly once.

Typical use:

    from nexus_settle import (
        InMemoryReplayStore,
        JsonRpcLedgerClient,
        SettlementVerificationError,
        verify_settlement,
    )

    ledger = JsonRpcLedgerClient()
    replay_store = InMemoryReplayStore()

    try:
        result = await verify_settlement(challenge, header_value, ledger, replay_store)
    except SettlementVerificationError as exc:
        ...  # exc.code tells the caller which gate failed
"""

from nexus_settle.challenge import (
    CHALLENGE_VERSION,
    SUPPORTED_NETWORKS,
    Challenge,
    ChallengeAsset,
    ChallengeMemo,
    IouAsset,
    XrpAsset,
    create_challenge,
    is_supported_network,
    parse_expires_at,
    validate_challenge,
)
from nexus_settle.config import ConfigError, LedgerEndpoints
from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError
from nexus_settle.receipt import (
    RECEIPT_HEADER_NAME,
    Receipt,
    decode_receipt_header,
    encode_receipt_header,
)
from nexus_settle.replay import InMemoryReplayStore, ReplayStore
from nexus_settle.sqlite_store import SqliteReplayStore
from nexus_settle.verify import (
    PARTIAL_PAYMENT_FLAG,
    VerificationResult,
    verify_settlement,
)
from nexus_settle.xrpl import (
    IssuedAmount,
    JsonRpcLedgerClient,
    LedgerPaymentRecord,
    LedgerQueryClient,
    LedgerQueryError,
    MemoEntry,
    build_xrpl_memo,
    drops_to_xrp,
    normalize_decimal,
    xrp_to_drops,
)

__version__ = "0.1.0"

__all__ = [
    "CHALLENGE_VERSION",
    "Challenge",
    "ChallengeAsset",
    "ChallengeMemo",
    "ConfigError",
    "InMemoryReplayStore",
    "IouAsset",
    "IssuedAmount",
    "JsonRpcLedgerClient",
    "LedgerEndpoints",
    "LedgerPaymentRecord",
    "LedgerQueryClient",
    "LedgerQueryError",
    "MemoEntry",
    "PARTIAL_PAYMENT_FLAG",
    "RECEIPT_HEADER_NAME",
    "Receipt",
    "ReplayStore",
    "SUPPORTED_NETWORKS",
    "SettlementErrorCode",
    "SettlementVerificationError",
    "SqliteReplayStore",
    "VerificationResult",
    "XrpAsset",
    "build_xrpl_memo",
    "create_challenge",
    "decode_receipt_header",
    "drops_to_xrp",
    "encode_receipt_header",
    "is_supported_network",
    "normalize_decimal",
    "parse_expires_at",
    "validate_challenge",
    "verify_settlement",
    "xrp_to_drops",
]

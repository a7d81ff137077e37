"""
Settlement error taxonomy.

Every failed verification raises exactly one SettlementVerificationError
carrying one SettlementErrorCode. The codes are grouped so callers can tell
what kind of failure they are looking at:

    client errors:       invalid_challenge, invalid_receipt, network_mismatch
    payment correctness: invalid_amount, invalid_asset, invalid_destination,
                         invalid_memo, tx_not_validated
    security:            replay_detected
    timing:              expired_challenge (final), tx_not_found (may be
                         transient while the tx propagates)

The engine never retries. Retry policy belongs to the caller.
"""

from __future__ import annotations

from enum import StrEnum


class SettlementErrorCode(StrEnum):
    """Failure kinds for settlement verification (v1)."""

    INVALID_CHALLENGE = "invalid_challenge"
    INVALID_RECEIPT = "invalid_receipt"
    NETWORK_MISMATCH = "network_mismatch"
    EXPIRED_CHALLENGE = "expired_challenge"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_ASSET = "invalid_asset"
    INVALID_DESTINATION = "invalid_destination"
    INVALID_MEMO = "invalid_memo"
    REPLAY_DETECTED = "replay_detected"
    TX_NOT_VALIDATED = "tx_not_validated"
    TX_NOT_FOUND = "tx_not_found"


class SettlementVerificationError(Exception):
    """Raised by every verification gate on failure.

    Attributes:
        code: The failure kind.
        message: Human-readable detail. Safe to return to the client;
            never contains secrets.
    """

    def __init__(self, code: SettlementErrorCode | str, message: str) -> None:
        super().__init__(message)
        self.code = SettlementErrorCode(code)
        self.message = message

    def __repr__(self) -> str:
        return f"SettlementVerificationError({self.code.value!r}, {self.message!r})"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}

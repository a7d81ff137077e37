"""
Settlement verification: decides whether a receipt settles a challenge.

verify_settlement() runs a fixed sequence of gates. Each gate either passes
or raises SettlementVerificationError with one code; nothing is retried and
nothing is written until every gate has passed.

    1.  challenge structure                        invalid_challenge
    2.  now <= expiresAt                           expired_challenge
    3.  receipt header decodes                     invalid_receipt
    4.  receipt.network == challenge.network       network_mismatch
    5.  receipt.paymentId == challenge.paymentId   invalid_receipt
    6.  replay index (both directions)             replay_detected
        exact pair already bound -> idempotent success, no ledger fetch
    7.  ledger fetch                               tx_not_found
    8.  validated Payment, tesSUCCESS              tx_not_validated
    9.  payer account present                      invalid_receipt
    10. destination matches, no DestinationTag     invalid_destination
    11. no partial payment, Paths, SendMax,
        DeliverMin                                 invalid_asset
    12. asset shape / exact amount                 invalid_asset / invalid_amount
    13. memo bound to paymentId                    invalid_memo
    14. register pair                              replay_detected

The ledger fetch (7) is the only await. Collaborator errors and cancellation
propagate as-is, and since registration is last, a failed verification never
leaves a replay entry behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from nexus_settle.challenge import Challenge, IouAsset, XrpAsset, validate_challenge
from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError
from nexus_settle.receipt import Receipt, decode_receipt_header
from nexus_settle.replay import ReplayStore, check_conflict
from nexus_settle.xrpl.amount import drops_to_xrp, normalize_decimal
from nexus_settle.xrpl.ledger import IssuedAmount, LedgerPaymentRecord, LedgerQueryClient
from nexus_settle.xrpl.memo import match_memo

logger = logging.getLogger(__name__)

# tfPartialPayment
PARTIAL_PAYMENT_FLAG = 0x00020000

# Engine result of a transaction that applied in full.
SUCCESS_RESULT = "tesSUCCESS"


@dataclass(frozen=True)
class VerificationResult:
    """Successful verification.

    Attributes:
        idempotent: True if the pair was already registered (no ledger
            fetch happened, or a concurrent verification won the insert).
        receipt: The decoded receipt.
        payer_account: Sending account of the tx. None on the idempotent
            short-circuit, where the tx is not fetched.
        ok: Always True; failures raise instead.
    """

    idempotent: bool
    receipt: Receipt
    payer_account: str | None = None
    ok: bool = True

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "ok": self.ok,
            "idempotent": self.idempotent,
            "receipt": self.receipt.to_dict(),
        }
        if self.payer_account is not None:
            result["payerAccount"] = self.payer_account
        return result


def _fail(code: SettlementErrorCode, message: str) -> SettlementVerificationError:
    return SettlementVerificationError(code, message)


# =========================================================================
# Gates
# =========================================================================


def _check_not_expired(challenge: Challenge, now: datetime) -> None:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("now must be a timezone-aware datetime")
    if now > challenge.expires_at_datetime:
        raise _fail(SettlementErrorCode.EXPIRED_CHALLENGE, "challenge has expired")


def _check_transaction_shape(
    challenge: Challenge, tx: LedgerPaymentRecord
) -> str:
    """Gates 8-11. Returns the payer account."""
    if tx.validated is not True or tx.transaction_type != "Payment":
        raise _fail(
            SettlementErrorCode.TX_NOT_VALIDATED,
            "transaction is not a validated Payment",
        )
    if tx.transaction_result != SUCCESS_RESULT:
        raise _fail(
            SettlementErrorCode.TX_NOT_VALIDATED,
            f"transaction did not succeed: {tx.transaction_result!r}",
        )

    if not tx.account:
        raise _fail(SettlementErrorCode.INVALID_RECEIPT, "transaction has no sending account")

    if tx.destination != challenge.destination:
        raise _fail(
            SettlementErrorCode.INVALID_DESTINATION,
            "transaction destination does not match challenge",
        )
    if tx.destination_tag is not None:
        raise _fail(
            SettlementErrorCode.INVALID_DESTINATION,
            "destination tags are not allowed in safe mode",
        )

    flags = 0 if tx.flags is None else tx.flags
    if not isinstance(flags, int) or isinstance(flags, bool):
        raise _fail(SettlementErrorCode.INVALID_ASSET, f"malformed transaction flags: {flags!r}")
    if flags & PARTIAL_PAYMENT_FLAG:
        raise _fail(SettlementErrorCode.INVALID_ASSET, "partial payment flag is not allowed")
    if tx.paths is not None or tx.send_max is not None or tx.deliver_min is not None:
        raise _fail(
            SettlementErrorCode.INVALID_ASSET,
            "path payment fields are not allowed in safe mode",
        )

    return tx.account


def check_amount(challenge: Challenge, tx_amount: Any) -> None:
    """Gate 12: the tx delivers exactly the challenge asset and amount.

    XRP: tx amount must be a drops string equal to the challenge amount.
    IOU: tx amount must be an IssuedAmount with the same currency and
    issuer, and its literal value must equal the canonical challenge amount.

    Raises:
        SettlementVerificationError: invalid_asset on shape mismatch,
            invalid_amount on value mismatch.
    """
    expected = normalize_decimal(challenge.amount)
    asset = challenge.asset

    if isinstance(asset, XrpAsset):
        if not isinstance(tx_amount, str):
            raise _fail(
                SettlementErrorCode.INVALID_ASSET,
                "expected XRP amount in drops string form",
            )
        if drops_to_xrp(tx_amount) != expected:
            raise _fail(
                SettlementErrorCode.INVALID_AMOUNT,
                "XRP amount does not match challenge amount",
            )
        return

    if isinstance(asset, IouAsset):
        if not isinstance(tx_amount, IssuedAmount):
            raise _fail(SettlementErrorCode.INVALID_ASSET, "expected IOU issued amount")
        if tx_amount.currency != asset.currency or tx_amount.issuer != asset.issuer:
            raise _fail(
                SettlementErrorCode.INVALID_ASSET,
                "IOU currency/issuer does not match challenge",
            )
        if tx_amount.value != expected:
            raise _fail(
                SettlementErrorCode.INVALID_AMOUNT,
                "IOU amount does not match challenge amount",
            )
        return

    raise _fail(SettlementErrorCode.INVALID_ASSET, f"unsupported asset: {asset!r}")


# =========================================================================
# Orchestrator
# =========================================================================


async def verify_settlement(
    challenge: Challenge,
    receipt_header_value: str,
    ledger: LedgerQueryClient,
    replay_store: ReplayStore,
    *,
    now: datetime | None = None,
) -> VerificationResult:
    """Verify that a receipt settles a challenge.

    Args:
        challenge: The challenge issued for this request.
        receipt_header_value: Raw X-PAYMENT-RECEIPT header value.
        ledger: Ledger-query collaborator.
        replay_store: Replay index shared by all verifications.
        now: Current time. Must be timezone-aware; defaults to UTC now.

    Returns:
        VerificationResult on success.

    Raises:
        SettlementVerificationError: On the first failing gate.
        ValueError: If now is a naive datetime.
        Exception: Whatever the ledger collaborator raises, unchanged.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    validate_challenge(challenge)
    _check_not_expired(challenge, now)

    receipt = decode_receipt_header(receipt_header_value)
    if receipt.network != challenge.network:
        raise _fail(
            SettlementErrorCode.NETWORK_MISMATCH,
            "receipt network does not match challenge network",
        )
    if receipt.payment_id != challenge.payment_id:
        raise _fail(
            SettlementErrorCode.INVALID_RECEIPT,
            "receipt paymentId does not match challenge paymentId",
        )

    payment_id = challenge.payment_id
    tx_hash = receipt.tx_hash

    existing_tx_hash = replay_store.lookup_tx_hash(payment_id)
    existing_payment_id = replay_store.lookup_payment_id(tx_hash)
    try:
        check_conflict(payment_id, tx_hash, existing_tx_hash, existing_payment_id)
    except SettlementVerificationError:
        logger.warning("replay detected payment_id=%s tx_hash=%s", payment_id, tx_hash)
        raise
    if existing_tx_hash == tx_hash and existing_payment_id == payment_id:
        logger.debug("idempotent hit payment_id=%s tx_hash=%s", payment_id, tx_hash)
        return VerificationResult(idempotent=True, receipt=receipt)

    tx = await ledger.fetch(challenge.network, tx_hash)
    if tx is None:
        raise _fail(SettlementErrorCode.TX_NOT_FOUND, "transaction not found")

    payer_account = _check_transaction_shape(challenge, tx)
    check_amount(challenge, tx.amount)
    match_memo(tx.memos, payment_id)

    try:
        inserted = replay_store.register(payment_id, tx_hash)
    except SettlementVerificationError:
        logger.warning(
            "replay detected at registration payment_id=%s tx_hash=%s",
            payment_id,
            tx_hash,
        )
        raise

    if not inserted:
        logger.debug("concurrent settlement won payment_id=%s", payment_id)
        return VerificationResult(
            idempotent=True, receipt=receipt, payer_account=payer_account
        )

    logger.info(
        "payment settled payment_id=%s tx_hash=%s network=%s",
        payment_id,
        tx_hash,
        challenge.network,
    )
    return VerificationResult(
        idempotent=False, receipt=receipt, payer_account=payer_account
    )

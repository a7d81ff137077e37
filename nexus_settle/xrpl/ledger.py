"""
Ledger-side record types and the ledger-query boundary.

The verifier never talks to the XRPL itself. It depends on a
LedgerQueryClient that turns (network, tx_hash) into a LedgerPaymentRecord,
or None when the ledger has no such transaction. JsonRpcLedgerClient is the
shipped implementation; tests use small fakes.

LedgerPaymentRecord is consumed, not owned: it mirrors the subset of a
rippled ``tx`` result that settlement checks look at, and nothing more.
Optional ledger fields stay None when absent so that "absent" and "present
but empty" can be told apart (SendMax, Paths and DeliverMin are rejected on
presence alone).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


class LedgerQueryError(Exception):
    """The ledger query failed for a reason other than "not found".

    Collaborator-defined and possibly transient. The verifier propagates it
    untouched; the caller decides whether to retry.
    """

    def __init__(self, error: str, detail: str | None = None) -> None:
        super().__init__(detail or error)
        self.error = error
        self.detail = detail


# =========================================================================
# Record types
# =========================================================================


@dataclass(frozen=True)
class IssuedAmount:
    """Issued-currency (IOU) amount as it appears on the ledger.

    ``value`` is kept verbatim; it is never coerced to a number.
    """

    currency: str
    issuer: str
    value: str

    def to_xrpl(self) -> dict[str, str]:
        return {"currency": self.currency, "issuer": self.issuer, "value": self.value}


@dataclass(frozen=True)
class MemoEntry:
    """One XRPL memo. Fields are raw, usually hex-encoded, strings."""

    memo_type: str | None = None
    memo_format: str | None = None
    memo_data: str | None = None

    def to_xrpl(self) -> dict[str, dict[str, str]]:
        """Serialize to the ``{"Memo": {...}}`` container used in tx JSON."""
        memo: dict[str, str] = {}
        if self.memo_type is not None:
            memo["MemoType"] = self.memo_type
        if self.memo_format is not None:
            memo["MemoFormat"] = self.memo_format
        if self.memo_data is not None:
            memo["MemoData"] = self.memo_data
        return {"Memo": memo}

    @classmethod
    def from_xrpl(cls, container: Any) -> MemoEntry:
        """Build from a ``{"Memo": {...}}`` container.

        Missing or non-dict containers produce an empty entry, which the
        memo matcher skips.
        """
        memo = container.get("Memo") if isinstance(container, dict) else None
        if not isinstance(memo, dict):
            return cls()
        return cls(
            memo_type=_str_or_none(memo.get("MemoType")),
            memo_format=_str_or_none(memo.get("MemoFormat")),
            memo_data=_str_or_none(memo.get("MemoData")),
        )


@dataclass(frozen=True)
class LedgerPaymentRecord:
    """The settlement-relevant view of a ledger transaction.

    Attributes:
        validated: Whether the tx is in a validated ledger.
        transaction_type: XRPL TransactionType (must be "Payment").
        transaction_result: Engine result from ``meta.TransactionResult``.
            Only "tesSUCCESS" moved funds; a validated tec* Payment only
            burned its fee. None when the ledger returned no meta.
        account: Sending account (the payer).
        destination: Receiving account.
        destination_tag: DestinationTag if set. Rejected in safe mode.
        amount: Drops string for XRP, IssuedAmount for issued currency,
            or whatever unrecognized value the ledger returned.
        flags: Transaction flags bit field.
        memos: Memo entries in ledger order, None if the tx has no Memos.
        send_max, paths, deliver_min: Raw values if present. Any presence
            is rejected in safe mode.
    """

    validated: bool
    transaction_type: str
    transaction_result: str | None = None
    amount: Any = None
    account: str | None = None
    destination: str | None = None
    destination_tag: int | None = None
    flags: int | None = None
    memos: tuple[MemoEntry, ...] | None = None
    send_max: Any = None
    paths: Any = None
    deliver_min: Any = None

    @classmethod
    def from_xrpl(cls, result: dict[str, Any]) -> LedgerPaymentRecord:
        """Build a record from a rippled ``tx`` result object.

        Accepts both response shapes:
            - API v1: transaction fields at the top level of ``result``.
            - API v2: transaction fields nested under ``result["tx_json"]``,
              with ``DeliverMax`` in place of ``Amount``.

        ``validated`` and ``meta`` always come from the top-level result.
        """
        tx_json = result.get("tx_json")
        fields: dict[str, Any] = tx_json if isinstance(tx_json, dict) else result

        amount = fields.get("Amount")
        if amount is None:
            amount = fields.get("DeliverMax")

        meta = result.get("meta")
        engine_result = meta.get("TransactionResult") if isinstance(meta, dict) else None

        raw_memos = fields.get("Memos")
        memos = (
            tuple(MemoEntry.from_xrpl(m) for m in raw_memos)
            if isinstance(raw_memos, list)
            else None
        )

        return cls(
            validated=result.get("validated") is True,
            transaction_type=str(fields.get("TransactionType", "")),
            transaction_result=_str_or_none(engine_result),
            amount=_parse_amount(amount),
            account=_str_or_none(fields.get("Account")),
            destination=_str_or_none(fields.get("Destination")),
            destination_tag=fields.get("DestinationTag"),
            flags=fields.get("Flags"),
            memos=memos,
            send_max=fields.get("SendMax"),
            paths=fields.get("Paths"),
            deliver_min=fields.get("DeliverMin"),
        )


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _parse_amount(value: Any) -> Any:
    if (
        isinstance(value, dict)
        and isinstance(value.get("currency"), str)
        and isinstance(value.get("issuer"), str)
        and isinstance(value.get("value"), str)
    ):
        return IssuedAmount(
            currency=value["currency"],
            issuer=value["issuer"],
            value=value["value"],
        )
    return value


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerQueryClient(Protocol):
    """Interface for looking up a settled transaction.

    Implementations own connection management and timeouts. The verifier
    awaits exactly one fetch per non-idempotent verification.
    """

    async def fetch(self, network: str, tx_hash: str) -> LedgerPaymentRecord | None:
        """Look up a transaction by hash.

        Args:
            network: Supported network identifier (e.g. "xrpl:testnet").
            tx_hash: Transaction hash claimed by the receipt.

        Returns:
            The record, or None if the ledger does not know the hash.

        Raises:
            LedgerQueryError: On query failures other than "not found".
        """
        ...

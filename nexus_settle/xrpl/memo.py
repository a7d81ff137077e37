"""
x402 memo format v1.

Binds a ledger Payment to a paymentId. The client attaches one memo to its
Payment; the verifier scans the tx memos for a matching one.

Format:
    MemoType   = hex(utf8("x402"))
    MemoFormat = hex(utf8("application/json"))
    MemoData   = hex(utf8(canonical_json(payload)))

    payload = {
      "v":         1,
      "t":         "x402",
      "paymentId": "01HZY3J8S3A7XK4Z9T8B",
      "sessionId": "sess_123"             // optional
    }

Matching rules:
    - No memos at all is a failure.
    - Entries that are not x402/application/json, or carry no data, are
      skipped. Wallets and other apps attach their own memos.
    - An x402/application/json entry whose data is not JSON is a hard
      failure, not a skip. Corruption in the one memo we own fails fast.
    - Memo fields that are not valid hex are read as plain text.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from nexus_settle.canonical_json import canonical_json_hex
from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError
from nexus_settle.xrpl.ledger import MemoEntry

if TYPE_CHECKING:
    from nexus_settle.challenge import Challenge

# Memo schema version.
MEMO_VERSION = 1

MEMO_TYPE = "x402"
MEMO_FORMAT = "application/json"

MEMO_TYPE_HEX = MEMO_TYPE.encode("utf-8").hex().upper()
MEMO_FORMAT_HEX = MEMO_FORMAT.encode("utf-8").hex().upper()

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def build_memo_payload(payment_id: str, session_id: str | None = None) -> dict[str, Any]:
    """Build the memo JSON payload. A None session_id is left out."""
    payload: dict[str, Any] = {
        "v": MEMO_VERSION,
        "t": MEMO_TYPE,
        "paymentId": payment_id,
    }
    if session_id is not None:
        payload["sessionId"] = session_id
    return payload


def encode_memo(payment_id: str, session_id: str | None = None) -> MemoEntry:
    """Encode an x402 memo for the given paymentId.

    Returns:
        MemoEntry with uppercase hex type, format and data.
    """
    data = canonical_json_hex(build_memo_payload(payment_id, session_id))
    return MemoEntry(
        memo_type=MEMO_TYPE_HEX,
        memo_format=MEMO_FORMAT_HEX,
        memo_data=data,
    )


def build_xrpl_memo(challenge: Challenge) -> dict[str, dict[str, str]]:
    """The ``{"Memo": {...}}`` container a payer attaches for a challenge."""
    return encode_memo(challenge.payment_id, challenge.memo.session_id).to_xrpl()


def decode_memo_field(raw: str | None) -> str:
    """Decode one memo field to text.

    Absent or empty fields decode to "". Even-length hex is decoded as
    UTF-8; anything else is returned as-is.

    Raises:
        SettlementVerificationError: invalid_memo if hex bytes are not
            valid UTF-8.
    """
    if not raw:
        return ""
    if len(raw) % 2 == 0 and _HEX_RE.fullmatch(raw):
        try:
            return bytes.fromhex(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SettlementVerificationError(
                SettlementErrorCode.INVALID_MEMO,
                "memo field contains invalid hex-encoded UTF-8",
            ) from exc
    return raw


def _payload_matches(payload: Any, payment_id: str) -> bool:
    if not isinstance(payload, dict):
        return False
    version = payload.get("v")
    return (
        isinstance(version, int)
        and not isinstance(version, bool)
        and version == MEMO_VERSION
        and payload.get("t") == MEMO_TYPE
        and isinstance(payload.get("paymentId"), str)
        and payload["paymentId"] == payment_id
    )


def match_memo(memos: Sequence[MemoEntry] | None, payment_id: str) -> MemoEntry:
    """Find the x402 memo bound to payment_id.

    Returns:
        The first matching entry.

    Raises:
        SettlementVerificationError: invalid_memo if there are no memos,
            a candidate's data is malformed JSON, or nothing matches.
    """
    if not memos:
        raise SettlementVerificationError(
            SettlementErrorCode.INVALID_MEMO, "transaction memo is required"
        )

    for entry in memos:
        memo_type = decode_memo_field(entry.memo_type)
        memo_format = decode_memo_field(entry.memo_format)
        memo_data = decode_memo_field(entry.memo_data)

        if memo_type != MEMO_TYPE or memo_format != MEMO_FORMAT or not memo_data:
            continue

        try:
            payload = json.loads(memo_data)
        except (ValueError, RecursionError) as exc:
            raise SettlementVerificationError(
                SettlementErrorCode.INVALID_MEMO, "memo JSON is malformed"
            ) from exc

        if _payload_matches(payload, payment_id):
            return entry

    raise SettlementVerificationError(
        SettlementErrorCode.INVALID_MEMO,
        "no valid x402 memo found with matching paymentId",
    )

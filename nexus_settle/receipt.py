"""
x402 settlement receipt and its header codec.

After submitting a Payment, the client retries the paywalled request with
a receipt in the X-PAYMENT-RECEIPT header:

    X-PAYMENT-RECEIPT: base64(utf8(json({network, txHash, paymentId})))

Standard base64 alphabet, padded. Anything that fails to decode or does not
have the expected shape is invalid_receipt.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from nexus_settle.canonical_json import canonical_json_bytes
from nexus_settle.challenge import is_supported_network
from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError

RECEIPT_HEADER_NAME = "X-PAYMENT-RECEIPT"


@dataclass(frozen=True)
class Receipt:
    """A client's claim that tx_hash settles payment_id on network."""

    network: str
    tx_hash: str
    payment_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "network": self.network,
            "txHash": self.tx_hash,
            "paymentId": self.payment_id,
        }


def _invalid(message: str) -> SettlementVerificationError:
    return SettlementVerificationError(SettlementErrorCode.INVALID_RECEIPT, message)


def _validate(network: Any, tx_hash: Any, payment_id: Any) -> None:
    if not isinstance(network, str):
        raise _invalid("receipt.network is required")
    if not is_supported_network(network):
        raise _invalid(f"receipt.network is not supported: {network!r}")
    if not isinstance(tx_hash, str) or not tx_hash:
        raise _invalid("receipt.txHash is required")
    if not isinstance(payment_id, str) or not payment_id:
        raise _invalid("receipt.paymentId is required")


def encode_receipt_header(receipt: Receipt) -> str:
    """Encode a receipt as an X-PAYMENT-RECEIPT header value.

    Raises:
        SettlementVerificationError: invalid_receipt if a field is missing
            or the network is unsupported.
    """
    _validate(receipt.network, receipt.tx_hash, receipt.payment_id)
    return base64.b64encode(canonical_json_bytes(receipt.to_dict())).decode("ascii")


def decode_receipt_header(value: str) -> Receipt:
    """Decode and structurally validate an X-PAYMENT-RECEIPT header value.

    Raises:
        SettlementVerificationError: invalid_receipt on bad base64, bad
            UTF-8, bad JSON, a non-object payload or any invalid field.
    """
    if not isinstance(value, str) or not value:
        raise _invalid("receipt header is empty")

    try:
        raw = base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise _invalid("receipt header is not valid base64") from exc

    try:
        decoded = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise _invalid("receipt header is not valid JSON") from exc

    if not isinstance(decoded, dict):
        raise _invalid("receipt payload must be an object")

    network = decoded.get("network")
    tx_hash = decoded.get("txHash")
    payment_id = decoded.get("paymentId")
    _validate(network, tx_hash, payment_id)

    return Receipt(network=network, tx_hash=tx_hash, payment_id=payment_id)

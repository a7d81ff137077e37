"""
x402 payment challenge (version "2").

A challenge is issued by the paywalled service before the client pays, and
handed back to the verifier together with the client's receipt. It is
immutable and never persisted here.

Invariants:
    - version == "2".
    - network in SUPPORTED_NETWORKS.
    - amount: canonical non-negative decimal ("2.5", never "2.50" or "02.5").
    - destination, payment_id: non-empty.
    - asset: XrpAsset, or IouAsset with non-empty currency and issuer.
    - expires_at: ISO-8601 UTC with a time component and a literal "Z".
    - memo.format == "x402" and memo.payment_id == payment_id.

Every violation raises SettlementVerificationError(invalid_challenge).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError
from nexus_settle.xrpl.amount import is_decimal_amount, normalize_decimal

CHALLENGE_VERSION = "2"

SUPPORTED_NETWORKS: tuple[str, ...] = ("xrpl:1", "xrpl:testnet", "xrpl:devnet")

MEMO_FORMAT_X402 = "x402"

_ISO_UTC_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2})(?::([0-9]{2})(?:\.([0-9]+))?)?Z"
)


def is_supported_network(value: object) -> bool:
    return isinstance(value, str) and value in SUPPORTED_NETWORKS


def _invalid(message: str) -> SettlementVerificationError:
    return SettlementVerificationError(SettlementErrorCode.INVALID_CHALLENGE, message)


def _require_non_empty(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _invalid(f"{name} is required")
    return value


# =========================================================================
# Asset variants
# =========================================================================


@dataclass(frozen=True)
class XrpAsset:
    """Native XRP, settled in drops."""

    kind: Literal["XRP"] = field(default="XRP", init=False)

    def to_dict(self) -> dict[str, str]:
        return {"kind": "XRP"}


@dataclass(frozen=True)
class IouAsset:
    """Issued currency identified by currency code and issuing account."""

    currency: str
    issuer: str
    kind: Literal["IOU"] = field(default="IOU", init=False)

    def to_dict(self) -> dict[str, str]:
        return {"kind": "IOU", "currency": self.currency, "issuer": self.issuer}


ChallengeAsset = XrpAsset | IouAsset


def _validate_asset(asset: object) -> None:
    if isinstance(asset, XrpAsset):
        return
    if isinstance(asset, IouAsset):
        _require_non_empty(asset.currency, "asset.currency")
        _require_non_empty(asset.issuer, "asset.issuer")
        return
    raise _invalid(f"unsupported asset: {asset!r}")


def _asset_from_dict(data: Any) -> ChallengeAsset:
    if not isinstance(data, dict):
        raise _invalid("asset must be an object")
    kind = data.get("kind")
    if kind == "XRP":
        return XrpAsset()
    if kind == "IOU":
        return IouAsset(currency=data.get("currency"), issuer=data.get("issuer"))
    raise _invalid(f"unsupported asset kind: {kind!r}")


# =========================================================================
# Expiry
# =========================================================================


def parse_expires_at(value: object) -> datetime:
    """Parse an ISO-8601 UTC timestamp ending in "Z".

    Accepts minute, second or fractional-second precision. Fractions
    beyond microseconds are truncated.

    Raises:
        SettlementVerificationError: invalid_challenge if the value is not
            an ISO-8601 UTC instant.
    """
    match = _ISO_UTC_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise _invalid("expiresAt must be an ISO-8601 UTC timestamp")

    year, month, day, hour, minute, second, fraction = match.groups()
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second or 0),
            int((fraction or "")[:6].ljust(6, "0")),
            tzinfo=timezone.utc,
        )
    except ValueError as exc:
        raise _invalid(f"expiresAt is not a valid date: {value!r}") from exc


# =========================================================================
# Challenge
# =========================================================================


@dataclass(frozen=True)
class ChallengeMemo:
    """Memo binding carried by the challenge."""

    payment_id: str
    session_id: str | None = None
    format: str = MEMO_FORMAT_X402

    def to_dict(self) -> dict[str, str]:
        result = {"format": self.format, "paymentId": self.payment_id}
        if self.session_id is not None:
            result["sessionId"] = self.session_id
        return result


@dataclass(frozen=True)
class Challenge:
    """An issued x402 payment challenge."""

    network: str
    amount: str
    asset: ChallengeAsset
    destination: str
    expires_at: str
    payment_id: str
    memo: ChallengeMemo
    version: str = CHALLENGE_VERSION

    @property
    def expires_at_datetime(self) -> datetime:
        return parse_expires_at(self.expires_at)

    def to_dict(self) -> dict[str, Any]:
        """Wire form with camelCase keys."""
        return {
            "version": self.version,
            "network": self.network,
            "amount": self.amount,
            "asset": self.asset.to_dict(),
            "destination": self.destination,
            "expiresAt": self.expires_at,
            "paymentId": self.payment_id,
            "memo": self.memo.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Challenge:
        """Rebuild and validate a challenge from its wire form.

        Raises:
            SettlementVerificationError: invalid_challenge on any shape or
                invariant violation.
        """
        if not isinstance(data, dict):
            raise _invalid("challenge must be an object")
        memo = data.get("memo")
        if not isinstance(memo, dict):
            raise _invalid("challenge.memo must be an object")

        challenge = cls(
            version=data.get("version"),
            network=data.get("network"),
            amount=data.get("amount"),
            asset=_asset_from_dict(data.get("asset")),
            destination=data.get("destination"),
            expires_at=data.get("expiresAt"),
            payment_id=data.get("paymentId"),
            memo=ChallengeMemo(
                payment_id=memo.get("paymentId"),
                session_id=memo.get("sessionId"),
                format=memo.get("format"),
            ),
        )
        validate_challenge(challenge)
        return challenge


def _validate_fields(
    network: object,
    amount: object,
    asset: object,
    destination: object,
    expires_at: object,
    payment_id: object,
) -> None:
    if not is_supported_network(network):
        raise _invalid(f"unsupported network: {network!r}")
    if not is_decimal_amount(amount):
        raise _invalid(f"invalid decimal amount: {amount!r}")
    parse_expires_at(expires_at)
    _validate_asset(asset)
    _require_non_empty(destination, "destination")
    _require_non_empty(payment_id, "paymentId")


def create_challenge(
    *,
    network: str,
    amount: str,
    asset: ChallengeAsset,
    destination: str,
    expires_at: str,
    payment_id: str,
    session_id: str | None = None,
) -> Challenge:
    """Build a validated challenge.

    The amount is normalized and the memo is bound to payment_id; there is
    no way to pass a different memo paymentId.

    Raises:
        SettlementVerificationError: invalid_challenge on any invalid field.
    """
    _validate_fields(network, amount, asset, destination, expires_at, payment_id)
    if session_id is not None and not isinstance(session_id, str):
        raise _invalid("sessionId must be a string")

    return Challenge(
        network=network,
        amount=normalize_decimal(amount),
        asset=asset,
        destination=destination,
        expires_at=expires_at,
        payment_id=payment_id,
        memo=ChallengeMemo(payment_id=payment_id, session_id=session_id),
    )


def validate_challenge(challenge: Challenge) -> None:
    """Check every challenge invariant.

    Raises:
        SettlementVerificationError: invalid_challenge on any violation.
    """
    if not isinstance(challenge, Challenge):
        raise _invalid("challenge must be a Challenge")
    if challenge.version != CHALLENGE_VERSION:
        raise _invalid(f"challenge.version must be {CHALLENGE_VERSION}")
    _validate_fields(
        challenge.network,
        challenge.amount,
        challenge.asset,
        challenge.destination,
        challenge.expires_at,
        challenge.payment_id,
    )
    if normalize_decimal(challenge.amount) != challenge.amount:
        raise _invalid(f"challenge.amount is not canonical: {challenge.amount!r}")
    if not isinstance(challenge.memo, ChallengeMemo):
        raise _invalid("challenge.memo is required")
    if challenge.memo.format != MEMO_FORMAT_X402:
        raise _invalid(f"challenge.memo.format must be {MEMO_FORMAT_X402}")
    if challenge.memo.payment_id != challenge.payment_id:
        raise _invalid("challenge.memo.paymentId must match challenge.paymentId")
    if challenge.memo.session_id is not None and not isinstance(
        challenge.memo.session_id, str
    ):
        raise _invalid("challenge.memo.sessionId must be a string")

"""
XRP / issued-currency amount codec.

All amounts are handled as strings. Nothing here touches float or Decimal:
equality is checked on canonical string forms so rounding can never turn a
mismatch into a match (or the other way around).

Grammar accepted everywhere:  ^(0|[1-9]\\d*)(\\.\\d+)?$

    normalize_decimal("1.50")  -> "1.5"
    normalize_decimal("2.000") -> "2"
    xrp_to_drops("2.5")        -> "2500000"
    drops_to_xrp("2500000")    -> "2.5"
    drops_to_xrp("1")          -> "0.000001"
"""

from __future__ import annotations

import re

from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError

# One XRP is 10^6 drops.
DROPS_PER_XRP_DIGITS = 6

_DECIMAL_RE = re.compile(r"(0|[1-9][0-9]*)(\.[0-9]+)?")
_DROPS_RE = re.compile(r"[0-9]+")


def is_decimal_amount(value: object) -> bool:
    """True if value is a string in the accepted decimal grammar."""
    return isinstance(value, str) and _DECIMAL_RE.fullmatch(value) is not None


def _require_decimal(value: object) -> str:
    if not isinstance(value, str) or _DECIMAL_RE.fullmatch(value) is None:
        raise SettlementVerificationError(
            SettlementErrorCode.INVALID_AMOUNT,
            f"invalid decimal amount: {value!r}",
        )
    return value


def _split(value: str) -> tuple[str, str]:
    integer, _, fraction = value.partition(".")
    return integer, fraction


def _strip_leading_zeros(digits: str) -> str:
    return digits.lstrip("0") or "0"


def normalize_decimal(value: str) -> str:
    """Canonicalize a decimal string.

    Strips leading zeros from the integer part (keeping a single "0"),
    trailing zeros from the fraction, and drops an empty fraction.

    Raises:
        SettlementVerificationError: invalid_amount if value is not in the
            decimal grammar.
    """
    integer, fraction = _split(_require_decimal(value))
    integer = _strip_leading_zeros(integer)
    fraction = fraction.rstrip("0")
    return f"{integer}.{fraction}" if fraction else integer


def xrp_to_drops(value: str) -> str:
    """Convert a human XRP decimal string to an integer drops string.

    Raises:
        SettlementVerificationError: invalid_amount if value is not a
            decimal or has more than six fractional digits.
    """
    integer, fraction = _split(_require_decimal(value))
    if len(fraction) > DROPS_PER_XRP_DIGITS:
        raise SettlementVerificationError(
            SettlementErrorCode.INVALID_AMOUNT,
            f"XRP amount has more than {DROPS_PER_XRP_DIGITS} decimals: {value!r}",
        )
    return _strip_leading_zeros(integer + fraction.ljust(DROPS_PER_XRP_DIGITS, "0"))


def drops_to_xrp(drops: str) -> str:
    """Convert an integer drops string to a canonical XRP decimal string.

    Raises:
        SettlementVerificationError: invalid_amount unless drops is an
            unsigned integer string.
    """
    if not isinstance(drops, str) or _DROPS_RE.fullmatch(drops) is None:
        raise SettlementVerificationError(
            SettlementErrorCode.INVALID_AMOUNT,
            "XRP drops amount must be an unsigned integer string",
        )
    padded = drops.rjust(DROPS_PER_XRP_DIGITS + 1, "0")
    whole = _strip_leading_zeros(padded[:-DROPS_PER_XRP_DIGITS])
    fraction = padded[-DROPS_PER_XRP_DIGITS:].rstrip("0")
    return f"{whole}.{fraction}" if fraction else whole

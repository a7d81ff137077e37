"""
Deterministic JSON for bytes that leave the process.

Memo payloads go on the ledger as hex and receipts go over HTTP as base64.
Both are encoded from these bytes, so one logical value always maps to one
encoding: sorted keys, no whitespace, UTF-8, no NaN/Infinity.
"""

import json
from typing import Any

_ENCODER = json.JSONEncoder(
    sort_keys=True,
    separators=(",", ":"),
    ensure_ascii=False,
    allow_nan=False,
)


def canonical_json(obj: Any) -> str:
    """Serialize obj to its canonical JSON text.

    Raises:
        ValueError: On NaN or Infinity floats.
        TypeError: On values JSON cannot represent.
    """
    return _ENCODER.encode(obj)


def canonical_json_bytes(obj: Any) -> bytes:
    """Canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def canonical_json_hex(obj: Any) -> str:
    """Canonical JSON as uppercase hex, the form XRPL memo fields use."""
    return canonical_json_bytes(obj).hex().upper()

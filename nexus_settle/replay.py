"""
Replay ledger: the paymentId <-> txHash bijection.

A pair is registered only after a verification fully succeeded. From then
on:
    - the same pair verifies idempotently (no ledger fetch),
    - the paymentId with any other txHash is a replay,
    - the txHash with any other paymentId is a replay.

ReplayStore is the contract the verifier depends on. InMemoryReplayStore
is the single-process reference; SqliteReplayStore (sqlite_store.py) is the
durable one. A multi-instance deployment needs a store whose register()
is atomic across instances (e.g. a conditional write).
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from nexus_settle.errors import SettlementErrorCode, SettlementVerificationError


@runtime_checkable
class ReplayStore(Protocol):
    """Bijective paymentId <-> txHash index. Must be safe for concurrent use."""

    def lookup_tx_hash(self, payment_id: str) -> str | None:
        """The txHash bound to payment_id, if any."""
        ...

    def lookup_payment_id(self, tx_hash: str) -> str | None:
        """The paymentId bound to tx_hash, if any."""
        ...

    def register(self, payment_id: str, tx_hash: str) -> bool:
        """Atomically bind payment_id and tx_hash.

        Returns:
            True if the pair was inserted, False if this exact pair was
            already registered.

        Raises:
            SettlementVerificationError: replay_detected if either side is
                already bound to a different counterpart.
        """
        ...


def check_conflict(
    payment_id: str,
    tx_hash: str,
    existing_tx_hash: str | None,
    existing_payment_id: str | None,
) -> None:
    """Raise replay_detected if either existing binding disagrees."""
    if existing_tx_hash is not None and existing_tx_hash != tx_hash:
        raise SettlementVerificationError(
            SettlementErrorCode.REPLAY_DETECTED,
            "paymentId already used with a different transaction hash",
        )
    if existing_payment_id is not None and existing_payment_id != payment_id:
        raise SettlementVerificationError(
            SettlementErrorCode.REPLAY_DETECTED,
            "transaction hash already used by a different paymentId",
        )


class InMemoryReplayStore:
    """Dual-map replay store for a single process.

    Entries live as long as the instance. Nothing is ever evicted.
    """

    def __init__(self) -> None:
        self._tx_hash_by_payment_id: dict[str, str] = {}
        self._payment_id_by_tx_hash: dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._tx_hash_by_payment_id)

    def lookup_tx_hash(self, payment_id: str) -> str | None:
        return self._tx_hash_by_payment_id.get(payment_id)

    def lookup_payment_id(self, tx_hash: str) -> str | None:
        return self._payment_id_by_tx_hash.get(tx_hash)

    def register(self, payment_id: str, tx_hash: str) -> bool:
        with self._lock:
            existing_tx_hash = self._tx_hash_by_payment_id.get(payment_id)
            existing_payment_id = self._payment_id_by_tx_hash.get(tx_hash)
            check_conflict(payment_id, tx_hash, existing_tx_hash, existing_payment_id)

            if existing_tx_hash is not None:
                # Same pair, both directions already bound.
                return False

            self._tx_hash_by_payment_id[payment_id] = tx_hash
            self._payment_id_by_tx_hash[tx_hash] = payment_id
            return True

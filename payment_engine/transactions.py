"""
Transaction Ledger Module

Append-only record of accepted deposits and withdrawals together with their
dispute state. The dispute lifecycle is an explicit state machine:

    CLEAN -> DISPUTED -> CLEAN         (resolve, re-disputable)
                      -> RESOLVED      (resolve, when re-disputes are disabled)
                      -> CHARGED_BACK  (chargeback, terminal)

Records are never deleted and their amounts never change.
"""

from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Iterator
from enum import Enum

from .currency import Amount
from .errors import (
    DuplicateTransactionError,
    InvalidTransitionError,
    TransactionNotFoundError,
)


class TransactionKind(Enum):
    """Kinds of recorded transactions"""
    DEPOSIT = "deposit"        # Credit to available assets
    WITHDRAWAL = "withdrawal"  # Debit from available assets


class DisputeState(Enum):
    """Dispute state of a recorded transaction"""
    CLEAN = "clean"                # Effect realized, may be disputed
    DISPUTED = "disputed"          # Contested, amount held
    RESOLVED = "resolved"          # Dispute settled for good
    CHARGED_BACK = "charged_back"  # Reversed, terminal

    @property
    def is_terminal(self) -> bool:
        return self in (DisputeState.RESOLVED, DisputeState.CHARGED_BACK)


@dataclass(frozen=True)
class TransactionRecord:
    """An accepted deposit or withdrawal"""
    id: int
    client: int  # Owning client, stored by value
    kind: TransactionKind
    amount: Amount
    dispute_state: DisputeState = DisputeState.CLEAN

    @property
    def is_deposit(self) -> bool:
        return self.kind == TransactionKind.DEPOSIT

    @property
    def is_withdrawal(self) -> bool:
        return self.kind == TransactionKind.WITHDRAWAL


class TransactionLedger:
    """
    Keyed store of transaction records and their dispute transitions

    Illegal transitions raise InvalidTransitionError and leave the record
    unchanged.
    """

    def __init__(self, redispute_after_resolve: bool = True):
        self._records: Dict[int, TransactionRecord] = {}
        self.redispute_after_resolve = redispute_after_resolve

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(self._records.values())

    def contains(self, tx_id: int) -> bool:
        return tx_id in self._records

    def record(self, tx_id: int, client: int, kind: TransactionKind, amount: Amount) -> TransactionRecord:
        """
        Insert a new CLEAN record

        Raises:
            DuplicateTransactionError: If the id is already recorded
        """
        if tx_id in self._records:
            raise DuplicateTransactionError(
                f"Transaction {tx_id} already exists", client=client, tx=tx_id
            )
        record = TransactionRecord(id=tx_id, client=client, kind=kind, amount=amount)
        self._records[tx_id] = record
        return record

    def lookup(self, tx_id: int) -> TransactionRecord:
        """
        Get a record by id

        Raises:
            TransactionNotFoundError: If the id was never recorded
        """
        record = self._records.get(tx_id)
        if record is None:
            raise TransactionNotFoundError(f"Transaction {tx_id} not found", tx=tx_id)
        return record

    def mark_disputed(self, tx_id: int) -> TransactionRecord:
        return self._transition(tx_id, frozenset({DisputeState.CLEAN}), DisputeState.DISPUTED)

    def mark_resolved(self, tx_id: int) -> TransactionRecord:
        target = DisputeState.CLEAN if self.redispute_after_resolve else DisputeState.RESOLVED
        return self._transition(tx_id, frozenset({DisputeState.DISPUTED}), target)

    def mark_charged_back(self, tx_id: int) -> TransactionRecord:
        return self._transition(tx_id, frozenset({DisputeState.DISPUTED}), DisputeState.CHARGED_BACK)

    def _transition(
        self,
        tx_id: int,
        allowed_from: FrozenSet[DisputeState],
        target: DisputeState
    ) -> TransactionRecord:
        record = self.lookup(tx_id)
        if record.dispute_state not in allowed_from:
            raise InvalidTransitionError(
                f"Transaction {tx_id} cannot go from {record.dispute_state.value} to {target.value}",
                client=record.client, tx=tx_id
            )
        updated = replace(record, dispute_state=target)
        self._records[tx_id] = updated
        return updated

"""
Test suite for transactions module

Tests recording, lookup and the dispute state machine of the transaction
ledger.
"""

import pytest

from payment_engine.currency import Amount
from payment_engine.errors import (
    CommandRejectedError,
    DuplicateTransactionError,
    InvalidTransitionError,
    TransactionNotFoundError,
)
from payment_engine.transactions import (
    DisputeState,
    TransactionKind,
    TransactionLedger,
    TransactionRecord,
)


class TestTransactionRecord:
    """Test TransactionRecord"""

    def test_defaults_to_clean(self):
        """Test that new records start clean"""
        record = TransactionRecord(id=1, client=2, kind=TransactionKind.DEPOSIT, amount=Amount.parse("1"))
        assert record.dispute_state == DisputeState.CLEAN
        assert record.is_deposit
        assert not record.is_withdrawal

    def test_frozen(self):
        """Test that records cannot be changed outside the ledger"""
        record = TransactionRecord(id=1, client=2, kind=TransactionKind.WITHDRAWAL, amount=Amount.parse("1"))
        with pytest.raises(AttributeError):
            record.dispute_state = DisputeState.DISPUTED

    def test_terminal_states(self):
        """Test terminal state detection"""
        assert DisputeState.CHARGED_BACK.is_terminal
        assert DisputeState.RESOLVED.is_terminal
        assert not DisputeState.CLEAN.is_terminal
        assert not DisputeState.DISPUTED.is_terminal


class TestTransactionLedger:
    """Test TransactionLedger"""

    def setup_method(self):
        """Set up test fixtures"""
        self.ledger = TransactionLedger()
        self.ledger.record(1, 10, TransactionKind.DEPOSIT, Amount.parse("5"))
        self.ledger.record(2, 10, TransactionKind.WITHDRAWAL, Amount.parse("2"))

    def test_record_and_lookup(self):
        """Test that recorded transactions can be looked up"""
        record = self.ledger.lookup(1)
        assert record.id == 1
        assert record.client == 10
        assert record.kind == TransactionKind.DEPOSIT
        assert record.amount == Amount.parse("5")
        assert self.ledger.contains(2)
        assert not self.ledger.contains(3)
        assert len(self.ledger) == 2
        assert [r.id for r in self.ledger] == [1, 2]

    def test_duplicate_id(self):
        """Test that ids are unique across clients and kinds"""
        with pytest.raises(DuplicateTransactionError) as exc_info:
            self.ledger.record(1, 99, TransactionKind.WITHDRAWAL, Amount.parse("1"))
        assert exc_info.value.tx == 1
        assert self.ledger.lookup(1).client == 10

    def test_lookup_missing(self):
        """Test lookup of an unknown id"""
        with pytest.raises(TransactionNotFoundError) as exc_info:
            self.ledger.lookup(42)
        assert isinstance(exc_info.value, CommandRejectedError)
        assert exc_info.value.tx == 42

    def test_dispute_resolve_cycle(self):
        """Test that resolve returns the transaction to CLEAN"""
        assert self.ledger.mark_disputed(1).dispute_state == DisputeState.DISPUTED
        assert self.ledger.mark_resolved(1).dispute_state == DisputeState.CLEAN
        assert self.ledger.mark_disputed(1).dispute_state == DisputeState.DISPUTED
        assert self.ledger.lookup(1).dispute_state == DisputeState.DISPUTED

    def test_chargeback_is_terminal(self):
        """Test that nothing leaves CHARGED_BACK"""
        self.ledger.mark_disputed(2)
        self.ledger.mark_charged_back(2)
        assert self.ledger.lookup(2).dispute_state == DisputeState.CHARGED_BACK

        for transition in (self.ledger.mark_disputed, self.ledger.mark_resolved, self.ledger.mark_charged_back):
            with pytest.raises(InvalidTransitionError):
                transition(2)
        assert self.ledger.lookup(2).dispute_state == DisputeState.CHARGED_BACK

    def test_resolve_requires_dispute(self):
        """Test resolve and chargeback only from DISPUTED"""
        with pytest.raises(InvalidTransitionError):
            self.ledger.mark_resolved(1)
        with pytest.raises(InvalidTransitionError):
            self.ledger.mark_charged_back(1)
        assert self.ledger.lookup(1).dispute_state == DisputeState.CLEAN

    def test_double_dispute(self):
        """Test that a disputed transaction cannot be disputed again"""
        self.ledger.mark_disputed(1)
        with pytest.raises(InvalidTransitionError) as exc_info:
            self.ledger.mark_disputed(1)
        assert exc_info.value.client == 10

    def test_transition_on_missing(self):
        """Test transitions on unknown ids"""
        with pytest.raises(TransactionNotFoundError):
            self.ledger.mark_disputed(7)

    def test_resolve_final_when_redispute_disabled(self):
        """Test terminal RESOLVED state"""
        ledger = TransactionLedger(redispute_after_resolve=False)
        ledger.record(1, 1, TransactionKind.DEPOSIT, Amount.parse("1"))
        ledger.mark_disputed(1)
        assert ledger.mark_resolved(1).dispute_state == DisputeState.RESOLVED
        with pytest.raises(InvalidTransitionError):
            ledger.mark_disputed(1)

"""
Command Engine Module

Applies deposit, withdrawal, dispute, resolve and chargeback commands to the
transaction ledger and the account store. A command either takes full effect
or is rejected with no side effect on balances or dispute states; rejections
are reported and processing always moves on to the next command.

Every balance change is computed with checked Amount arithmetic before anything
is written, so a failure part-way through a command cannot leave a half
applied update behind.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .accounts import Account, AccountSnapshot, AccountStore
from .commands import Chargeback, Command, CommandType, Deposit, Dispute, Resolve, Withdrawal
from .config import EngineSettings, WithdrawalDisputePolicy
from .errors import (
    AccountLockedError,
    AmountError,
    BalanceUpdateError,
    ClientMismatchError,
    CommandRejectedError,
    DuplicateTransactionError,
    InsufficientFundsError,
    InvalidTransitionError,
    WithdrawalDisputeDeniedError,
)
from .logging_config import get_logger, log_action
from .transactions import DisputeState, TransactionKind, TransactionLedger, TransactionRecord


@dataclass
class ProcessingSummary:
    """Outcome counters for a processed command stream"""
    seen: int = 0
    applied: int = 0
    rejected: int = 0
    malformed: int = 0  # Records dropped before reaching the engine
    rejections: Dict[str, int] = field(default_factory=dict)

    def record_applied(self) -> None:
        self.seen += 1
        self.applied += 1

    def record_rejection(self, error: CommandRejectedError) -> None:
        self.seen += 1
        self.rejected += 1
        reason = type(error).__name__
        self.rejections[reason] = self.rejections.get(reason, 0) + 1

    def to_dict(self) -> Dict:
        return {
            "seen": self.seen,
            "applied": self.applied,
            "rejected": self.rejected,
            "malformed": self.malformed,
            "rejections": dict(self.rejections)
        }


class PaymentEngine:
    """
    Processes commands against a transaction ledger and an account store

    The engine owns both collections for the duration of a run and holds no
    other state besides the processing summary.
    """

    def __init__(
        self,
        withdrawal_dispute_policy: WithdrawalDisputePolicy = WithdrawalDisputePolicy.PERMISSIVE,
        redispute_after_resolve: bool = True,
        ledger: Optional[TransactionLedger] = None,
        accounts: Optional[AccountStore] = None
    ):
        self.withdrawal_dispute_policy = WithdrawalDisputePolicy(withdrawal_dispute_policy)
        self.ledger = ledger if ledger is not None else TransactionLedger(redispute_after_resolve)
        self.accounts = accounts if accounts is not None else AccountStore()
        self.summary = ProcessingSummary()
        self.logger = get_logger("payment_engine.engine")

        self._handlers: Dict[CommandType, Callable] = {
            CommandType.DEPOSIT: self._deposit,
            CommandType.WITHDRAWAL: self._withdrawal,
            CommandType.DISPUTE: self._dispute,
            CommandType.RESOLVE: self._resolve,
            CommandType.CHARGEBACK: self._chargeback,
        }

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> 'PaymentEngine':
        return cls(
            withdrawal_dispute_policy=settings.withdrawal_dispute_policy,
            redispute_after_resolve=settings.redispute_after_resolve
        )

    def submit(self, command: Command) -> None:
        """
        Apply a single command

        Raises:
            CommandRejectedError: If the command is refused; the ledger and
                all balances are left exactly as they were
        """
        self._handlers[command.command_type](command)

    def process(self, commands: Iterable[Command]) -> ProcessingSummary:
        """
        Apply a stream of commands in order

        Rejections are logged and counted, never raised.

        Returns:
            The running processing summary
        """
        for command in commands:
            action = command.command_type.value
            try:
                self.submit(command)
            except CommandRejectedError as e:
                self.summary.record_rejection(e)
                log_action(
                    self.logger, "warning", f"Command rejected: {e}",
                    action=action, client=command.client, tx=command.tx,
                    reason=type(e).__name__
                )
            else:
                self.summary.record_applied()
                log_action(
                    self.logger, "debug", f"Command applied: {action}",
                    action=action, client=command.client, tx=command.tx
                )
        return self.summary

    def snapshots(self, sort: bool = False) -> List[AccountSnapshot]:
        """Snapshot of every known account"""
        return self.accounts.snapshots(sort=sort)

    # Command handlers

    def _deposit(self, command: Deposit) -> None:
        account = self.accounts.get_or_create(command.client)
        self._ensure_unlocked(account, command)
        self._ensure_new_transaction(command)

        with self._balance_update(command):
            available = account.available.add(command.amount)
            # The total must stay representable for snapshots
            available.add(account.held)

        self.ledger.record(command.tx, command.client, TransactionKind.DEPOSIT, command.amount)
        account.available = available

    def _withdrawal(self, command: Withdrawal) -> None:
        account = self.accounts.get_or_create(command.client)
        self._ensure_unlocked(account, command)
        if account.available < command.amount:
            raise InsufficientFundsError(
                f"Cannot withdraw {command.amount} from client {command.client}: "
                f"only {account.available} available",
                client=command.client, tx=command.tx
            )
        self._ensure_new_transaction(command)

        with self._balance_update(command):
            available = account.available.sub(command.amount)

        self.ledger.record(command.tx, command.client, TransactionKind.WITHDRAWAL, command.amount)
        account.available = available

    def _dispute(self, command: Dispute) -> None:
        record, account = self._settlement_target(command, DisputeState.CLEAN)
        amount = record.amount

        if record.is_withdrawal and self.withdrawal_dispute_policy == WithdrawalDisputePolicy.STRICT:
            raise WithdrawalDisputeDeniedError(
                f"Disputing withdrawal {record.id} is denied by policy",
                client=command.client, tx=command.tx
            )
        if account.available < amount:
            raise InsufficientFundsError(
                f"Cannot hold {amount} for transaction {record.id}: "
                f"only {account.available} available",
                client=command.client, tx=command.tx
            )

        with self._balance_update(command):
            if record.is_deposit:
                available = account.available.sub(amount)
                held = account.held.add(amount)
            else:
                # Withdrawn assets already left the account: the contested sum
                # is re-credited as held, available assets stay as collateral
                available = account.available
                held = account.held.add(amount)
                available.add(held)

        self.ledger.mark_disputed(record.id)
        account.available, account.held = available, held

    def _resolve(self, command: Resolve) -> None:
        record, account = self._settlement_target(command, DisputeState.DISPUTED)
        amount = record.amount

        with self._balance_update(command):
            held = account.held.sub(amount)
            if record.is_deposit:
                available = account.available.add(amount)
            else:
                available = account.available

        self.ledger.mark_resolved(record.id)
        account.available, account.held = available, held

    def _chargeback(self, command: Chargeback) -> None:
        record, account = self._settlement_target(command, DisputeState.DISPUTED)
        amount = record.amount

        with self._balance_update(command):
            held = account.held.sub(amount)
            if record.is_deposit:
                available = account.available
            else:
                # Refund the withdrawn assets
                available = account.available.add(amount)

        self.ledger.mark_charged_back(record.id)
        account.available, account.held = available, held
        account.locked = True

        log_action(
            self.logger, "info", f"Account {account.client} locked after chargeback",
            action=command.command_type.value, client=command.client, tx=command.tx,
            extra={"kind": record.kind.value, "amount": str(amount)}
        )

    # Validation helpers

    def _settlement_target(self, command, expected: DisputeState):
        """
        Resolve the transaction and account a dispute-family command acts on

        Disputes, resolves and chargebacks never create accounts: a claimant
        without an account cannot be locked, and an existing transaction
        always has an account.
        """
        claimant = self.accounts.get(command.client)
        if claimant is not None:
            self._ensure_unlocked(claimant, command)

        record = self._lookup(command)
        if record.client != command.client:
            raise ClientMismatchError(
                f"Transaction {record.id} belongs to client {record.client}, "
                f"not client {command.client}",
                client=command.client, tx=command.tx, owner=record.client
            )
        if record.dispute_state != expected:
            raise InvalidTransitionError(
                f"Cannot {command.command_type.value} transaction {record.id}: "
                f"it is {record.dispute_state.value}",
                client=command.client, tx=command.tx
            )
        return record, self.accounts.get_or_create(record.client)

    def _lookup(self, command) -> TransactionRecord:
        try:
            return self.ledger.lookup(command.tx)
        except CommandRejectedError as e:
            e.client = command.client
            raise

    def _ensure_unlocked(self, account: Account, command) -> None:
        if account.locked:
            raise AccountLockedError(
                f"Account {account.client} is locked",
                client=command.client, tx=command.tx
            )

    def _ensure_new_transaction(self, command) -> None:
        if self.ledger.contains(command.tx):
            raise DuplicateTransactionError(
                f"Transaction {command.tx} already exists",
                client=command.client, tx=command.tx
            )

    @contextmanager
    def _balance_update(self, command):
        """Turn checked-arithmetic failures into a rejection of the command"""
        try:
            yield
        except AmountError as e:
            raise BalanceUpdateError(
                f"Balance update failed for {command.command_type.value} "
                f"{command.tx}: {e}",
                client=command.client, tx=command.tx
            ) from e


def apply_commands(
    commands: Iterable[Command],
    withdrawal_dispute_policy: WithdrawalDisputePolicy = WithdrawalDisputePolicy.PERMISSIVE,
    sort: bool = False
) -> List[AccountSnapshot]:
    """Convenience wrapper: process a stream and return the final snapshots"""
    engine = PaymentEngine(withdrawal_dispute_policy=withdrawal_dispute_policy)
    engine.process(commands)
    return engine.snapshots(sort=sort)

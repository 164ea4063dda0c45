"""
Command Module

Immutable commands consumed by the engine. Deposits and withdrawals carry an
amount; disputes, resolves and chargebacks only reference a transaction.
"""

from dataclasses import dataclass
from typing import ClassVar, Union
from enum import Enum

from .currency import Amount


class CommandType(Enum):
    """Wire names of the commands"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (CommandType.DEPOSIT, CommandType.WITHDRAWAL)


@dataclass(frozen=True)
class Deposit:
    """Add funds to a non-locked account"""
    command_type: ClassVar[CommandType] = CommandType.DEPOSIT
    client: int
    tx: int
    amount: Amount


@dataclass(frozen=True)
class Withdrawal:
    """Remove funds from a non-locked account"""
    command_type: ClassVar[CommandType] = CommandType.WITHDRAWAL
    client: int
    tx: int
    amount: Amount


@dataclass(frozen=True)
class Dispute:
    """Client claims that a past transaction was erroneous"""
    command_type: ClassVar[CommandType] = CommandType.DISPUTE
    client: int
    tx: int


@dataclass(frozen=True)
class Resolve:
    """Settle a dispute in favour of the original transaction"""
    command_type: ClassVar[CommandType] = CommandType.RESOLVE
    client: int
    tx: int


@dataclass(frozen=True)
class Chargeback:
    """Settle a dispute by reversing the transaction and locking the account"""
    command_type: ClassVar[CommandType] = CommandType.CHARGEBACK
    client: int
    tx: int


Command = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]

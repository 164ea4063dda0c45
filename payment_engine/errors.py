"""
Error Taxonomy Module

Every failure the engine can report. Amount errors come from the fixed-point
type, command rejections from the engine, and input errors from the
collaborators that feed it. None of the per-command errors is fatal to a run.
"""

from typing import Optional


class PaymentEngineError(Exception):
    """Base exception for all payment engine errors"""


# Amount errors

class AmountError(PaymentEngineError, ValueError):
    """An amount could not be built or computed without losing exactness"""


class AmountParseError(AmountError):
    """Text could not be parsed into an amount"""


class MalformedAmountError(AmountParseError):
    """Text is not a sign-less decimal literal"""


class NegativeAmountError(AmountParseError):
    """Text carries a negative sign"""


class PrecisionLossError(AmountParseError):
    """Text has more fractional digits than an amount can hold"""


class AmountOverflowError(AmountError):
    """Result exceeds the largest representable amount"""


class AmountTooLargeError(AmountParseError, AmountOverflowError):
    """Parsed magnitude exceeds the largest representable amount"""


class AmountUnderflowError(AmountError):
    """Result would be negative"""


# Input errors

class MalformedCommandError(PaymentEngineError):
    """A wire record could not be turned into a command"""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class InputFormatError(PaymentEngineError):
    """The command source itself is unusable (missing columns, bad header)"""


# Command rejections

class CommandRejectedError(PaymentEngineError):
    """
    A command reached the engine and was refused.

    The engine guarantees that a rejected command left both the ledger and
    the account store untouched.
    """

    def __init__(self, message: str, client: Optional[int] = None, tx: Optional[int] = None):
        super().__init__(message)
        self.client = client
        self.tx = tx


class AccountLockedError(CommandRejectedError):
    """The client account is locked after a chargeback"""


class DuplicateTransactionError(CommandRejectedError):
    """The transaction id has already been recorded"""


class InsufficientFundsError(CommandRejectedError):
    """Not enough available assets for the operation"""


class TransactionNotFoundError(CommandRejectedError):
    """The referenced transaction was never recorded"""


class ClientMismatchError(CommandRejectedError):
    """The transaction belongs to another client"""

    def __init__(self, message: str, client: Optional[int] = None, tx: Optional[int] = None,
                 owner: Optional[int] = None):
        super().__init__(message, client=client, tx=tx)
        self.owner = owner


class InvalidTransitionError(CommandRejectedError):
    """The transaction is not in a state that allows the requested transition"""


class WithdrawalDisputeDeniedError(CommandRejectedError):
    """Disputes on withdrawals are denied by the configured policy"""


class BalanceUpdateError(CommandRejectedError):
    """Checked arithmetic failed while updating a balance"""

"""
Pydantic schemas for wire records

Input command rows are validated here before they become commands; output
account rows are rendered from snapshots.
"""

import re
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .accounts import AccountSnapshot
from .commands import Chargeback, Command, CommandType, Deposit, Dispute, Resolve, Withdrawal
from .currency import Amount
from .errors import AmountParseError, MalformedCommandError

CLIENT_ID_MAX = 2 ** 16 - 1
TX_ID_MAX = 2 ** 32 - 1

_DIGITS = re.compile(r"[0-9]+")

_COMMAND_CLASSES = {
    CommandType.DEPOSIT: Deposit,
    CommandType.WITHDRAWAL: Withdrawal,
    CommandType.DISPUTE: Dispute,
    CommandType.RESOLVE: Resolve,
    CommandType.CHARGEBACK: Chargeback,
}


class CommandRecord(BaseModel):
    """One input row: type, client, tx and an optional amount"""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    type: CommandType = Field(..., description="Command type (deposit, withdrawal, dispute, resolve, chargeback)")
    client: int = Field(..., ge=0, le=CLIENT_ID_MAX)
    tx: int = Field(..., ge=0, le=TX_ID_MAX)
    amount: Optional[str] = Field(None, description="Decimal amount as string, deposits and withdrawals only")

    @field_validator("client", "tx", mode="before")
    @classmethod
    def digits_only(cls, value: Any) -> Any:
        # Ids are plain unsigned decimals: no sign, point or underscore
        if isinstance(value, str):
            value = value.strip()
            if not _DIGITS.fullmatch(value):
                raise ValueError(f"expected an unsigned integer, got {value!r}")
            return int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"expected an unsigned integer, got {value!r}")
        return value

    @field_validator("amount", mode="before")
    @classmethod
    def blank_amount_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_row(cls, row: Dict[str, Any], line: Optional[int] = None) -> 'CommandRecord':
        """
        Validate a raw row

        Raises:
            MalformedCommandError: If the row does not match the schema
        """
        try:
            return cls.model_validate(row)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'row'}: {error['msg']}"
                for error in e.errors()
            )
            raise MalformedCommandError(f"Invalid command record: {problems}", line=line) from e

    def to_command(self, line: Optional[int] = None) -> Command:
        """
        Build the engine command for this record

        Raises:
            MalformedCommandError: If the amount is missing, unexpected or
                not a valid amount
        """
        command_class = _COMMAND_CLASSES[self.type]
        if not self.type.carries_amount:
            if self.amount is not None:
                raise MalformedCommandError(
                    f"{self.type.value} must not carry an amount", line=line
                )
            return command_class(client=self.client, tx=self.tx)

        if self.amount is None:
            raise MalformedCommandError(f"{self.type.value} requires an amount", line=line)
        try:
            amount = Amount.parse(self.amount)
        except AmountParseError as e:
            raise MalformedCommandError(f"Invalid amount for {self.type.value}: {e}", line=line) from e
        return command_class(client=self.client, tx=self.tx, amount=amount)


class AccountRecord(BaseModel):
    """One output row, amounts rendered with 4 fractional digits"""
    client: int
    available: str
    held: str
    total: str
    locked: bool

    @classmethod
    def from_snapshot(cls, snapshot: AccountSnapshot) -> 'AccountRecord':
        return cls(
            client=snapshot.client,
            available=snapshot.available.format(),
            held=snapshot.held.format(),
            total=snapshot.total.format(),
            locked=snapshot.locked
        )

    def to_row(self) -> Dict[str, str]:
        return {
            "client": str(self.client),
            "available": self.available,
            "held": self.held,
            "total": self.total,
            "locked": "true" if self.locked else "false",
        }

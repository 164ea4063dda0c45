"""
Fixed-Point Amount Module

Exact, non-negative monetary amounts with 4 fractional digits. An amount is an
integer count of 1e-4 units bounded by the unsigned 64-bit range. NEVER uses
float for monetary values and never rounds: anything that cannot be
represented exactly is an error.
"""

from dataclasses import dataclass
import re

from .errors import (
    AmountOverflowError,
    AmountTooLargeError,
    AmountUnderflowError,
    MalformedAmountError,
    NegativeAmountError,
    PrecisionLossError,
)

PRECISION = 4  # Fractional digits
UNITS_PER_WHOLE = 10 ** PRECISION
MAX_UNITS = 2 ** 64 - 1  # 1844674407370955.1615

_MAX_WHOLE_DIGITS = len(str(MAX_UNITS // UNITS_PER_WHOLE))
_LITERAL = re.compile(r"([0-9]*)(?:\.([0-9]*))?")


@dataclass(frozen=True, order=True, repr=False)
class Amount:
    """
    Immutable unsigned fixed-point amount.

    The only ways to obtain an amount are the validated constructor, `parse`
    and the checked `add`/`sub` methods. There are no `+`/`-` operators.
    """
    units: int

    def __post_init__(self):
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise TypeError(f"Amount units must be an int, got {type(self.units).__name__}")
        if self.units < 0:
            raise AmountUnderflowError(f"Amount cannot be negative ({self.units} units)")
        if self.units > MAX_UNITS:
            raise AmountOverflowError(f"Amount exceeds the maximum of {MAX_UNITS} units")

    @classmethod
    def zero(cls) -> 'Amount':
        return cls(0)

    @classmethod
    def from_units(cls, units: int) -> 'Amount':
        """Build an amount from a count of 1e-4 units"""
        return cls(units)

    @classmethod
    def parse(cls, text: str) -> 'Amount':
        """
        Parse a sign-less decimal literal with at most 4 fractional digits

        Accepts "1", "1.", ".5" and "1.2345". Surrounding whitespace is not
        accepted; trimming is the caller's job.

        Raises:
            NegativeAmountError: text starts with "-"
            MalformedAmountError: text is not a decimal literal
            PrecisionLossError: more than 4 fractional digits
            AmountTooLargeError: value exceeds the representable range
        """
        if not isinstance(text, str):
            raise MalformedAmountError(f"Expected text, got {type(text).__name__}")
        if text.startswith("-"):
            raise NegativeAmountError(f"Negative amount: {text!r}")

        match = _LITERAL.fullmatch(text)
        if not match:
            raise MalformedAmountError(f"Not a decimal literal: {text!r}")

        whole, fraction = match.group(1), match.group(2) or ""
        if not whole and not fraction:
            raise MalformedAmountError(f"No digits in amount: {text!r}")
        if len(fraction) > PRECISION:
            raise PrecisionLossError(
                f"Amount {text!r} has {len(fraction)} fractional digits, at most {PRECISION} allowed"
            )

        whole = whole.lstrip("0")
        if len(whole) > _MAX_WHOLE_DIGITS:
            raise AmountTooLargeError(f"Amount {text!r} is too large")

        units = int(whole or "0") * UNITS_PER_WHOLE + int(fraction.ljust(PRECISION, "0"))
        if units > MAX_UNITS:
            raise AmountTooLargeError(f"Amount {text!r} is too large")
        return cls(units)

    def add(self, other: 'Amount') -> 'Amount':
        """Checked addition, raises AmountOverflowError instead of wrapping"""
        units = self.units + other.units
        if units > MAX_UNITS:
            raise AmountOverflowError(f"{self} + {other} overflows")
        return Amount(units)

    def sub(self, other: 'Amount') -> 'Amount':
        """Checked subtraction, raises AmountUnderflowError if other > self"""
        if other.units > self.units:
            raise AmountUnderflowError(f"{self} - {other} is negative")
        return Amount(self.units - other.units)

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.units == 0

    def format(self) -> str:
        """Render with exactly 4 fractional digits"""
        whole, fraction = divmod(self.units, UNITS_PER_WHOLE)
        return f"{whole}.{fraction:0{PRECISION}d}"

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Amount('{self.format()}')"

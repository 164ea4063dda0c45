"""
Command Stream Generator

Produces reproducible random command streams in the input CSV format, for
load testing and fixtures. Most commands are deposits and withdrawals with
sequential transaction ids; a fraction of them are later disputed and then
settled by a resolve or a chargeback. A small share of commands deliberately
carries random, mostly invalid, dispute arguments.
"""

import argparse
import random
import sys
from typing import Iterator, List, Optional, TextIO, Tuple

from .commands import Chargeback, Command, Deposit, Dispute, Resolve, Withdrawal
from .currency import Amount
from .logging_config import get_logger, log_action, setup_logging
from .schemas import CLIENT_ID_MAX, TX_ID_MAX

SEQUENTIAL_TX_ID_PROBA = 0.95  # Otherwise the id is drawn at random (may collide)
DEPOSIT_PROBA = 0.55           # Deposit rather than withdrawal
AVERAGE_AMOUNT_UNITS = 1000000  # 100.0000
TRANSACTION_PROBA = 0.95       # Deposit/withdrawal rather than a dispute-family command
ADD_TO_DISPUTABLE_PROBA = 0.1  # Transaction becomes a dispute candidate
NEW_DISPUTE_PROBA = 0.5        # Open a dispute rather than settle one
SETTLE_WITH_RESOLVE = 0.8      # Settle with resolve rather than chargeback
RAND_DISPUTE_ARGS = 0.03       # Dispute-family command with random arguments

CSV_HEADER = "type, client, tx, amount"


class CommandGenerator:
    """Infinite iterator of pseudo-random commands"""

    def __init__(self, rng: random.Random, client_count: int = 100, tx_count: int = 1000000):
        if not 1 <= client_count <= CLIENT_ID_MAX:
            raise ValueError(f"client_count must be in 1..{CLIENT_ID_MAX}")
        if not 1 <= tx_count <= TX_ID_MAX:
            raise ValueError(f"tx_count must be in 1..{TX_ID_MAX}")
        self.rng = rng
        self.client_count = client_count
        self.tx_count = tx_count
        self._next_tx = 1
        self._disputable: List[Tuple[int, int]] = []
        self._disputed: List[Tuple[int, int]] = []

    def __iter__(self) -> Iterator[Command]:
        return self

    def __next__(self) -> Command:
        if self.rng.random() < TRANSACTION_PROBA:
            return self._transaction()
        if self.rng.random() < RAND_DISPUTE_ARGS:
            return self._random_settlement()
        if self._disputable and (not self._disputed or self.rng.random() < NEW_DISPUTE_PROBA):
            client, tx = self._pop(self._disputable)
            self._disputed.append((client, tx))
            return Dispute(client=client, tx=tx)
        if self._disputed:
            client, tx = self._pop(self._disputed)
            if self.rng.random() < SETTLE_WITH_RESOLVE:
                # Resolved transactions can be disputed again
                self._disputable.append((client, tx))
                return Resolve(client=client, tx=tx)
            return Chargeback(client=client, tx=tx)
        return self._transaction()

    def _transaction(self) -> Command:
        client = self.rng.randint(1, self.client_count)
        if self.rng.random() < SEQUENTIAL_TX_ID_PROBA and self._next_tx <= self.tx_count:
            tx = self._next_tx
            self._next_tx += 1
        else:
            tx = self.rng.randint(1, self.tx_count)
        amount = Amount.from_units(int(self.rng.expovariate(1 / AVERAGE_AMOUNT_UNITS)))
        if self.rng.random() < ADD_TO_DISPUTABLE_PROBA:
            self._disputable.append((client, tx))
        if self.rng.random() < DEPOSIT_PROBA:
            return Deposit(client=client, tx=tx, amount=amount)
        return Withdrawal(client=client, tx=tx, amount=amount)

    def _random_settlement(self) -> Command:
        client = self.rng.randint(1, self.client_count)
        tx = self.rng.randint(1, self.tx_count)
        command_class = self.rng.choice([Dispute, Resolve, Chargeback])
        return command_class(client=client, tx=tx)

    def _pop(self, pending: List[Tuple[int, int]]) -> Tuple[int, int]:
        index = self.rng.randrange(len(pending))
        pending[index], pending[-1] = pending[-1], pending[index]
        return pending.pop()


def format_command(command: Command) -> str:
    """Render a command as an input CSV line"""
    name = command.command_type.value
    if command.command_type.carries_amount:
        return f"{name}, {command.client}, {command.tx}, {command.amount}"
    return f"{name}, {command.client}, {command.tx},"


def write_commands(commands, stream: TextIO) -> int:
    """Write the header and every command; returns the number of commands"""
    stream.write(CSV_HEADER + "\n")
    count = 0
    for command in commands:
        stream.write(format_command(command) + "\n")
        count += 1
    return count


def generate(seed: str, count: int, client_count: int = 100, tx_count: int = 1000000) -> List[Command]:
    """Generate `count` commands deterministically from a seed"""
    generator = CommandGenerator(random.Random(seed), client_count=client_count, tx_count=tx_count)
    return [next(generator) for _ in range(count)]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="payment-engine-generate",
        description="Generate a reproducible random command stream as CSV.",
    )
    parser.add_argument("output", help="Output CSV file, '-' for stdout")
    parser.add_argument("--count", type=int, default=10000, help="Number of commands")
    parser.add_argument("--clients", type=int, default=100, help="Number of distinct clients")
    parser.add_argument("--transactions", type=int, default=1000000, help="Largest transaction id")
    parser.add_argument("--seed", default="sample0", help="Random seed")
    parser.add_argument("--log-level", default="INFO", type=str.upper)
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = get_logger("payment_engine.generator")

    generator = CommandGenerator(
        random.Random(args.seed), client_count=args.clients, tx_count=args.transactions
    )
    commands = (next(generator) for _ in range(args.count))
    if args.output == "-":
        written = write_commands(commands, sys.stdout)
    else:
        with open(args.output, "w", newline="", encoding="utf-8") as stream:
            written = write_commands(commands, stream)

    log_action(logger, "info", f"Generated {written} commands", action="generate",
               extra={"seed": args.seed, "output": args.output})
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
CSV Input/Output Module

Reads command streams from CSV and writes account snapshots back as CSV.

Input rows look like `deposit, 1, 1, 1.0`: cells are trimmed, and the amount
cell may be missing on dispute, resolve and chargeback rows. Malformed rows are
logged with their line number and skipped.
"""

import csv
from typing import Iterable, Iterator, List, TextIO

from .accounts import AccountSnapshot
from .commands import Command
from .errors import InputFormatError, MalformedCommandError
from .logging_config import get_logger, log_action
from .schemas import AccountRecord, CommandRecord

REQUIRED_COLUMNS = ("type", "client", "tx")
OUTPUT_COLUMNS = ("client", "available", "held", "total", "locked")


class CsvCommandReader:
    """Lazily turns CSV rows into commands"""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.malformed = 0
        self.logger = get_logger("payment_engine.csv_io")

    def commands(self) -> Iterator[Command]:
        """
        Yield commands in input order, skipping malformed rows

        Raises:
            InputFormatError: If the header lacks a required column
        """
        reader = csv.reader(self.stream)
        try:
            header = next(reader)
        except StopIteration:
            return

        columns = self._parse_header(header)
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            try:
                yield self._to_command(columns, row, reader.line_num)
            except MalformedCommandError as e:
                self.malformed += 1
                cause = e.__cause__
                log_action(
                    self.logger, "warning", f"Skipping line {e.line}: {e}",
                    action="parse", reason=type(cause or e).__name__,
                    extra={"line": e.line}
                )

    def _parse_header(self, header: List[str]) -> List[str]:
        columns = [cell.strip().lower() for cell in header]
        missing = [column for column in REQUIRED_COLUMNS if column not in columns]
        if missing:
            raise InputFormatError(
                f"Input header is missing required column(s): {', '.join(missing)}"
            )
        return columns

    def _to_command(self, columns: List[str], row: List[str], line: int) -> Command:
        cells = [cell.strip() for cell in row]
        if len(cells) > len(columns):
            if any(cells[len(columns):]):
                raise MalformedCommandError(
                    f"Expected at most {len(columns)} fields, got {len(cells)}", line=line
                )
            cells = cells[:len(columns)]

        record = CommandRecord.from_row(dict(zip(columns, cells)), line=line)
        return record.to_command(line=line)


class CsvAccountWriter:
    """Writes account snapshots as CSV rows"""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self._writer = csv.DictWriter(stream, fieldnames=OUTPUT_COLUMNS, lineterminator="\n")

    def write_header(self) -> None:
        self._writer.writeheader()

    def write(self, snapshot: AccountSnapshot) -> None:
        self._writer.writerow(AccountRecord.from_snapshot(snapshot).to_row())

    def write_all(self, snapshots: Iterable[AccountSnapshot]) -> int:
        """
        Write the header followed by every snapshot

        Returns:
            Number of account rows written
        """
        self.write_header()
        count = 0
        for snapshot in snapshots:
            self.write(snapshot)
            count += 1
        return count

    def flush(self) -> None:
        self.stream.flush()

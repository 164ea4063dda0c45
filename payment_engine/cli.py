"""
Command Line Entry Point

Reads a CSV command stream from a file or stdin, runs it through the engine and
writes the final account snapshot as CSV to stdout. Logs go to stderr.

Exit codes follow sysexits: per-command rejections never change the status,
only failures of the input or output streams do.
"""

import argparse
import csv
import sys
from typing import List, Optional, TextIO

from . import __version__
from .config import EngineSettings, WithdrawalDisputePolicy, get_settings
from .csv_io import CsvAccountWriter, CsvCommandReader
from .engine import PaymentEngine
from .errors import InputFormatError
from .logging_config import get_logger, log_action, setup_logging

EX_OK = 0
EX_DATAERR = 65
EX_NOINPUT = 66
EX_IOERR = 74


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payment-engine",
        description="Execute a stream of transaction commands and print the final account balances.",
    )
    parser.add_argument(
        "input", nargs="?", default=None,
        help="Input CSV file (default: read from stdin)",
    )
    parser.add_argument(
        "--sort", action="store_true", default=None,
        help="Sort output accounts by client id",
    )
    parser.add_argument(
        "--deny-withdrawal-dispute", action="store_true", default=None,
        help="Reject every dispute against a withdrawal transaction",
    )
    parser.add_argument(
        "--no-redispute", action="store_true", default=None,
        help="Make resolved transactions final instead of disputable again",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper, default=None,
        help="Log level (default: from settings)",
    )
    parser.add_argument(
        "--log-format", choices=["json", "text"], default=None,
        help="Log format (default: from settings)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_settings(args: argparse.Namespace, base: EngineSettings) -> EngineSettings:
    """Apply command line overrides on top of environment settings"""
    overrides = {}
    if args.sort:
        overrides["sort_output"] = True
    if args.deny_withdrawal_dispute:
        overrides["withdrawal_dispute_policy"] = WithdrawalDisputePolicy.STRICT
    if args.no_redispute:
        overrides["redispute_after_resolve"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format
    return base.model_copy(update=overrides)


def main(
    argv: Optional[List[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None
) -> int:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args, get_settings())

    setup_logging(settings.log_level, settings.log_format, stream=stderr)
    logger = get_logger("payment_engine.cli")

    engine = PaymentEngine.from_settings(settings)

    if args.input is None:
        source = stdin if stdin is not None else sys.stdin
        status = _process(engine, source, logger)
    else:
        try:
            source = open(args.input, newline="", encoding="utf-8-sig")
        except OSError as e:
            log_action(logger, "error", f"Cannot open input file: {e}",
                       action="read", reason=type(e).__name__,
                       extra={"path": args.input})
            return EX_NOINPUT
        with source:
            status = _process(engine, source, logger)

    if status != EX_OK:
        return status

    writer = CsvAccountWriter(stdout if stdout is not None else sys.stdout)
    try:
        count = writer.write_all(engine.snapshots(sort=settings.sort_output))
        writer.flush()
    except OSError as e:
        log_action(logger, "error", f"Cannot write output: {e}",
                   action="write", reason=type(e).__name__)
        return EX_IOERR

    log_action(logger, "info", "Processing complete", action="summary",
               extra=dict(engine.summary.to_dict(), accounts=count))
    return EX_OK


def _process(engine: PaymentEngine, source: TextIO, logger) -> int:
    reader = CsvCommandReader(source)
    try:
        engine.process(reader.commands())
    except (InputFormatError, csv.Error, UnicodeDecodeError) as e:
        log_action(logger, "error", f"Unreadable input: {e}",
                   action="read", reason=type(e).__name__)
        return EX_DATAERR
    except OSError as e:
        log_action(logger, "error", f"Cannot read input: {e}",
                   action="read", reason=type(e).__name__)
        return EX_NOINPUT
    finally:
        engine.summary.malformed = reader.malformed
    return EX_OK

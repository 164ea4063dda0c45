"""
Test suite for the command line entry point

Runs main() end to end on in-memory streams and on the CSV cases stored under
tests/resources/<case>/.
"""

import io
import json
from pathlib import Path

import pytest

from payment_engine.cli import EX_DATAERR, EX_NOINPUT, EX_OK, build_parser, main, resolve_settings
from payment_engine.config import EngineSettings, WithdrawalDisputePolicy

RESOURCES = Path(__file__).parent / "resources"
CASES = sorted(path.name for path in RESOURCES.iterdir() if path.is_dir())


def run(argv, stdin_text=""):
    stdin = io.StringIO(stdin_text)
    stdout = io.StringIO()
    stderr = io.StringIO()
    status = main(argv, stdin=stdin, stdout=stdout, stderr=stderr)
    return status, stdout.getvalue(), stderr.getvalue()


def log_lines(stderr_text):
    return [json.loads(line) for line in stderr_text.splitlines() if line.strip()]


class TestResourceCases:
    """Run every stored input and compare with its expected output"""

    @pytest.mark.parametrize("case", CASES)
    def test_case(self, case):
        """Test a stored case with sorted output"""
        status, output, _ = run([str(RESOURCES / case / "input.csv"), "--sort"])
        expected = (RESOURCES / case / "expected.csv").read_text(encoding="utf-8")
        assert status == EX_OK
        assert output == expected


class TestMain:
    """Test main() behaviour"""

    def test_reads_stdin(self):
        """Test processing from stdin when no file is given"""
        status, output, _ = run(["--sort"], "type,client,tx,amount\ndeposit,2,1,1\ndeposit,1,2,3\n")
        assert status == EX_OK
        assert output == (
            "client,available,held,total,locked\n"
            "1,3.0000,0.0000,3.0000,false\n"
            "2,1.0000,0.0000,1.0000,false\n"
        )

    def test_unsorted_output_in_first_reference_order(self):
        """Test default output ordering"""
        _, output, _ = run(["--log-level", "error"], "type,client,tx,amount\ndeposit,2,1,1\ndeposit,1,2,3\n")
        assert [line.split(",")[0] for line in output.splitlines()[1:]] == ["2", "1"]

    def test_rejections_keep_success_status(self):
        """Test that rejected commands do not change the exit status"""
        status, output, stderr = run([], "type,client,tx,amount\nwithdrawal,1,1,5\n")
        assert status == EX_OK
        assert output.splitlines()[1] == "1,0.0000,0.0000,0.0000,false"
        records = log_lines(stderr)
        assert any(r.get("reason") == "InsufficientFundsError" for r in records)
        summary = [r for r in records if r.get("action") == "summary"][0]
        assert summary["extra"]["rejected"] == 1
        assert summary["extra"]["accounts"] == 1

    def test_malformed_rows_counted(self):
        """Test that skipped rows show up in the summary"""
        status, _, stderr = run([], "type,client,tx,amount\ndeposit,1,1,x\ndeposit,1,2,1\n")
        assert status == EX_OK
        summary = [r for r in log_lines(stderr) if r.get("action") == "summary"][0]
        assert summary["extra"]["malformed"] == 1
        assert summary["extra"]["applied"] == 1

    def test_missing_file(self, tmp_path):
        """Test that an unopenable input exits with NOINPUT"""
        status, output, stderr = run([str(tmp_path / "absent.csv")])
        assert status == EX_NOINPUT
        assert output == ""
        assert "Cannot open input file" in stderr

    def test_bad_header(self):
        """Test that an unusable header exits with DATAERR and prints nothing"""
        status, output, _ = run([], "kind,client,amount\ndeposit,1,1\n")
        assert status == EX_DATAERR
        assert output == ""

    def test_byte_order_mark(self, tmp_path):
        """Test that a UTF-8 BOM before the header is ignored"""
        path = tmp_path / "input.csv"
        path.write_bytes(b"\xef\xbb\xbftype,client,tx,amount\ndeposit,1,1,2\n")
        status, output, _ = run([str(path)])
        assert status == EX_OK
        assert output.splitlines()[1] == "1,2.0000,0.0000,2.0000,false"

    def test_undecodable_file(self, tmp_path):
        """Test that non-UTF-8 input exits with DATAERR"""
        path = tmp_path / "input.csv"
        path.write_bytes(b"type,client,tx,amount\ndeposit,1,1,\xff\xfe\n")
        status, output, _ = run([str(path)])
        assert status == EX_DATAERR
        assert output == ""

    def test_empty_input(self):
        """Test that empty input still prints the header"""
        status, output, _ = run([])
        assert status == EX_OK
        assert output == "client,available,held,total,locked\n"

    def test_deny_withdrawal_dispute(self):
        """Test the strict policy flag"""
        text = "type,client,tx,amount\ndeposit,1,1,10\nwithdrawal,1,2,1\ndispute,1,2,\n"
        _, permissive, _ = run([], text)
        _, strict, _ = run(["--deny-withdrawal-dispute"], text)
        assert permissive.splitlines()[1] == "1,9.0000,1.0000,10.0000,false"
        assert strict.splitlines()[1] == "1,9.0000,0.0000,9.0000,false"

    def test_text_log_format(self):
        """Test human-readable logs"""
        _, _, stderr = run(["--log-format", "text"], "type,client,tx,amount\n")
        assert "Processing complete" in stderr
        assert not stderr.lstrip().startswith("{")


class TestArguments:
    """Test argument parsing and settings overrides"""

    def test_defaults_keep_settings(self):
        """Test that absent flags do not override settings"""
        args = build_parser().parse_args([])
        base = EngineSettings(sort_output=True, log_level="DEBUG")
        settings = resolve_settings(args, base)
        assert settings.sort_output
        assert settings.log_level == "DEBUG"
        assert settings.withdrawal_dispute_policy == WithdrawalDisputePolicy.PERMISSIVE

    def test_overrides(self):
        """Test that flags override settings"""
        args = build_parser().parse_args([
            "in.csv", "--sort", "--deny-withdrawal-dispute", "--no-redispute",
            "--log-level", "warning", "--log-format", "text",
        ])
        settings = resolve_settings(args, EngineSettings())
        assert args.input == "in.csv"
        assert settings.sort_output
        assert settings.withdrawal_dispute_policy == WithdrawalDisputePolicy.STRICT
        assert not settings.redispute_after_resolve
        assert settings.log_level == "WARNING"
        assert settings.log_format == "text"

    def test_invalid_log_level(self):
        """Test that argparse rejects unknown levels"""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--log-level", "loud"])
        assert exc_info.value.code == 2

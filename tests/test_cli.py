"""
Test suite for the command line entry point and its configuration
"""

import json
import logging
from decimal import Decimal

import pytest

from unibank.cli import main
from unibank.config import UniBankConfig
from unibank.logging_config import JSONFormatter, log_action, setup_logging


def run(capsys, data_dir, *argv):
    code = main(["--data-dir", str(data_dir), *argv])
    output = json.loads(capsys.readouterr().out)
    return code, output


class TestCommandLine:
    """Test JSON output and exit status of each subcommand"""

    def test_full_session(self, tmp_path, capsys):
        """Test a customer registers, opens accounts and moves money"""
        code, out = run(capsys, tmp_path, "register", "--name", "Alice", "--phone", "555",
                        "--username", "alice", "--password", "pw")
        assert code == 0
        assert out == {"success": True, "customer_id": 1000}

        code, out = run(capsys, tmp_path, "login", "--username", "alice", "--password", "pw")
        assert code == 0
        assert out["user"]["name"] == "Alice"

        code, out = run(capsys, tmp_path, "create-account", "--username", "alice", "--type", "savings",
                        "--initial-balance", "100", "--password", "acct")
        assert code == 0
        source = out["account_number"]

        code, out = run(capsys, tmp_path, "create-account", "--username", "alice", "--type", "current",
                        "--password", "acct2")
        target = out["account_number"]

        code, out = run(capsys, tmp_path, "transfer", "--from", str(source), "--to", str(target),
                        "--amount", "30", "--password", "acct")
        assert code == 0
        assert Decimal(out["balance"]) == Decimal('70.00')

        code, out = run(capsys, tmp_path, "transactions", "--account", str(source))
        assert [line["type"] for line in out["transactions"]] == ["Deposit", "Transfer Out"]

        code, out = run(capsys, tmp_path, "accounts", "--username", "alice")
        assert [a["type"] for a in out["accounts"]] == ["Savings", "Current"]

        code, out = run(capsys, tmp_path, "close-account", "--account", str(target), "--password", "acct2")
        assert code == 0
        assert (tmp_path / "accounts.txt").read_text().count("\n") == 1

    def test_failures_exit_nonzero(self, tmp_path, capsys):
        """Test business failures and validation errors both exit with 1"""
        code, out = run(capsys, tmp_path, "login", "--username", "ghost", "--password", "pw")
        assert code == 1
        assert out["success"] is False

        run(capsys, tmp_path, "register", "--name", "Alice", "--phone", "555",
            "--username", "alice", "--password", "pw")
        code, out = run(capsys, tmp_path, "register", "--name", "Bob", "--phone", "5:5",
                        "--username", "bob", "--password", "pw")
        assert code == 1
        assert "Phone number" in out["error"]

        code, out = run(capsys, tmp_path, "deposit", "--account", "10000", "--amount", "5",
                        "--password", "pw")
        assert code == 1

    def test_monthly_update(self, tmp_path, capsys):
        """Test failed accounts are listed"""
        run(capsys, tmp_path, "register", "--name", "Alice", "--phone", "555",
            "--username", "alice", "--password", "pw")
        run(capsys, tmp_path, "create-account", "--username", "alice", "--type", "current",
            "--initial-balance", "5", "--password", "acct")
        code, out = run(capsys, tmp_path, "monthly-update")
        assert code == 0
        assert out["failed_accounts"] == [10000]


class TestConfigAndLogging:
    """Test settings overrides and structured log output"""

    def test_environment_overrides(self, monkeypatch):
        """Test UNIBANK_ prefixed variables are read"""
        monkeypatch.setenv("UNIBANK_DATA_DIR", "/tmp/elsewhere")
        monkeypatch.setenv("UNIBANK_DEFAULT_INTEREST_RATE", "0.12")
        config = UniBankConfig()
        assert config.data_dir == "/tmp/elsewhere"
        assert config.interest_rate == Decimal('0.12')
        assert config.maintenance_fee == Decimal('10.00')

    def test_json_formatter_fields(self):
        """Test structured fields appear in the JSON record"""
        logger = logging.getLogger("unibank.test")
        record = logger.makeRecord(logger.name, logging.INFO, __file__, 0, "Deposit", (), None)
        record.action = "transaction_posted"
        record.resource = "account:10000"
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Deposit"
        assert entry["action"] == "transaction_posted"
        assert entry["resource"] == "account:10000"
        assert entry["level"] == "INFO"

    def test_log_action_to_file(self, tmp_path):
        """Test log_action writes through setup_logging's handler"""
        log_file = tmp_path / "unibank.log"
        logger = setup_logging("INFO", logger_name="unibank.test_file", log_file=str(log_file))
        log_action(logger, "info", "Customer registered", user_id="alice", action="customer_created")
        log_action(logger, "debug", "hidden")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["user_id"] == "alice"
        assert entry["action"] == "customer_created"

"""
Test suite for the banking service facade and statements
"""

import pytest
from decimal import Decimal

from unibank.accounts import AccountType
from unibank.bank import BankService, parse_account_type
from unibank.config import UniBankConfig
from unibank.database import Database
from unibank.exceptions import InvalidInputError
from unibank.records import JournalRecord
from unibank.statements import build_statement, describe, signed_amount
from unibank.storage import InMemoryStorage


class TestBankService:
    """Test password-checked operations and views"""

    def setup_method(self):
        self.db = Database(storage=InMemoryStorage(), config=UniBankConfig())
        self.bank = BankService(self.db)
        self.customer_id = self.bank.register_customer("Alice", "555", "alice", "pw")

    def test_register_and_login(self):
        """Test login returns the profile only for the right password"""
        assert self.customer_id == 1000
        profile = self.bank.login("alice", "pw")
        assert profile.id == 1000
        assert profile.name == "Alice"
        assert profile.username == "alice"
        assert self.bank.login("alice", "bad") is None
        assert self.bank.register_customer("Other", "1", "alice", "x") is None

    def test_create_account_with_initial_deposit(self):
        """Test the opening balance is posted as a journaled deposit"""
        number = self.bank.create_account(self.customer_id, "savings", "100", "acct")
        assert number == 10000
        assert self.db.find_account(number).balance == Decimal('100.00')

        statement = self.bank.statement(number)
        assert len(statement) == 1
        assert statement[0].type == "Deposit"
        assert statement[0].balance == Decimal('100.00')

    def test_create_account_zero_balance(self):
        """Test no journal line for an empty opening balance"""
        number = self.bank.create_account(self.customer_id, AccountType.CURRENT, 0, "acct")
        assert self.bank.statement(number) == []

    def test_create_account_unknown_customer(self):
        """Test None for a customer that does not exist"""
        assert self.bank.create_account(9999, "current", 0, "acct") is None

    def test_password_required(self):
        """Test money movement needs the account password"""
        number = self.bank.create_account(self.customer_id, "savings", 50, "acct")
        assert not self.bank.deposit(number, 10, "wrong")
        assert not self.bank.withdraw(number, 10, "wrong")
        assert not self.bank.close_account(number, "wrong")
        assert self.db.find_account(number).balance == Decimal('50.00')

        assert self.bank.deposit(number, 10, "acct")
        assert self.bank.withdraw(number, 20, "acct")
        assert self.db.find_account(number).balance == Decimal('40.00')

    def test_transfer_and_statement(self):
        """Test statements show signed transfers with running balances"""
        source = self.bank.create_account(self.customer_id, "savings", 100, "s")
        target = self.bank.create_account(self.customer_id, "auditable", 0, "t")
        assert self.bank.transfer(source, target, 30, "s")
        assert not self.bank.transfer(source, target, 30, "t")
        assert not self.bank.transfer(source, 424242, 30, "s")

        lines = self.bank.statement(source)
        assert [(line.type, line.amount, line.balance) for line in lines] == [
            ("Deposit", Decimal('100.00'), Decimal('100.00')),
            ("Transfer Out", Decimal('30.00'), Decimal('70.00')),
        ]
        assert lines[1].related_account == target
        incoming = self.bank.statement(target)
        assert incoming[0].type == "Transfer In"
        assert incoming[0].related_account == source

    def test_list_and_details(self):
        """Test account listing and details views"""
        first = self.bank.create_account(self.customer_id, "current", 5, "a")
        second = self.bank.create_account(self.customer_id, "auditable", 7, "b")

        summaries = self.bank.list_accounts("alice")
        assert [(s.account_number, s.type) for s in summaries] == [
            (first, "Current"), (second, "Auditable Savings")
        ]
        details = self.bank.account_details(second)
        assert details.owner == "Alice"
        assert details.balance == Decimal('7.00')
        assert self.bank.account_details(424242) is None
        assert self.bank.list_accounts("nobody") == []

    def test_profile_and_password(self):
        """Test profile update and password change by username"""
        assert self.bank.update_profile("alice", "Alice Smith", "556")
        assert self.bank.user_details("alice").phone == "556"
        assert not self.bank.update_profile("nobody", "X", "1")

        assert self.bank.change_password("alice", "pw", "new")
        assert self.bank.login("alice", "new") is not None
        assert not self.bank.change_password("nobody", "a", "b")

    def test_close_account(self):
        """Test closing removes the account and its statement"""
        number = self.bank.create_account(self.customer_id, "savings", 40, "acct")
        assert self.bank.close_account(number, "acct")
        assert self.bank.account_details(number) is None
        assert self.bank.statement(number) == []

    def test_monthly_updates(self):
        """Test failures are reported by account number"""
        poor = self.bank.create_account(self.customer_id, "current", 5, "a")
        self.bank.create_account(self.customer_id, "savings", 1200, "b")
        assert self.bank.apply_monthly_updates() == [poor]

    def test_parse_account_type(self):
        """Test accepted account type spellings"""
        assert parse_account_type("Savings") == AccountType.SAVINGS
        assert parse_account_type("auditable-savings") == AccountType.AUDITABLE_SAVINGS
        assert parse_account_type(1) == AccountType.CURRENT
        with pytest.raises(InvalidInputError):
            parse_account_type("checking")


class TestStatements:
    """Test journal replay"""

    def test_signed_amounts(self):
        """Test deposits add, withdrawals subtract, transfers keep their sign"""
        deposit = JournalRecord(10000, "2024-05-01 09-00-00", 0, Decimal('10.00'))
        withdrawal = JournalRecord(10000, "2024-05-01 09-00-01", 1, Decimal('4.00'))
        transfer_out = JournalRecord(10000, "2024-05-01 09-00-02", 2, Decimal('-3.00'), 10001)

        assert signed_amount(deposit) == Decimal('10.00')
        assert signed_amount(withdrawal) == Decimal('-4.00')
        assert signed_amount(transfer_out) == Decimal('-3.00')
        assert describe(transfer_out) == "Transfer Out"

        statement = build_statement([deposit, withdrawal, transfer_out])
        assert [line.balance for line in statement] == [
            Decimal('10.00'), Decimal('6.00'), Decimal('3.00')
        ]
        assert statement[0].related_account is None
        assert statement[2].related_account == 10001

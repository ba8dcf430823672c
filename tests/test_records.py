"""
Test suite for record codecs
"""

import pytest
from datetime import datetime
from decimal import Decimal

from unibank.exceptions import InvalidInputError
from unibank.records import (
    AccountCredential, AccountRecord, CounterRecord, CustomerCredential,
    CustomerRecord, JournalRecord, RecordFormatError, check_field,
    format_timestamp, parse_auth_line, parse_timestamp
)


class TestRecordLines:
    """Test line shapes of every record file"""

    def test_customer_line(self):
        """Test id:name:phone"""
        record = CustomerRecord(1000, "Alice", "555")
        assert record.to_line() == "1000:Alice:555"
        assert CustomerRecord.from_line("1000:Alice:555\n") == record

    def test_account_line(self):
        """Test balances are written with two decimal places"""
        record = AccountRecord(10000, 1000, Decimal('100'), 2)
        assert record.to_line() == "10000:1000:100.00:2"
        parsed = AccountRecord.from_line("10000:1000:100.00:2")
        assert parsed.balance == Decimal('100.00')
        assert parsed.type_code == 2

    def test_auth_lines(self):
        """Test both credential shapes"""
        assert CustomerCredential("alice", "pw", 1000).to_line() == "CUSTOMER:alice:pw:1000"
        assert AccountCredential(10000, "secret").to_line() == "ACCOUNT:10000:secret"

        customer = parse_auth_line("CUSTOMER:alice:pw:1000")
        assert isinstance(customer, CustomerCredential)
        assert customer.customer_id == 1000
        account = parse_auth_line("ACCOUNT:10000:secret")
        assert account == AccountCredential(10000, "secret")

    def test_unknown_auth_tag(self):
        """Test unrecognised auth lines are format errors"""
        with pytest.raises(RecordFormatError):
            parse_auth_line("ADMIN:root:pw")

    def test_counter_line(self):
        """Test nextCustomerId:nextAccountNumber"""
        assert CounterRecord(1001, 10002).to_line() == "1001:10002"
        assert CounterRecord.from_line("1001:10002") == CounterRecord(1001, 10002)

    def test_journal_line_optional_counterpart(self):
        """Test deposits have four fields and transfers five"""
        deposit = JournalRecord.from_line("10000:2024-05-01 09-30-00:0:100.00")
        assert deposit.counterpart is None
        assert deposit.to_line() == "10000:2024-05-01 09-30-00:0:100.00"

        leg = JournalRecord.from_line("10000:2024-05-01 09-30-00:2:-30.00:10001")
        assert leg.amount == Decimal('-30.00')
        assert leg.counterpart == 10001

        empty = JournalRecord.from_line("10000:2024-05-01 09-30-00:1:5.00:")
        assert empty.counterpart is None

    @pytest.mark.parametrize("line", [
        "",
        "abc:Alice:555",
        "1000:Alice",
        "1000:Alice:555:extra",
    ])
    def test_malformed_customer_lines(self, line):
        """Test wrong field counts and bad integers"""
        with pytest.raises(RecordFormatError):
            CustomerRecord.from_line(line)

    def test_malformed_amount(self):
        """Test non-numeric and non-finite balances"""
        with pytest.raises(RecordFormatError):
            AccountRecord.from_line("10000:1000:lots:0")
        with pytest.raises(RecordFormatError):
            AccountRecord.from_line("10000:1000:NaN:0")


class TestFieldChecks:
    """Test delimiter rejection and timestamp helpers"""

    def test_check_field(self):
        """Test colons and line breaks are rejected"""
        assert check_field("Name", "Alice") == "Alice"
        with pytest.raises(InvalidInputError):
            check_field("Name", "Al:ice")
        with pytest.raises(InvalidInputError):
            check_field("Password", "pw\nCUSTOMER:x:y:1")

    def test_timestamp_format(self):
        """Test journal timestamps avoid the field separator"""
        moment = datetime(2024, 12, 31, 23, 59, 58)
        text = format_timestamp(moment)
        assert text == "2024-12-31 23-59-58"
        assert ":" not in text
        assert parse_timestamp(text) == moment

"""
Record Codecs

Line formats of every file the record store writes. Each record is one
colon-delimited, newline-terminated line:

    customers.txt     id:name:phone
    accounts.txt      accountNumber:ownerCustomerId:balance:accountTypeInt
    auth.txt          CUSTOMER:username:password:customerId
                      ACCOUNT:accountNumber:password
    counters.txt      nextCustomerId:nextAccountNumber
    transactions.txt  accountNumber:timestamp:typeInt:amount[:counterpart]

Journal timestamps use hyphens instead of colons (YYYY-MM-DD HH-MM-SS) so
they never collide with the field delimiter.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from .currency import format_amount
from .exceptions import InvalidInputError


FIELD_SEPARATOR = ":"
JOURNAL_TIMESTAMP_FORMAT = "%Y-%m-%d %H-%M-%S"

CUSTOMER_TAG = "CUSTOMER"
ACCOUNT_TAG = "ACCOUNT"


class RecordFormatError(ValueError):
    """A stored line does not match its expected shape"""


def check_field(label: str, value: str) -> str:
    """Reject text that would break the line format"""
    if FIELD_SEPARATOR in value or "\n" in value or "\r" in value:
        raise InvalidInputError(f"{label} cannot contain ':' or line breaks")
    return value


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(JOURNAL_TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    return datetime.strptime(text, JOURNAL_TIMESTAMP_FORMAT)


def _split(line: str, minimum: int, maximum: Optional[int] = None) -> list:
    fields = line.rstrip("\r\n").split(FIELD_SEPARATOR)
    maximum = maximum if maximum is not None else minimum
    if not minimum <= len(fields) <= maximum:
        raise RecordFormatError(f"Expected {minimum}-{maximum} fields, got {len(fields)}: {line!r}")
    return fields


def _int(value: str, line: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise RecordFormatError(f"Bad integer {value!r} in {line!r}")


def _decimal(value: str, line: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise RecordFormatError(f"Bad amount {value!r} in {line!r}")
    if not amount.is_finite():
        raise RecordFormatError(f"Bad amount {value!r} in {line!r}")
    return amount


@dataclass(frozen=True)
class CustomerRecord:
    customer_id: int
    name: str
    phone: str

    def to_line(self) -> str:
        return FIELD_SEPARATOR.join([str(self.customer_id), self.name, self.phone])

    @classmethod
    def from_line(cls, line: str) -> 'CustomerRecord':
        customer_id, name, phone = _split(line, 3)
        return cls(_int(customer_id, line), name, phone)


@dataclass(frozen=True)
class AccountRecord:
    account_number: int
    owner_id: int
    balance: Decimal
    type_code: int

    def to_line(self) -> str:
        return FIELD_SEPARATOR.join([
            str(self.account_number),
            str(self.owner_id),
            format_amount(self.balance),
            str(self.type_code),
        ])

    @classmethod
    def from_line(cls, line: str) -> 'AccountRecord':
        number, owner_id, balance, type_code = _split(line, 4)
        return cls(
            _int(number, line),
            _int(owner_id, line),
            _decimal(balance, line),
            _int(type_code, line),
        )


@dataclass(frozen=True)
class CustomerCredential:
    username: str
    password: str
    customer_id: int

    def to_line(self) -> str:
        return FIELD_SEPARATOR.join([CUSTOMER_TAG, self.username, self.password, str(self.customer_id)])


@dataclass(frozen=True)
class AccountCredential:
    account_number: int
    password: str

    def to_line(self) -> str:
        return FIELD_SEPARATOR.join([ACCOUNT_TAG, str(self.account_number), self.password])


AuthRecord = Union[CustomerCredential, AccountCredential]


def parse_auth_line(line: str) -> AuthRecord:
    """Decode either auth.txt record shape by its leading tag"""
    tag = line.split(FIELD_SEPARATOR, 1)[0]
    if tag == CUSTOMER_TAG:
        _, username, password, customer_id = _split(line, 4)
        if not username:
            raise RecordFormatError(f"Empty username in {line!r}")
        return CustomerCredential(username, password, _int(customer_id, line))
    if tag == ACCOUNT_TAG:
        _, number, password = _split(line, 3)
        return AccountCredential(_int(number, line), password)
    raise RecordFormatError(f"Unknown auth record tag {tag!r}")


@dataclass(frozen=True)
class CounterRecord:
    next_customer_id: int
    next_account_number: int

    def to_line(self) -> str:
        return f"{self.next_customer_id}{FIELD_SEPARATOR}{self.next_account_number}"

    @classmethod
    def from_line(cls, line: str) -> 'CounterRecord':
        customer_id, account_number = _split(line, 2)
        return cls(_int(customer_id, line), _int(account_number, line))


@dataclass(frozen=True)
class JournalRecord:
    """
    One journal line, i.e. one leg of a transaction

    Amounts are positive for deposits and withdrawals; transfer legs carry
    the sign of the balance change and the counterpart account number.
    """
    account_number: int
    timestamp: str
    type_code: int
    amount: Decimal
    counterpart: Optional[int] = None

    def to_line(self) -> str:
        fields = [
            str(self.account_number),
            self.timestamp,
            str(self.type_code),
            format_amount(self.amount),
        ]
        if self.counterpart is not None:
            fields.append(str(self.counterpart))
        return FIELD_SEPARATOR.join(fields)

    @classmethod
    def from_line(cls, line: str) -> 'JournalRecord':
        fields = _split(line, 4, 5)
        number, timestamp, type_code, amount = fields[:4]
        counterpart = None
        if len(fields) == 5 and fields[4]:
            counterpart = _int(fields[4], line)
        return cls(
            _int(number, line),
            timestamp,
            _int(type_code, line),
            _decimal(amount, line),
            counterpart,
        )

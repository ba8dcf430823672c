"""
Transaction Processing Module

Deposits, withdrawals and transfers against in-memory accounts. A
transaction is created when the operation is requested, validated in its
constructor, and applied with execute(). undo() reverses a successful
execute() and is used to compensate partial failures.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from .accounts import Account
from .currency import AmountLike, ZERO, to_amount
from .exceptions import InvalidInputError
from .logging_config import get_logger
from .records import JournalRecord, format_timestamp


logger = get_logger("unibank.transactions")


class TransactionType(Enum):
    """Journal type codes"""
    DEPOSIT = 0
    WITHDRAWAL = 1
    TRANSFER = 2


class Transaction(ABC):
    """
    Base for journal-able balance operations

    Amount is always stored positive. The timestamp is local time truncated
    to whole seconds.
    """

    transaction_type: TransactionType

    def __init__(self, amount: AmountLike, timestamp: Optional[datetime] = None):
        amount = to_amount(amount)
        if amount <= ZERO:
            raise InvalidInputError("Amount must be positive")
        self.amount: Decimal = amount
        self.timestamp = (timestamp or datetime.now()).replace(microsecond=0)
        self.executed = False

    @property
    def timestamp_text(self) -> str:
        return format_timestamp(self.timestamp)

    @property
    def description(self) -> str:
        return f"{self.transaction_type.name.title()} of ${self.amount:.2f}"

    def execute(self) -> bool:
        """Apply the balance change; True on success"""
        if self.executed:
            return False
        self.executed = self._apply()
        return self.executed

    def undo(self) -> bool:
        """Reverse a successful execute(); False if nothing to reverse"""
        if not self.executed:
            return False
        if self._reverse():
            self.executed = False
            return True
        return False

    @abstractmethod
    def _apply(self) -> bool:
        ...

    @abstractmethod
    def _reverse(self) -> bool:
        ...

    @abstractmethod
    def journal_legs(self) -> List[JournalRecord]:
        """Journal lines recording this transaction"""


class Deposit(Transaction):
    transaction_type = TransactionType.DEPOSIT

    def __init__(self, account: Account, amount: AmountLike,
                 timestamp: Optional[datetime] = None):
        if account is None:
            raise InvalidInputError("Account cannot be null")
        super().__init__(amount, timestamp)
        self.account = account

    def _apply(self) -> bool:
        return self.account.deposit(self.amount)

    def _reverse(self) -> bool:
        return self.account.withdraw(self.amount)

    def journal_legs(self) -> List[JournalRecord]:
        return [JournalRecord(
            account_number=self.account.account_number,
            timestamp=self.timestamp_text,
            type_code=self.transaction_type.value,
            amount=self.amount,
        )]


class Withdrawal(Transaction):
    transaction_type = TransactionType.WITHDRAWAL

    def __init__(self, account: Account, amount: AmountLike,
                 timestamp: Optional[datetime] = None):
        if account is None:
            raise InvalidInputError("Account cannot be null")
        super().__init__(amount, timestamp)
        self.account = account

    def _apply(self) -> bool:
        return self.account.withdraw(self.amount)

    def _reverse(self) -> bool:
        return self.account.deposit(self.amount)

    def journal_legs(self) -> List[JournalRecord]:
        return [JournalRecord(
            account_number=self.account.account_number,
            timestamp=self.timestamp_text,
            type_code=self.transaction_type.value,
            amount=self.amount,
        )]


class Transfer(Transaction):
    """
    Move funds between two accounts

    The source is debited first. If the credit leg then fails, the source is
    re-credited, so either both balances move or neither does.
    """

    transaction_type = TransactionType.TRANSFER

    def __init__(self, from_account: Account, to_account: Account, amount: AmountLike,
                 timestamp: Optional[datetime] = None):
        if from_account is None or to_account is None:
            raise InvalidInputError("Accounts cannot be null")
        if from_account is to_account or from_account.account_number == to_account.account_number:
            raise InvalidInputError("Cannot transfer to the same account")
        super().__init__(amount, timestamp)
        self.from_account = from_account
        self.to_account = to_account

    @property
    def description(self) -> str:
        return (f"Transfer of ${self.amount:.2f} from account {self.from_account.account_number} "
                f"to account {self.to_account.account_number}")

    def _apply(self) -> bool:
        return self._move(self.from_account, self.to_account)

    def _reverse(self) -> bool:
        return self._move(self.to_account, self.from_account)

    def _move(self, source: Account, destination: Account) -> bool:
        if not source.withdraw(self.amount):
            return False
        if destination.deposit(self.amount):
            return True
        logger.error(
            f"Deposit leg to {destination.account_number} failed, "
            f"compensating {source.account_number}"
        )
        source.deposit(self.amount)
        return False

    def journal_legs(self) -> List[JournalRecord]:
        return [
            JournalRecord(
                account_number=self.from_account.account_number,
                timestamp=self.timestamp_text,
                type_code=self.transaction_type.value,
                amount=-self.amount,
                counterpart=self.to_account.account_number,
            ),
            JournalRecord(
                account_number=self.to_account.account_number,
                timestamp=self.timestamp_text,
                type_code=self.transaction_type.value,
                amount=self.amount,
                counterpart=self.from_account.account_number,
            ),
        ]

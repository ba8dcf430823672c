"""
Account Management Module

Account variants held by the record store. Savings and current accounts
share one balance-mutation path; auditable savings is a savings account
wrapped by the audit decorator rather than a separate inheritance branch.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .audit import AuditLog
from .currency import AmountLike, ZERO, quantize_amount, to_amount
from .exceptions import InvalidInputError
from .logging_config import get_logger

if TYPE_CHECKING:
    from .customers import Customer


DEFAULT_INTEREST_RATE = Decimal('0.05')
DEFAULT_MAINTENANCE_FEE = Decimal('10.00')
MONTHS_PER_YEAR = Decimal('12')

logger = get_logger("unibank.accounts")


class AccountType(Enum):
    """Account type tags; values are the integers written to accounts.txt"""
    SAVINGS = 0
    CURRENT = 1
    AUDITABLE_SAVINGS = 2

    @property
    def display_name(self) -> str:
        return {
            AccountType.SAVINGS: "Savings",
            AccountType.CURRENT: "Current",
            AccountType.AUDITABLE_SAVINGS: "Auditable Savings",
        }[self]


class Account(ABC):
    """
    Bank account with a non-negative Decimal balance

    Every balance change goes through _set_balance(), the single place the
    non-negativity invariant is enforced.
    """

    account_type: AccountType

    def __init__(self, account_number: int, owner: 'Customer',
                 initial_balance: AmountLike = ZERO):
        if owner is None:
            raise InvalidInputError("Owner cannot be null")

        balance = to_amount(initial_balance)
        if balance < ZERO:
            raise InvalidInputError("Initial balance cannot be negative")

        self._account_number = int(account_number)
        self._owner = owner
        self._balance = balance

    @property
    def account_number(self) -> int:
        return self._account_number

    @property
    def owner(self) -> 'Customer':
        return self._owner

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def type_name(self) -> str:
        return self.account_type.display_name

    def _set_balance(self, new_balance: Decimal) -> None:
        new_balance = quantize_amount(new_balance)
        if new_balance < ZERO:
            raise InvalidInputError("Balance cannot be negative")
        self._balance = new_balance

    def deposit(self, amount: AmountLike) -> bool:
        """Add funds; False for a non-positive amount"""
        amount = to_amount(amount)
        if amount <= ZERO:
            return False
        self._set_balance(self._balance + amount)
        return True

    def withdraw(self, amount: AmountLike) -> bool:
        """Remove funds; False for a non-positive amount or insufficient funds"""
        amount = to_amount(amount)
        if amount <= ZERO or amount > self._balance:
            return False
        self._set_balance(self._balance - amount)
        return True

    @abstractmethod
    def apply_monthly_update(self) -> bool:
        """Apply the monthly interest or fee; False if it could not be applied"""

    @abstractmethod
    def calculate_interest(self) -> Decimal:
        """Interest one monthly update would add at the current balance"""

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(account_number={self.account_number}, "
                f"balance={self.balance}, owner={self.owner.id})")


class SavingsAccount(Account):
    """Interest-bearing account; monthly update adds balance * rate / 12"""

    account_type = AccountType.SAVINGS

    def __init__(self, account_number: int, owner: 'Customer',
                 initial_balance: AmountLike = ZERO,
                 interest_rate: Decimal = DEFAULT_INTEREST_RATE):
        super().__init__(account_number, owner, initial_balance)
        interest_rate = Decimal(str(interest_rate))
        if interest_rate < ZERO:
            raise InvalidInputError("Interest rate cannot be negative")
        self.interest_rate = interest_rate

    def calculate_interest(self) -> Decimal:
        return quantize_amount(self.balance * self.interest_rate / MONTHS_PER_YEAR)

    def apply_monthly_update(self) -> bool:
        self._set_balance(self.balance + self.calculate_interest())
        return True


class CurrentAccount(Account):
    """Transaction account charged a flat monthly maintenance fee"""

    account_type = AccountType.CURRENT

    def __init__(self, account_number: int, owner: 'Customer',
                 initial_balance: AmountLike = ZERO,
                 maintenance_fee: Decimal = DEFAULT_MAINTENANCE_FEE):
        super().__init__(account_number, owner, initial_balance)
        maintenance_fee = to_amount(maintenance_fee)
        if maintenance_fee < ZERO:
            raise InvalidInputError("Maintenance fee cannot be negative")
        self.maintenance_fee = maintenance_fee

    def calculate_interest(self) -> Decimal:
        return ZERO

    def apply_monthly_update(self) -> bool:
        if self.balance < self.maintenance_fee:
            logger.warning(
                f"Account {self.account_number}: insufficient balance for "
                f"maintenance fee {self.maintenance_fee}"
            )
            return False
        self._set_balance(self.balance - self.maintenance_fee)
        return True


class AuditedAccount(Account):
    """
    Audit decorator around any account

    Delegates all balance handling to the wrapped account and records every
    deposit, withdrawal and monthly update, successful or not. Wrapping a
    savings account yields the AUDITABLE_SAVINGS type.
    """

    def __init__(self, account: Account, audit_log: Optional[AuditLog] = None,
                 record_creation: bool = True):
        # The wrapped account owns the balance; Account.__init__ is not called.
        self._account = account
        self.audit_log = audit_log if audit_log is not None else AuditLog()
        if record_creation:
            self.audit_log.record("Account created", account.balance, account.balance)

    @property
    def wrapped(self) -> Account:
        return self._account

    @property
    def account_type(self) -> AccountType:
        if self._account.account_type == AccountType.SAVINGS:
            return AccountType.AUDITABLE_SAVINGS
        return self._account.account_type

    @property
    def account_number(self) -> int:
        return self._account.account_number

    @property
    def owner(self) -> 'Customer':
        return self._account.owner

    @property
    def balance(self) -> Decimal:
        return self._account.balance

    @property
    def interest_rate(self) -> Optional[Decimal]:
        return getattr(self._account, "interest_rate", None)

    def _set_balance(self, new_balance: Decimal) -> None:
        self._account._set_balance(new_balance)

    def deposit(self, amount: AmountLike) -> bool:
        amount = to_amount(amount)
        success = self._account.deposit(amount)
        self.audit_log.record("Deposit", amount, self.balance, succeeded=success)
        return success

    def withdraw(self, amount: AmountLike) -> bool:
        amount = to_amount(amount)
        success = self._account.withdraw(amount)
        self.audit_log.record("Withdrawal", amount, self.balance, succeeded=success)
        return success

    def calculate_interest(self) -> Decimal:
        return self._account.calculate_interest()

    def apply_monthly_update(self) -> bool:
        fee = getattr(self._account, "maintenance_fee", None)
        if fee is not None:
            action, amount = "Maintenance Fee", fee
        else:
            action, amount = "Monthly Interest", self.calculate_interest()
        success = self._account.apply_monthly_update()
        self.audit_log.record(action, amount, self.balance, succeeded=success)
        return success


def auditable_savings_account(account_number: int, owner: 'Customer',
                              initial_balance: AmountLike = ZERO,
                              interest_rate: Decimal = DEFAULT_INTEREST_RATE,
                              audit_log: Optional[AuditLog] = None,
                              record_creation: bool = True) -> AuditedAccount:
    """Build a savings account wrapped by the audit decorator"""
    savings = SavingsAccount(account_number, owner, initial_balance, interest_rate)
    return AuditedAccount(savings, audit_log, record_creation)

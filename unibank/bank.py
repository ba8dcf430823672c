"""
Banking Service Facade

The operations the front ends use, on top of one Database. Account
operations that move money require the account's own password. Business
failures come back as False, None or empty lists; only malformed input
raises.
"""

from typing import List, Optional, Union

from .accounts import AccountType
from .currency import AmountLike, ZERO, to_amount
from .database import Database
from .exceptions import InvalidInputError
from .logging_config import get_logger, log_action
from .schemas import AccountDetails, AccountSummary, CustomerProfile, StatementLine
from .statements import build_statement


logger = get_logger("unibank.bank")

ACCOUNT_TYPE_NAMES = {
    "savings": AccountType.SAVINGS,
    "current": AccountType.CURRENT,
    "auditable": AccountType.AUDITABLE_SAVINGS,
    "auditable_savings": AccountType.AUDITABLE_SAVINGS,
}


def parse_account_type(value: Union[str, int, AccountType]) -> AccountType:
    """Resolve "savings", "current", "auditable" or a numeric type code"""
    if isinstance(value, AccountType):
        return value
    if isinstance(value, int):
        try:
            return AccountType(value)
        except ValueError:
            raise InvalidInputError(f"Unknown account type code {value}")
    key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
    if key not in ACCOUNT_TYPE_NAMES:
        raise InvalidInputError(f"Unknown account type {value!r}")
    return ACCOUNT_TYPE_NAMES[key]


class BankService:
    """Customer-facing operations over a record store"""

    def __init__(self, database: Database):
        self.database = database

    # Customers

    def register_customer(self, name: str, phone: str, username: str, password: str) -> Optional[int]:
        """Register a customer; returns the new customer id or None if the username is taken"""
        customer = self.database.register_customer(name, phone, username, password)
        return customer.id if customer is not None else None

    def login(self, username: str, password: str) -> Optional[CustomerProfile]:
        customer_id = self.database.authenticate(username, password)
        if customer_id is None:
            return None
        log_action(logger, "info", "Customer logged in", user_id=username, action="login",
                   resource=f"customer:{customer_id}")
        return self._profile(customer_id, username)

    def user_details(self, username: str) -> Optional[CustomerProfile]:
        customer_id = self.database.get_customer_id_by_username(username)
        if customer_id is None:
            return None
        return self._profile(customer_id, username)

    def update_profile(self, username: str, name: str, phone: str) -> bool:
        customer_id = self.database.get_customer_id_by_username(username)
        if customer_id is None:
            return False
        return self.database.update_customer_profile(customer_id, name, phone)

    def change_password(self, username: str, old_password: str, new_password: str) -> bool:
        customer_id = self.database.get_customer_id_by_username(username)
        if customer_id is None:
            return False
        return self.database.change_password(customer_id, old_password, new_password)

    def _profile(self, customer_id: int, username: str) -> Optional[CustomerProfile]:
        customer = self.database.find_customer(customer_id)
        if customer is None:
            return None
        return CustomerProfile(id=customer.id, name=customer.name, username=username, phone=customer.phone)

    # Accounts

    def create_account(self, customer_id: int, account_type: Union[str, int, AccountType],
                       initial_balance: AmountLike, password: str) -> Optional[int]:
        """
        Open an account and fund it with an opening deposit

        The account is registered with a zero balance and the initial
        balance, if positive, is posted as a journaled Deposit so the
        statement replays to the stored balance.

        Returns:
            The new account number, or None if the customer is unknown or
            the account could not be registered
        """
        account_type = parse_account_type(account_type)
        amount = to_amount(initial_balance)
        if amount < ZERO:
            raise InvalidInputError("Initial balance cannot be negative")
        if self.database.find_customer(customer_id) is None:
            logger.warning(f"Cannot open account for unknown customer {customer_id}")
            return None

        creators = {
            AccountType.SAVINGS: self.database.create_savings_account,
            AccountType.CURRENT: self.database.create_current_account,
            AccountType.AUDITABLE_SAVINGS: self.database.create_auditable_savings_account,
        }
        account = creators[account_type](customer_id, ZERO)
        if not self.database.add_account(account, password):
            return None

        if amount > ZERO and not self.database.deposit(account.account_number, amount):
            logger.warning(f"Opening deposit to account {account.account_number} failed")
        return account.account_number

    def list_accounts(self, username: str) -> List[AccountSummary]:
        customer_id = self.database.get_customer_id_by_username(username)
        customer = self.database.find_customer(customer_id) if customer_id is not None else None
        if customer is None:
            return []
        return [
            AccountSummary(account_number=account.account_number, type=account.type_name,
                           balance=account.balance)
            for account in sorted(customer.accounts, key=lambda a: a.account_number)
        ]

    def account_details(self, account_number: int) -> Optional[AccountDetails]:
        account = self.database.get_account(account_number)
        if account is None:
            return None
        return AccountDetails(account_number=account.account_number, type=account.type_name,
                              balance=account.balance, owner=account.owner.name)

    def statement(self, account_number: int) -> List[StatementLine]:
        if self.database.get_account(account_number) is None:
            return []
        return build_statement(self.database.get_transactions(account_number))

    # Money movement

    def deposit(self, account_number: int, amount: AmountLike, password: str) -> bool:
        if not self._authorize(account_number, password):
            return False
        return self.database.deposit(account_number, amount)

    def withdraw(self, account_number: int, amount: AmountLike, password: str) -> bool:
        if not self._authorize(account_number, password):
            return False
        return self.database.withdraw(account_number, amount)

    def transfer(self, from_account: int, to_account: int, amount: AmountLike, password: str) -> bool:
        """Transfer out of from_account; the password is the source account's"""
        if not self._authorize(from_account, password):
            return False
        if self.database.get_account(to_account) is None:
            logger.warning(f"Transfer to unknown account {to_account}")
            return False
        return self.database.transfer(from_account, to_account, amount)

    def close_account(self, account_number: int, password: str) -> bool:
        if not self._authorize(account_number, password):
            return False
        return self.database.close_account(account_number)

    def apply_monthly_updates(self) -> List[int]:
        return self.database.apply_monthly_updates()

    def _authorize(self, account_number: int, password: str) -> bool:
        if self.database.get_account(account_number) is None:
            logger.warning(f"Account {account_number} not found")
            return False
        if not self.database.verify_password(account_number, password):
            log_action(logger, "warning", "Incorrect account password", action="access_denied",
                       resource=f"account:{account_number}")
            return False
        return True

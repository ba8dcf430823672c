"""
Customer Management Module

A customer owns its accounts; each account keeps a back-reference to the
customer. Lookups are linear scans keyed on account number.
"""

from typing import List, Optional, TYPE_CHECKING

from .exceptions import InvalidInputError

if TYPE_CHECKING:
    from .accounts import Account


class Customer:
    """
    Customer profile with its owned accounts

    The id is fixed at construction. Name and phone may change through
    update_profile() but can never be blank.
    """

    def __init__(self, customer_id: int, name: str, phone: str):
        self._id = int(customer_id)
        self._name = self._require("Name", name)
        self._phone = self._require("Phone number", phone)
        self._accounts: List['Account'] = []

    @staticmethod
    def _require(label: str, value: str) -> str:
        if value is None or not str(value).strip():
            raise InvalidInputError(f"{label} cannot be empty")
        return str(value).strip()

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def phone(self) -> str:
        return self._phone

    @property
    def accounts(self) -> List['Account']:
        """Snapshot of owned accounts"""
        return list(self._accounts)

    def update_profile(self, name: str, phone: str) -> None:
        """Replace name and phone; both are validated before either changes"""
        name = self._require("Name", name)
        phone = self._require("Phone number", phone)
        self._name = name
        self._phone = phone

    def add_account(self, account: 'Account') -> None:
        if account is None:
            raise InvalidInputError("Account cannot be null")
        if self.find_account(account.account_number) is not None:
            raise InvalidInputError(
                f"Customer {self.id} already owns account {account.account_number}"
            )
        self._accounts.append(account)

    def remove_account(self, account_number: int) -> bool:
        """Remove the account with this number; False if not owned"""
        for index, account in enumerate(self._accounts):
            if account.account_number == account_number:
                del self._accounts[index]
                return True
        return False

    def find_account(self, account_number: int) -> Optional['Account']:
        for account in self._accounts:
            if account.account_number == account_number:
                return account
        return None

    def __repr__(self) -> str:
        return f"Customer(id={self.id}, name={self.name!r}, accounts={len(self._accounts)})"

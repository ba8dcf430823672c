"""
Record Store Module

The Database owns every customer, account, credential and ID counter in
memory and mirrors each mutation to colon-delimited record files:

    customers.txt, accounts.txt, auth.txt, counters.txt   full rewrite
    transactions.txt                                      append-only journal

Public methods are all-or-nothing from the caller's point of view: if a
record file cannot be written, in-memory state is rolled back and the
StorageError propagates. The four files are not written as one atomic
unit, so after a failed rollback write they are re-saved from memory.

Balances are persisted before the journal line is appended. A crash
between those two writes leaves the stored balance ahead of the journal;
statements are rebuilt from the journal and will not show that last change.
"""

from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union
import functools
import threading

from .accounts import (
    Account, AccountType, CurrentAccount, SavingsAccount,
    auditable_savings_account
)
from .audit import AuditLog
from .config import UniBankConfig, get_config
from .currency import AmountLike, ZERO, to_amount
from .customers import Customer
from .exceptions import InvalidInputError, NotFoundError, StorageError
from .journal import Journal
from .logging_config import get_logger, log_action
from .records import (
    AccountCredential, AccountRecord, CounterRecord, CustomerCredential,
    CustomerRecord, JournalRecord, RecordFormatError, check_field, parse_auth_line
)
from .storage import StorageInterface, TextFileStorage
from .transactions import Deposit, Transaction, Transfer, Withdrawal


logger = get_logger("unibank.database")


def synchronized(method):
    """Run a Database method inside the store-wide lock"""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class Database:
    """
    Single-writer record store for customers, accounts and credentials

    Create one per process at the entry point and pass it to collaborators.
    The constructor loads all record files; close() (or leaving a ``with``
    block) flushes everything back.
    """

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        config: Optional[UniBankConfig] = None,
        audit_log_path: Optional[Union[str, Path]] = None
    ):
        self.config = config or get_config()
        self.storage = storage if storage is not None else TextFileStorage(self.config.data_dir)
        self.journal = Journal(self.storage, self.config.transactions_file)

        if audit_log_path is None and isinstance(self.storage, TextFileStorage):
            audit_log_path = self.storage.data_dir / self.config.audit_log_file
        self.audit_log_path = Path(audit_log_path) if audit_log_path else None

        self._lock = threading.RLock()
        self._closed = False
        self._reset()
        self.load_all()

    def _reset(self) -> None:
        self._customers: Dict[int, Customer] = {}
        self._accounts: Dict[int, Account] = {}
        self._username_to_customer: Dict[str, int] = {}
        self._username_passwords: Dict[str, str] = {}
        self._account_passwords: Dict[int, str] = {}
        self._next_customer_id = self.config.initial_customer_id
        self._next_account_number = self.config.initial_account_number

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def next_customer_id(self) -> int:
        return self._next_customer_id

    @property
    def next_account_number(self) -> int:
        return self._next_account_number

    @synchronized
    def allocate_customer_id(self) -> int:
        """Take the next customer id; the increment is persisted immediately"""
        customer_id = self._next_customer_id
        self._next_customer_id += 1
        try:
            self._save_counters()
        except StorageError:
            self._next_customer_id = customer_id
            raise
        return customer_id

    @synchronized
    def allocate_account_number(self) -> int:
        """
        Take the next account number; the increment is persisted immediately

        If the account built with this number is never saved, the number is
        simply skipped. It is never handed out twice.
        """
        number = self._next_account_number
        self._next_account_number += 1
        try:
            self._save_counters()
        except StorageError:
            self._next_account_number = number
            raise
        return number

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    @synchronized
    def add_customer(self, customer: Customer, username: str, password: str) -> bool:
        """
        Register a customer with login credentials

        Returns False if the username or customer id is already taken.
        """
        if customer is None:
            raise InvalidInputError("Customer cannot be null")
        check_field("Username", username)
        check_field("Password", password)
        check_field("Name", customer.name)
        check_field("Phone number", customer.phone)
        if not username:
            raise InvalidInputError("Username cannot be empty")

        if self.username_exists(username):
            logger.warning(f"Username {username!r} is already registered")
            return False
        if customer.id in self._customers:
            logger.warning(f"Customer id {customer.id} is already registered")
            return False

        previous_next_id = self._next_customer_id
        self._customers[customer.id] = customer
        self._username_to_customer[username] = customer.id
        self._username_passwords[username] = password
        # Keep the counter ahead of caller-chosen ids
        self._next_customer_id = max(self._next_customer_id, customer.id + 1)

        def rollback():
            self._customers.pop(customer.id, None)
            self._username_to_customer.pop(username, None)
            self._username_passwords.pop(username, None)
            self._next_customer_id = previous_next_id

        def persist():
            self._save_customers()
            self._save_auth_data()
            if self._next_customer_id != previous_next_id:
                self._save_counters()

        self._apply_changes(persist, rollback)
        log_action(logger, "info", f"Customer {customer.id} registered",
                   user_id=username, action="customer_created", resource=f"customer:{customer.id}")
        return True

    @synchronized
    def register_customer(self, name: str, phone: str, username: str, password: str) -> Optional[Customer]:
        """Allocate an id, build the customer and add it; None if the username is taken"""
        if self.username_exists(username):
            logger.warning(f"Username {username!r} is already registered")
            return None

        # Validate before drawing from the counter
        customer = Customer(self._next_customer_id, name, phone)
        check_field("Name", customer.name)
        check_field("Phone number", customer.phone)
        check_field("Username", username)
        check_field("Password", password)

        customer_id = self.allocate_customer_id()
        customer = Customer(customer_id, name, phone)
        if self.add_customer(customer, username, password):
            return customer
        return None

    def find_customer(self, customer_id: int) -> Optional[Customer]:
        return self._customers.get(customer_id)

    def all_customers(self) -> List[Customer]:
        return [self._customers[customer_id] for customer_id in sorted(self._customers)]

    @synchronized
    def remove_customer(self, customer_id: int) -> bool:
        """
        Remove a customer, every account it owns and all its credentials

        Journal lines of the removed accounts are purged.
        """
        customer = self._customers.get(customer_id)
        if customer is None:
            return False

        removed_accounts = []
        for account in customer.accounts:
            number = account.account_number
            removed_accounts.append((account, self._account_passwords.get(number)))
            self._detach_account(account)

        credentials = {
            username: self._username_passwords.get(username)
            for username, owner_id in self._username_to_customer.items()
            if owner_id == customer_id
        }
        for username in credentials:
            self._username_to_customer.pop(username, None)
            self._username_passwords.pop(username, None)
        del self._customers[customer_id]

        def rollback():
            self._customers[customer_id] = customer
            for username, password in credentials.items():
                self._username_to_customer[username] = customer_id
                if password is not None:
                    self._username_passwords[username] = password
            for account, password in removed_accounts:
                self._attach_account(account, password)

        def persist():
            self._save_customers()
            self._save_accounts()
            self._save_auth_data()
            for account, _ in removed_accounts:
                self.journal.purge(account.account_number)

        self._apply_changes(persist, rollback)
        log_action(logger, "info", f"Customer {customer_id} removed with {len(removed_accounts)} account(s)",
                   action="customer_removed", resource=f"customer:{customer_id}")
        return True

    @synchronized
    def update_customer_profile(self, customer_id: int, name: str, phone: str) -> bool:
        """Change a customer's name and phone; False if the customer is unknown"""
        customer = self._customers.get(customer_id)
        if customer is None:
            return False
        check_field("Name", name)
        check_field("Phone number", phone)

        old_name, old_phone = customer.name, customer.phone
        customer.update_profile(name, phone)

        self._apply_changes(self._save_customers,
                            lambda: customer.update_profile(old_name, old_phone))
        log_action(logger, "info", f"Customer {customer_id} profile updated",
                   action="customer_updated", resource=f"customer:{customer_id}")
        return True

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_savings_account(self, customer_id: int, initial_balance: AmountLike = ZERO) -> Account:
        return self._create_account(AccountType.SAVINGS, customer_id, initial_balance)

    def create_current_account(self, customer_id: int, initial_balance: AmountLike = ZERO) -> Account:
        return self._create_account(AccountType.CURRENT, customer_id, initial_balance)

    def create_auditable_savings_account(self, customer_id: int, initial_balance: AmountLike = ZERO) -> Account:
        return self._create_account(AccountType.AUDITABLE_SAVINGS, customer_id, initial_balance)

    @synchronized
    def _create_account(self, account_type: AccountType, customer_id: int,
                        initial_balance: AmountLike) -> Account:
        """
        Build an account with a freshly allocated number

        The account is returned unregistered; add_account() makes it part of
        the store. This lets callers transact an opening deposit first.

        Raises:
            NotFoundError: If the customer does not exist
            InvalidInputError: If the initial balance is negative
        """
        customer = self._customers.get(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        balance = to_amount(initial_balance)
        if balance < ZERO:
            raise InvalidInputError("Initial balance cannot be negative")

        number = self.allocate_account_number()
        account = self._build_account(account_type, number, customer, balance)
        logger.info(f"Allocated {account_type.display_name} account {number} for customer {customer_id}")
        return account

    def _build_account(self, account_type: AccountType, number: int, owner: Customer,
                       balance: Decimal, record_creation: bool = True) -> Account:
        if account_type == AccountType.SAVINGS:
            return SavingsAccount(number, owner, balance, self.config.interest_rate)
        if account_type == AccountType.CURRENT:
            return CurrentAccount(number, owner, balance, self.config.maintenance_fee)
        if account_type == AccountType.AUDITABLE_SAVINGS:
            return auditable_savings_account(
                number, owner, balance, self.config.interest_rate,
                audit_log=AuditLog(self.audit_log_path),
                record_creation=record_creation
            )
        raise InvalidInputError(f"Unknown account type {account_type!r}")

    @synchronized
    def add_account(self, account: Account, password: str) -> bool:
        """
        Register an account and its password, then hand it to its owner

        Returns False if the account number is already registered or the
        owner is not a customer of this store.
        """
        if account is None:
            raise InvalidInputError("Account cannot be null")
        check_field("Password", password)

        number = account.account_number
        if number in self._accounts:
            logger.warning(f"Account {number} is already registered")
            return False
        owner = account.owner
        if self._customers.get(owner.id) is not owner:
            logger.warning(f"Account {number} belongs to unknown customer {owner.id}")
            return False

        self._attach_account(account, password)

        def rollback():
            self._detach_account(account)

        def persist():
            self._save_accounts()
            self._save_auth_data()

        self._apply_changes(persist, rollback)
        log_action(logger, "info", f"Account {number} opened", user_id=str(owner.id),
                   action="account_created", resource=f"account:{number}",
                   extra={"type": account.type_name, "balance": str(account.balance)})
        return True

    def find_account(self, account_number: int) -> Optional[Account]:
        return self._accounts.get(account_number)

    def get_account(self, account_number: int) -> Optional[Account]:
        return self.find_account(account_number)

    def all_accounts(self) -> List[Account]:
        return [self._accounts[number] for number in sorted(self._accounts)]

    @synchronized
    def remove_account(self, account_number: int) -> bool:
        """
        Remove an account from its owner, the lookup maps and the journal

        Returns False, changing nothing, if the account is unknown.
        """
        account = self._accounts.get(account_number)
        if account is None:
            return False

        password = self._account_passwords.get(account_number)
        self._detach_account(account)

        def rollback():
            self._attach_account(account, password)

        def persist():
            self._save_accounts()
            self._save_auth_data()
            self.journal.purge(account_number)

        self._apply_changes(persist, rollback)
        log_action(logger, "info", f"Account {account_number} removed",
                   action="account_removed", resource=f"account:{account_number}")
        return True

    def _attach_account(self, account: Account, password: Optional[str]) -> None:
        number = account.account_number
        self._accounts[number] = account
        if password is not None:
            self._account_passwords[number] = password
        try:
            if account.owner.find_account(number) is None:
                account.owner.add_account(account)
        except Exception:
            self._accounts.pop(number, None)
            self._account_passwords.pop(number, None)
            raise

    def _detach_account(self, account: Account) -> None:
        number = account.account_number
        account.owner.remove_account(number)
        self._accounts.pop(number, None)
        self._account_passwords.pop(number, None)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @synchronized
    def add_transaction(self, account_number: int, transaction: Transaction) -> bool:
        """Append an executed transaction to the journal; False if the account is unknown"""
        if account_number not in self._accounts:
            logger.warning(f"Cannot journal transaction for unknown account {account_number}")
            return False
        self.journal.append(transaction)
        return True

    @synchronized
    def deposit(self, account_number: int, amount: AmountLike) -> bool:
        account = self._accounts.get(account_number)
        if account is None:
            logger.warning(f"Deposit to unknown account {account_number}")
            return False
        return self._execute(Deposit(account, amount), account_number)

    @synchronized
    def withdraw(self, account_number: int, amount: AmountLike) -> bool:
        account = self._accounts.get(account_number)
        if account is None:
            logger.warning(f"Withdrawal from unknown account {account_number}")
            return False
        return self._execute(Withdrawal(account, amount), account_number)

    @synchronized
    def transfer(self, from_account_number: int, to_account_number: int, amount: AmountLike) -> bool:
        """Move funds between two registered accounts; both balances move or neither does"""
        source = self._accounts.get(from_account_number)
        destination = self._accounts.get(to_account_number)
        if source is None or destination is None:
            logger.warning(f"Transfer between unknown accounts {from_account_number} -> {to_account_number}")
            return False
        return self._execute(Transfer(source, destination, amount), from_account_number)

    def _execute(self, transaction: Transaction, account_number: int) -> bool:
        if not transaction.execute():
            log_action(logger, "warning", f"{transaction.description} rejected",
                       action="transaction_rejected", resource=f"account:{account_number}")
            return False

        try:
            self._save_accounts()
        except Exception:
            transaction.undo()
            raise

        try:
            self.add_transaction(account_number, transaction)
        except Exception:
            transaction.undo()
            self._restore_record_files()
            raise

        log_action(logger, "info", transaction.description, action="transaction_posted",
                   resource=f"account:{account_number}")
        return True

    @synchronized
    def close_account(self, account_number: int) -> bool:
        """Withdraw any remaining balance as a journaled withdrawal, then remove the account"""
        account = self._accounts.get(account_number)
        if account is None:
            return False
        if account.balance > ZERO:
            if not self._execute(Withdrawal(account, account.balance), account_number):
                return False
        return self.remove_account(account_number)

    @synchronized
    def apply_monthly_updates(self) -> List[int]:
        """
        Apply interest or fees to every account

        Returns the account numbers whose update could not be applied
        (current accounts that cannot cover their fee).
        """
        previous = {number: account.balance for number, account in self._accounts.items()}
        failed = []
        for account in self.all_accounts():
            if not account.apply_monthly_update():
                failed.append(account.account_number)

        def rollback():
            for number, balance in previous.items():
                self._accounts[number]._set_balance(balance)

        self._apply_changes(self._save_accounts, rollback)
        logger.info(f"Monthly update applied to {len(previous) - len(failed)} account(s), {len(failed)} failed")
        return failed

    def get_transactions(self, account_number: int) -> List[JournalRecord]:
        """Journal lines of one account in file order"""
        return self.journal.entries(account_number)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def username_exists(self, username: str) -> bool:
        return username in self._username_to_customer

    def get_customer_id_by_username(self, username: str) -> Optional[int]:
        return self._username_to_customer.get(username)

    def get_username(self, customer_id: int) -> Optional[str]:
        for username, owner_id in self._username_to_customer.items():
            if owner_id == customer_id:
                return username
        return None

    def authenticate(self, username: str, password: str) -> Optional[int]:
        """Customer id for a matching username/password pair, otherwise None"""
        customer_id = self._username_to_customer.get(username)
        if customer_id is None:
            return None
        stored = self._username_passwords.get(username)
        if stored is None or stored != password:
            log_action(logger, "warning", "Login failed", user_id=username, action="login_failed")
            return None
        return customer_id

    @synchronized
    def change_password(self, customer_id: int, old_password: str, new_password: str) -> bool:
        """
        Replace a customer's login password

        False if the customer has no username or the old password does not
        match. The auth file and the in-memory table change together or not
        at all.
        """
        check_field("Password", new_password)
        username = self.get_username(customer_id)
        if username is None:
            return False
        if self._username_passwords.get(username) != old_password:
            log_action(logger, "warning", "Password change rejected", user_id=username,
                       action="password_change_failed")
            return False

        self._username_passwords[username] = new_password

        def rollback():
            self._username_passwords[username] = old_password

        self._apply_changes(self._save_auth_data, rollback)
        log_action(logger, "info", "Password changed", user_id=username, action="password_changed")
        return True

    def verify_password(self, account_number: int, password: str) -> bool:
        stored = self._account_passwords.get(account_number)
        return stored is not None and stored == password

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _apply_changes(self, persist: Callable[[], None], rollback: Callable[[], None]) -> None:
        try:
            persist()
        except Exception as e:
            logger.error(f"Persisting change failed, rolling back: {e}")
            rollback()
            self._restore_record_files()
            raise

    def _restore_record_files(self) -> None:
        try:
            self._save_records()
        except StorageError as e:
            logger.error(f"Could not restore record files from memory: {e}")

    @synchronized
    def save_all(self) -> None:
        """Flush all in-memory state to the record files"""
        self._save_records()

    def _save_records(self) -> None:
        self._save_customers()
        self._save_accounts()
        self._save_auth_data()
        self._save_counters()

    def _save_customers(self) -> None:
        self.storage.write_lines(self.config.customers_file, [
            CustomerRecord(customer.id, customer.name, customer.phone).to_line()
            for customer in self.all_customers()
        ])

    def _save_accounts(self) -> None:
        self.storage.write_lines(self.config.accounts_file, [
            AccountRecord(
                account.account_number, account.owner.id, account.balance, account.account_type.value
            ).to_line()
            for account in self.all_accounts()
        ])

    def _save_auth_data(self) -> None:
        lines = [
            CustomerCredential(username, self._username_passwords.get(username, ""), customer_id).to_line()
            for username, customer_id in sorted(self._username_to_customer.items())
        ]
        lines.extend(
            AccountCredential(number, password).to_line()
            for number, password in sorted(self._account_passwords.items())
        )
        self.storage.write_lines(self.config.auth_file, lines)

    def _save_counters(self) -> None:
        record = CounterRecord(self._next_customer_id, self._next_account_number)
        self.storage.write_lines(self.config.counters_file, [record.to_line()])

    @synchronized
    def load_all(self) -> None:
        """
        Replace in-memory state with the contents of the record files

        Order matters: accounts reference customers, and credentials
        reference both. Malformed lines are skipped with a warning. If a
        file cannot be read at all the store starts empty.
        """
        self._reset()
        try:
            self._load_customers()
            self._load_accounts()
            self._load_auth_data()
            self._load_counters()
        except StorageError as e:
            logger.error(f"Failed to load data, starting from empty state: {e}")
            self._reset()
            return
        self._reconcile_counters()
        logger.info(f"Loaded {len(self._customers)} customer(s) and {len(self._accounts)} account(s)")

    def _load_customers(self) -> None:
        for line in self.storage.read_lines(self.config.customers_file):
            try:
                record = CustomerRecord.from_line(line)
                customer = Customer(record.customer_id, record.name, record.phone)
            except (RecordFormatError, InvalidInputError) as e:
                logger.warning(f"Skipping customer record: {e}")
                continue
            if customer.id in self._customers:
                logger.warning(f"Skipping duplicate customer {customer.id}")
                continue
            self._customers[customer.id] = customer

    def _load_accounts(self) -> None:
        for line in self.storage.read_lines(self.config.accounts_file):
            try:
                record = AccountRecord.from_line(line)
                account_type = AccountType(record.type_code)
            except (RecordFormatError, ValueError) as e:
                logger.warning(f"Skipping account record: {e}")
                continue

            owner = self._customers.get(record.owner_id)
            if owner is None:
                logger.warning(f"Skipping account {record.account_number}: unknown owner {record.owner_id}")
                continue
            if record.account_number in self._accounts:
                logger.warning(f"Skipping duplicate account {record.account_number}")
                continue

            try:
                account = self._build_account(account_type, record.account_number, owner,
                                              record.balance, record_creation=False)
            except InvalidInputError as e:
                logger.warning(f"Skipping account {record.account_number}: {e}")
                continue
            owner.add_account(account)
            self._accounts[account.account_number] = account

    def _load_auth_data(self) -> None:
        for line in self.storage.read_lines(self.config.auth_file):
            try:
                record = parse_auth_line(line)
            except RecordFormatError as e:
                logger.warning(f"Skipping auth record: {e}")
                continue

            if isinstance(record, CustomerCredential):
                if record.customer_id not in self._customers:
                    logger.warning(f"Skipping credentials of unknown customer {record.customer_id}")
                    continue
                self._username_to_customer[record.username] = record.customer_id
                self._username_passwords[record.username] = record.password
            else:
                if record.account_number not in self._accounts:
                    logger.warning(f"Skipping password of unknown account {record.account_number}")
                    continue
                self._account_passwords[record.account_number] = record.password

    def _load_counters(self) -> None:
        lines = self.storage.read_lines(self.config.counters_file)
        if not lines:
            return
        try:
            record = CounterRecord.from_line(lines[0])
        except RecordFormatError as e:
            logger.warning(f"Invalid counter file, using defaults: {e}")
            return
        self._next_customer_id = record.next_customer_id
        self._next_account_number = record.next_account_number

    def _reconcile_counters(self) -> None:
        """Keep counters ahead of every id already in use"""
        if self._customers:
            self._next_customer_id = max(self._next_customer_id, max(self._customers) + 1)
        if self._accounts:
            self._next_account_number = max(self._next_account_number, max(self._accounts) + 1)

    @synchronized
    def close(self) -> None:
        """Final flush at shutdown; errors are logged, not raised"""
        if self._closed:
            return
        try:
            self._save_records()
        except StorageError as e:
            logger.error(f"Error saving data on shutdown: {e}")
        self.storage.close()
        self._closed = True

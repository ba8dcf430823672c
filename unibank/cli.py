"""
Command line entry point

Each subcommand runs one BankService operation against the record store
and prints a JSON document on stdout. Exit status is 0 on success and 1 on
any failure.

Examples:
  unibank register --name Alice --phone 555 --username alice --password pw
  unibank create-account --username alice --type savings --initial-balance 100 --password acctpw
  unibank deposit --account 10000 --amount 25.50 --password acctpw
  unibank transactions --account 10000
"""

import argparse
import json
import sys
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from .bank import BankService, ACCOUNT_TYPE_NAMES
from .config import get_config
from .database import Database
from .exceptions import UniBankError
from .logging_config import get_logger, setup_logging


logger = get_logger("unibank.cli")


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(_dump(payload), indent=2, default=str))


def _result(success: bool, **fields) -> Dict[str, Any]:
    payload = {"success": bool(success)}
    payload.update(fields)
    return payload


def cmd_register(service: BankService, args) -> Dict[str, Any]:
    customer_id = service.register_customer(args.name, args.phone, args.username, args.password)
    if customer_id is None:
        return _result(False, error="Username already exists")
    return _result(True, customer_id=customer_id)


def cmd_login(service: BankService, args) -> Dict[str, Any]:
    profile = service.login(args.username, args.password)
    if profile is None:
        return _result(False, error="Invalid username or password")
    return _result(True, user=profile)


def cmd_get_user(service: BankService, args) -> Dict[str, Any]:
    profile = service.user_details(args.username)
    if profile is None:
        return _result(False, error="User not found")
    return _result(True, user=profile)


def cmd_create_account(service: BankService, args) -> Dict[str, Any]:
    customer_id = service.database.get_customer_id_by_username(args.username)
    if customer_id is None:
        return _result(False, error="User not found")
    number = service.create_account(customer_id, args.type, args.initial_balance, args.password)
    if number is None:
        return _result(False, error="Account could not be created")
    return _result(True, account_number=number)


def cmd_accounts(service: BankService, args) -> Dict[str, Any]:
    return _result(True, accounts=service.list_accounts(args.username))


def cmd_account(service: BankService, args) -> Dict[str, Any]:
    details = service.account_details(args.account)
    if details is None:
        return _result(False, error="Account not found")
    return _result(True, account=details)


def cmd_deposit(service: BankService, args) -> Dict[str, Any]:
    return _balance_result(service, args.account,
                           service.deposit(args.account, args.amount, args.password))


def cmd_withdraw(service: BankService, args) -> Dict[str, Any]:
    return _balance_result(service, args.account,
                           service.withdraw(args.account, args.amount, args.password))


def cmd_transfer(service: BankService, args) -> Dict[str, Any]:
    return _balance_result(service, args.from_account,
                           service.transfer(args.from_account, args.to_account, args.amount, args.password))


def _balance_result(service: BankService, account_number: int, success: bool) -> Dict[str, Any]:
    if not success:
        return _result(False, error="Transaction failed")
    details = service.account_details(account_number)
    return _result(True, balance=details.balance if details else None)


def cmd_close_account(service: BankService, args) -> Dict[str, Any]:
    if not service.close_account(args.account, args.password):
        return _result(False, error="Account could not be closed")
    return _result(True, account_number=args.account)


def cmd_transactions(service: BankService, args) -> Dict[str, Any]:
    if service.account_details(args.account) is None:
        return _result(False, error="Account not found")
    return _result(True, transactions=service.statement(args.account))


def cmd_change_password(service: BankService, args) -> Dict[str, Any]:
    if not service.change_password(args.username, args.old_password, args.new_password):
        return _result(False, error="Password could not be changed")
    return _result(True)


def cmd_update_profile(service: BankService, args) -> Dict[str, Any]:
    if not service.update_profile(args.username, args.name, args.phone):
        return _result(False, error="User not found")
    return _result(True, user=service.user_details(args.username))


def cmd_monthly_update(service: BankService, args) -> Dict[str, Any]:
    failed = service.apply_monthly_updates()
    return _result(True, failed_accounts=failed)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unibank",
        description="UniBank record store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--data-dir', '-d', help='Directory holding the record files')
    subparsers = parser.add_subparsers(dest='command', required=True)

    def command(name: str, handler: Callable, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.set_defaults(handler=handler)
        return sub

    sub = command('register', cmd_register, 'Register a new customer')
    sub.add_argument('--name', required=True)
    sub.add_argument('--phone', required=True)
    sub.add_argument('--username', required=True)
    sub.add_argument('--password', required=True)

    sub = command('login', cmd_login, 'Check customer credentials')
    sub.add_argument('--username', required=True)
    sub.add_argument('--password', required=True)

    sub = command('get-user', cmd_get_user, 'Show a customer profile')
    sub.add_argument('--username', required=True)

    sub = command('create-account', cmd_create_account, 'Open an account')
    sub.add_argument('--username', required=True)
    sub.add_argument('--type', required=True, choices=sorted(ACCOUNT_TYPE_NAMES))
    sub.add_argument('--initial-balance', default="0")
    sub.add_argument('--password', required=True, help='Password of the new account')

    sub = command('accounts', cmd_accounts, "List a customer's accounts")
    sub.add_argument('--username', required=True)

    sub = command('account', cmd_account, 'Show one account')
    sub.add_argument('--account', type=int, required=True)

    for name, handler, help_text in (
        ('deposit', cmd_deposit, 'Deposit into an account'),
        ('withdraw', cmd_withdraw, 'Withdraw from an account'),
    ):
        sub = command(name, handler, help_text)
        sub.add_argument('--account', type=int, required=True)
        sub.add_argument('--amount', required=True)
        sub.add_argument('--password', required=True)

    sub = command('transfer', cmd_transfer, 'Transfer between accounts')
    sub.add_argument('--from', dest='from_account', type=int, required=True)
    sub.add_argument('--to', dest='to_account', type=int, required=True)
    sub.add_argument('--amount', required=True)
    sub.add_argument('--password', required=True, help='Password of the source account')

    sub = command('close-account', cmd_close_account, 'Withdraw the balance and close an account')
    sub.add_argument('--account', type=int, required=True)
    sub.add_argument('--password', required=True)

    sub = command('transactions', cmd_transactions, 'Show an account statement')
    sub.add_argument('--account', type=int, required=True)

    sub = command('change-password', cmd_change_password, 'Change a login password')
    sub.add_argument('--username', required=True)
    sub.add_argument('--old-password', required=True)
    sub.add_argument('--new-password', required=True)

    sub = command('update-profile', cmd_update_profile, 'Change name and phone')
    sub.add_argument('--username', required=True)
    sub.add_argument('--name', required=True)
    sub.add_argument('--phone', required=True)

    command('monthly-update', cmd_monthly_update, 'Apply interest and fees to every account')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for command line usage"""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    if args.data_dir:
        config = config.model_copy(update={"data_dir": args.data_dir})
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    try:
        with Database(config=config) as database:
            payload = args.handler(BankService(database), args)
    except (UniBankError, ValueError) as e:
        logger.error(f"Command {args.command} failed: {e}")
        payload = _result(False, error=str(e))

    _emit(payload)
    return 0 if payload["success"] else 1


if __name__ == "__main__":
    sys.exit(main())

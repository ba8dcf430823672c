"""
Account Statements

Rebuilds an account's history from its journal lines. The running balance
is the sum of signed amounts in file order, starting from zero.
"""

from decimal import Decimal
from typing import Iterable, List

from .currency import ZERO
from .records import JournalRecord
from .schemas import StatementLine
from .transactions import TransactionType


def signed_amount(record: JournalRecord) -> Decimal:
    """Effect of one journal line on its account's balance"""
    if record.type_code == TransactionType.DEPOSIT.value:
        return record.amount
    if record.type_code == TransactionType.WITHDRAWAL.value:
        return -record.amount
    if record.type_code == TransactionType.TRANSFER.value:
        # transfer legs are already signed
        return record.amount
    return ZERO


def describe(record: JournalRecord) -> str:
    if record.type_code == TransactionType.DEPOSIT.value:
        return "Deposit"
    if record.type_code == TransactionType.WITHDRAWAL.value:
        return "Withdrawal"
    if record.type_code == TransactionType.TRANSFER.value:
        return "Transfer In" if record.amount > ZERO else "Transfer Out"
    return "Unknown"


def build_statement(records: Iterable[JournalRecord]) -> List[StatementLine]:
    """Statement lines with running balances for one account's journal lines"""
    running = ZERO
    lines = []
    for record in records:
        running += signed_amount(record)
        is_transfer = record.type_code == TransactionType.TRANSFER.value
        lines.append(StatementLine(
            timestamp=record.timestamp,
            type=describe(record),
            amount=abs(record.amount),
            related_account=record.counterpart if is_transfer else None,
            balance=running,
        ))
    return lines

"""
Transaction Journal

Append-only record of executed transactions, one line per leg. The journal
is a record of fact: lines are written after the balance change has been
applied. The only rewrite is purge(), used when an account is closed.
"""

from typing import List, Optional

from .logging_config import get_logger
from .records import FIELD_SEPARATOR, JournalRecord, RecordFormatError
from .storage import StorageInterface
from .transactions import Transaction


logger = get_logger("unibank.journal")


class Journal:
    """Journal file access on top of a storage backend"""

    def __init__(self, storage: StorageInterface, file_name: str = "transactions.txt"):
        self.storage = storage
        self.file_name = file_name

    def append(self, transaction: Transaction) -> List[JournalRecord]:
        """Write every leg of an executed transaction"""
        legs = transaction.journal_legs()
        self.append_records(legs)
        return legs

    def append_records(self, records: List[JournalRecord]) -> None:
        self.storage.append_lines(self.file_name, [record.to_line() for record in records])

    def entries(self, account_number: Optional[int] = None) -> List[JournalRecord]:
        """Parsed journal lines in file order, optionally for one account"""
        result = []
        for line in self.storage.read_lines(self.file_name):
            try:
                record = JournalRecord.from_line(line)
            except RecordFormatError as e:
                logger.warning(f"Skipping malformed journal line: {e}")
                continue
            if account_number is None or record.account_number == account_number:
                result.append(record)
        return result

    def purge(self, account_number: int) -> int:
        """
        Drop every line belonging to an account

        Lines that cannot be attributed to an account are kept. Returns the
        number of lines removed.
        """
        lines = self.storage.read_lines(self.file_name)
        prefix = str(account_number)
        kept = [line for line in lines if line.split(FIELD_SEPARATOR, 1)[0] != prefix]
        removed = len(lines) - len(kept)
        if removed:
            self.storage.write_lines(self.file_name, kept)
        return removed

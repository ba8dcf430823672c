"""
Audit Log Module

Structured audit entries for auditable accounts. Every entry is kept in
memory and appended as one human-readable line to a side log file.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union

from .currency import format_amount
from .logging_config import get_logger


AUDIT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = get_logger("unibank.audit")


@dataclass(frozen=True)
class AuditEntry:
    """One audited action against an account"""
    timestamp: str
    action: str
    amount: Decimal
    balance: Decimal
    succeeded: bool = True

    def to_line(self) -> str:
        """Side log line, e.g. '2024-05-01 09:30:00 - Deposit of $25.00 successful'"""
        return f"{self.timestamp} - {self.describe()}"

    def describe(self) -> str:
        amount = format_amount(self.amount)
        if self.action == "Account created":
            return f"Account created with initial balance of ${amount}"
        if self.action == "Monthly Interest":
            return f"Monthly interest of ${amount} applied"
        outcome = "successful" if self.succeeded else "failed"
        return f"{self.action} of ${amount} {outcome}"


class AuditLog:
    """
    In-memory audit trail with an append-only side file

    The side file is best effort: if it cannot be written the entry is still
    kept in memory and a warning is logged.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._entries: List[AuditEntry] = []

    @property
    def entries(self) -> List[AuditEntry]:
        return list(self._entries)

    def record(self, action: str, amount: Decimal, balance: Decimal,
               succeeded: bool = True) -> AuditEntry:
        """Append an entry in memory and to the side file"""
        entry = AuditEntry(
            timestamp=datetime.now().strftime(AUDIT_TIMESTAMP_FORMAT),
            action=action,
            amount=amount,
            balance=balance,
            succeeded=succeeded
        )
        self._entries.append(entry)
        self._write(entry)
        return entry

    def clear(self) -> None:
        """Forget in-memory entries; the side file is left untouched"""
        self._entries.clear()

    def _write(self, entry: AuditEntry) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as handle:
                handle.write(entry.to_line() + "\n")
        except OSError as e:
            logger.warning(f"Could not write audit log {self.path}: {e}")

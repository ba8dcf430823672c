"""
Pydantic views returned by the service facade and printed by the CLI
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CustomerProfile(BaseModel):
    id: int
    name: str
    username: str
    phone: str


class AccountSummary(BaseModel):
    account_number: int
    type: str = Field(..., description="Savings, Current or Auditable Savings")
    balance: Decimal


class AccountDetails(AccountSummary):
    owner: str


class StatementLine(BaseModel):
    timestamp: str
    type: str = Field(..., description="Deposit, Withdrawal, Transfer In or Transfer Out")
    amount: Decimal = Field(..., description="Absolute amount of the leg")
    related_account: Optional[int] = None
    balance: Decimal = Field(..., description="Running balance after this line")

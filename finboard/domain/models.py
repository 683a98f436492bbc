"""Domain models - pure Python dataclasses and enums shared across layers"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class CollectionKind(str, Enum):
    """Record collections owned by a user"""

    TRANSACTIONS = "transactions"
    SAVINGS = "savings"
    BILLS = "bills"

    @property
    def label(self) -> str:
        return {
            CollectionKind.TRANSACTIONS: "Transaction",
            CollectionKind.SAVINGS: "Savings goal",
            CollectionKind.BILLS: "Bill",
        }[self]

    @property
    def date_field(self) -> str:
        """Wire name of the field used for date-range filters"""
        return {
            CollectionKind.TRANSACTIONS: "date",
            CollectionKind.SAVINGS: "createdAt",
            CollectionKind.BILLS: "dueDate",
        }[self]


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class UserRole(str, Enum):
    REGULAR = "regular"
    PREMIUM = "premium"
    ADMIN = "admin"
    BANK_MANAGER = "bank_manager"
    LOAN_DISTRIBUTOR = "loan_distributor"
    FINANCIAL_ADVISOR = "financial_advisor"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved by the identity collaborator"""

    user_id: str
    role: str = UserRole.REGULAR.value


@dataclass(frozen=True)
class ValidationPolicy:
    """Invariants the stored data does not enforce unless switched on"""

    enforce_transaction_sign: bool = False  # amount > 0, type carries direction
    cap_savings_at_target: bool = False  # currentAmount <= targetAmount


@dataclass
class RecordFilter:
    """Optional narrowing for list queries"""

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    category: Optional[str] = None
    type: Optional[TransactionType] = None
    upcoming_days: Optional[int] = None
    sort: str = "-createdAt"
    limit: Optional[int] = None


@dataclass
class TransactionSummary:
    """Income/expense totals for a user's transactions"""

    total_income: float
    total_expenses: float
    balance: float
    count: int

"""
Core Ledger Models for Pocket Ledger

These models define the entities handed to and from the storage collaborator.
They are designed to:
1. Normalize numeric and date input at the point of ingestion
2. Enforce structural invariants (transfer legs, enum values)
3. Be serializable for storage and logging

DESIGN DECISION: Money is always a Decimal rounded half-away-from-zero to
cents when an entity is built. Non-finite or unparsable amounts become zero
instead of failing validation, so a corrupt row can never poison a balance.

Derived values (account balances, budget progress) appear on these models
only as outputs of the engine. They are never a source of truth.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


ZERO = Decimal("0")
CENT = Decimal("0.01")

# Alias so a field may be named `date` without shadowing its own type
Day = date


# =============================================================================
# NUMERIC AND DATE NORMALIZATION
# =============================================================================

def normalize_amount(value: Any) -> Decimal:
    """
    Coerce any numeric-looking input into a finite Decimal.

    None, booleans, NaN, infinities and unparsable strings all become 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def round_money(value: Any) -> Decimal:
    """
    Round to cents, half away from zero.

    Precision is widened for the quantize so very large amounts keep every
    digit; an amount that still cannot be represented becomes 0.
    """
    amount = normalize_amount(value)
    with localcontext() as context:
        context.prec = max(context.prec, amount.adjusted() + 3)
        try:
            return amount.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return ZERO


def to_day(value: Any) -> Any:
    """Truncate datetimes (and ISO datetime strings) to their calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value.strip()) > 10:
        return datetime.fromisoformat(value.strip()).date()
    return value


def utc_now() -> datetime:
    """Naive UTC timestamp; all stored timestamps share this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: Any) -> Any:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of wallet a user can track."""
    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    INVESTMENT = "investment"


class TransactionType(str, Enum):
    """
    Ledger entry types.

    The model is single-entry: a TRANSFER is the only type that touches
    two accounts.
    """
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class CategoryType(str, Enum):
    """Category classification."""
    EXPENSE = "expense"
    INCOME = "income"
    DEBT = "debt"


class BudgetPeriod(str, Enum):
    """Window over which a budget goal is evaluated."""
    WEEK = "week"
    MONTH = "month"


class RecurrenceFrequency(str, Enum):
    """How often a recurring transaction repeats."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


# =============================================================================
# ACCOUNTS AND CATEGORIES
# =============================================================================

class Account(BaseModel):
    """
    A wallet that transactions are recorded against.

    CRITICAL: `balance` is only ever produced by reconciliation.
    Setting it by hand has no effect on any derived figure.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Unique account ID"
    )
    name: str = Field(
        ...,
        max_length=200,
        description="Display name"
    )
    type: AccountType = Field(
        default=AccountType.BANK,
        description="Account kind"
    )
    currency: Optional[str] = Field(
        default=None,
        description="ISO currency code; the fallback currency applies when unset"
    )
    initial_balance: Decimal = Field(
        default=ZERO,
        description="Signed opening balance, fixed at creation"
    )
    balance: Decimal = Field(
        default=ZERO,
        description="Derived balance (output of reconciliation only)"
    )
    exclude_from_total: bool = False
    is_archived: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('initial_balance', 'balance', mode='before')
    @classmethod
    def normalize_money(cls, v: Any) -> Decimal:
        return round_money(v)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip().upper()

    @field_validator('created_at', mode='before')
    @classmethod
    def normalize_created_at(cls, v: Any) -> Any:
        return naive_utc(v)


class Category(BaseModel):
    """
    A budget/reporting category.

    Nesting is one level deep: `parent_category_id` points at a top-level
    category. Deeper chains are not rejected here; the resolver only ever
    looks at the immediate parent.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.EXPENSE
    parent_category_id: Optional[str] = None
    active_account_ids: Optional[list[str]] = Field(
        default=None,
        description="Accounts this category is offered for; None means every visible account"
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionTemplate(BaseModel):
    """
    Fields shared by a ledger entry and a recurring rule.

    Validators here normalize amounts, currencies and the transfer
    destination for both subclasses.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    amount: Decimal = Field(
        default=ZERO,
        description="Magnitude only; the type carries the sign"
    )
    type: TransactionType
    category: str = Field(
        default="",
        description="Category reference, by id or by display name"
    )
    account_id: str = Field(..., min_length=1)
    to_account_id: Optional[str] = Field(
        default=None,
        description="Destination account (transfers only)"
    )
    currency: Optional[str] = Field(
        default=None,
        description="Explicit currency override for this entry"
    )
    note: str = Field(default="", max_length=1000)

    # Optional metadata
    participants: list[str] = Field(default_factory=list)
    location: Optional[str] = None
    photos: list[str] = Field(default_factory=list)

    exclude_from_reports: bool = False

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_magnitude(cls, v: Any) -> Decimal:
        return abs(round_money(v))

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip().upper()

    @field_validator('to_account_id', mode='before')
    @classmethod
    def blank_destination_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_transfer_leg(self) -> 'TransactionTemplate':
        """A transfer needs a destination; nothing else may have one."""
        if self.type == TransactionType.TRANSFER and self.to_account_id is None:
            raise ValueError("Transfer requires a destination account")
        if self.type != TransactionType.TRANSFER and self.to_account_id is not None:
            raise ValueError("Only transfers may have a destination account")
        return self

    @property
    def is_transfer(self) -> bool:
        return self.type == TransactionType.TRANSFER


class Transaction(TransactionTemplate):
    """
    A single ledger entry.

    `date` is user-editable and has day granularity. `created_at` is
    set once and breaks ties between entries on the same day.
    """

    date: Day = Field(..., description="Day the entry applies to")
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('date', mode='before')
    @classmethod
    def truncate_to_day(cls, v: Any) -> Any:
        return to_day(v)

    @field_validator('created_at', mode='before')
    @classmethod
    def normalize_created_at(cls, v: Any) -> Any:
        return naive_utc(v)


class RecurringTransaction(TransactionTemplate):
    """A template that produces a Transaction on every cycle."""

    frequency: RecurrenceFrequency
    next_occurrence: date = Field(
        ...,
        description="Date the next materialized entry will carry"
    )
    is_active: bool = True

    @field_validator('next_occurrence', mode='before')
    @classmethod
    def truncate_to_day(cls, v: Any) -> Any:
        return to_day(v)


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetGoal(BaseModel):
    """
    A spending limit for one week or one month.

    `category` is None for a whole-wallet budget. Periods that ended
    before `created_at` are never evaluated.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    target: Decimal = Field(..., description="Spending limit per period")
    period: BudgetPeriod = BudgetPeriod.MONTH
    category: Optional[str] = Field(
        default=None,
        description="Category reference (id or name); None tracks all expenses"
    )
    is_repeating: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('target', mode='before')
    @classmethod
    def normalize_target(cls, v: Any) -> Decimal:
        return abs(round_money(v))

    @field_validator('category', mode='before')
    @classmethod
    def blank_category_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('created_at', mode='before')
    @classmethod
    def normalize_created_at(cls, v: Any) -> Any:
        return naive_utc(v)


# =============================================================================
# STORAGE SNAPSHOT
# =============================================================================

LedgerEntity = Union[Account, Transaction, Category, BudgetGoal, RecurringTransaction]


class LedgerSnapshot(BaseModel):
    """Everything the storage collaborator holds, as loaded in one read."""

    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    budgets: list[BudgetGoal] = Field(default_factory=list)
    recurring: list[RecurringTransaction] = Field(default_factory=list)

    def entities(self) -> list[LedgerEntity]:
        """All entities in a flat list."""
        return [
            *self.accounts,
            *self.transactions,
            *self.categories,
            *self.budgets,
            *self.recurring,
        ]

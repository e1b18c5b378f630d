"""
LedgerBook - Ledger Schemas

Pydantic schemas for accounts, parties, journal vouchers and ledger queries.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ledgerbook.config import settings
from ledgerbook.utils.error_handling import InvalidDateRangeException


# =============================================================================
# ENUMS
# =============================================================================

class NormalBalance(str, Enum):
    """Normal balance direction."""
    DEBIT = "debit"
    CREDIT = "credit"


class AccountFamily(str, Enum):
    """Financial statement family an account nature rolls up into."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class AccountNature(str, Enum):
    """
    Account nature. Determines the balance sign convention: debit-increasing
    natures carry `debit - credit`, the rest carry `credit - debit`.
    """
    FIXED_ASSET = "Fixed Asset"
    INVESTMENT = "Investment"
    CURRENT_ASSET = "Current Asset"
    CASH = "Cash"
    BANK = "Bank"
    LONG_TERM_LIABILITY = "Long Term Liability"
    CURRENT_LIABILITY = "Current Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    OTHER_INCOME = "Other Income"
    COST_OF_GOODS_SOLD = "Cost of Goods Sold"
    EXPENSE = "Expense"

    @property
    def normal_balance(self) -> NormalBalance:
        if self in DEBIT_INCREASING_NATURES:
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT

    @property
    def is_debit_increasing(self) -> bool:
        return self in DEBIT_INCREASING_NATURES

    @property
    def family(self) -> AccountFamily:
        return _NATURE_FAMILY[self]


DEBIT_INCREASING_NATURES: FrozenSet[AccountNature] = frozenset({
    AccountNature.FIXED_ASSET,
    AccountNature.INVESTMENT,
    AccountNature.CURRENT_ASSET,
    AccountNature.CASH,
    AccountNature.BANK,
    AccountNature.COST_OF_GOODS_SOLD,
    AccountNature.EXPENSE,
})

_NATURE_FAMILY = {
    AccountNature.FIXED_ASSET: AccountFamily.ASSET,
    AccountNature.INVESTMENT: AccountFamily.ASSET,
    AccountNature.CURRENT_ASSET: AccountFamily.ASSET,
    AccountNature.CASH: AccountFamily.ASSET,
    AccountNature.BANK: AccountFamily.ASSET,
    AccountNature.LONG_TERM_LIABILITY: AccountFamily.LIABILITY,
    AccountNature.CURRENT_LIABILITY: AccountFamily.LIABILITY,
    AccountNature.EQUITY: AccountFamily.EQUITY,
    AccountNature.REVENUE: AccountFamily.INCOME,
    AccountNature.OTHER_INCOME: AccountFamily.INCOME,
    AccountNature.COST_OF_GOODS_SOLD: AccountFamily.EXPENSE,
    AccountNature.EXPENSE: AccountFamily.EXPENSE,
}


class AccountSource(str, Enum):
    """Where an account in the merged catalogue came from."""
    SYSTEM = "system"
    TENANT = "tenant"
    PARTY = "party"


class PartyKind(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"


class VoucherKind(str, Enum):
    """Transaction kind of a voucher, used by the GST summary."""
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    BILL = "bill"
    DEBIT_NOTE = "debit_note"
    JOURNAL = "journal"

    @classmethod
    def from_voucher_id(cls, voucher_id: str) -> "VoucherKind":
        """
        Derive the kind from a historical voucher-id prefix.

        Producers that do not set `kind` explicitly must follow the
        convention: INV- (sale invoice), CN- (credit note), BILL- (purchase
        bill), DN- (debit note). Anything else is a plain journal.
        """
        prefixes = (
            (settings.invoice_prefix, cls.INVOICE),
            (settings.credit_note_prefix, cls.CREDIT_NOTE),
            (settings.bill_prefix, cls.BILL),
            (settings.debit_note_prefix, cls.DEBIT_NOTE),
        )
        upper_id = (voucher_id or "").upper()
        for prefix, kind in prefixes:
            if upper_id.startswith(prefix.upper()):
                return kind
        return cls.JOURNAL


# =============================================================================
# ACCOUNTS & PARTIES
# =============================================================================

class Account(BaseModel):
    """A chart-of-accounts entry."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    code: str = Field(..., min_length=1, max_length=40)
    name: str = Field(..., min_length=1, max_length=200)
    nature: AccountNature
    group: Optional[str] = None
    source: AccountSource = AccountSource.SYSTEM

    @property
    def display_group(self) -> str:
        return self.group or self.nature.value


class AccountCreate(BaseModel):
    """Schema for creating a tenant account."""
    code: str = Field(..., min_length=1, max_length=40)
    name: str = Field(..., min_length=1, max_length=200)
    nature: AccountNature


class Party(BaseModel):
    """A customer or vendor whose id is posted to directly as a sub-ledger."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    party_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    kind: PartyKind

    def as_account(self) -> Account:
        if self.kind == PartyKind.CUSTOMER:
            nature, group = AccountNature.CURRENT_ASSET, "Customer"
        else:
            nature, group = AccountNature.CURRENT_LIABILITY, "Vendor"
        return Account(
            code=self.party_id,
            name=self.name,
            nature=nature,
            group=group,
            source=AccountSource.PARTY,
        )


# =============================================================================
# JOURNAL VOUCHERS
# =============================================================================

class VoucherLine(BaseModel):
    """One debit or credit line of a voucher."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    account_code: str = Field(..., min_length=1, max_length=64)
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)
    cost_centre: Optional[str] = None

    @field_validator("account_code")
    @classmethod
    def strip_code(cls, value: str) -> str:
        return value.strip()

    @property
    def is_ambiguous(self) -> bool:
        """Both sides set, or both zero."""
        return (self.debit > 0) == (self.credit > 0)

    @property
    def amount(self) -> Decimal:
        return self.debit or self.credit


class JournalVoucherCreate(BaseModel):
    """Schema for posting a voucher through the API."""
    voucher_id: str = Field(..., min_length=1, max_length=64)
    voucher_date: date
    narration: Optional[str] = None
    lines: List[VoucherLine]
    kind: Optional[VoucherKind] = None
    party_id: Optional[str] = None
    reverses: Optional[str] = None


class JournalVoucher(BaseModel):
    """A posted journal voucher. Immutable once built."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    voucher_id: str = Field(..., min_length=1, max_length=64)
    tenant_id: str = Field(..., min_length=1, max_length=64)
    voucher_date: date
    narration: str = ""
    lines: List[VoucherLine]
    kind: VoucherKind = VoucherKind.JOURNAL
    party_id: Optional[str] = None
    reverses: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def assign_kind(cls, data):
        if isinstance(data, dict) and not data.get("kind"):
            data = dict(data)
            data["kind"] = VoucherKind.from_voucher_id(data.get("voucher_id", ""))
        return data

    @field_validator("narration", mode="before")
    @classmethod
    def default_narration(cls, value):
        return value or ""

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


class JournalVoucherResponse(JournalVoucher):
    """Voucher with its totals, for API responses."""
    total_debit_amount: Decimal = Decimal("0")
    total_credit_amount: Decimal = Decimal("0")

    @classmethod
    def from_voucher(cls, voucher: JournalVoucher) -> "JournalVoucherResponse":
        return cls(
            **voucher.model_dump(),
            total_debit_amount=voucher.total_debit,
            total_credit_amount=voucher.total_credit,
        )


class NarrationRequest(BaseModel):
    """Lines to infer a narration for, plus the tenant's parties."""
    lines: List[VoucherLine]
    customers: List[Party] = []
    vendors: List[Party] = []


class NarrationResponse(BaseModel):
    narration: str
    rule: str


# =============================================================================
# QUERIES
# =============================================================================

class DateRange(BaseModel):
    """Inclusive date range. Either bound may be open."""
    model_config = ConfigDict(frozen=True)

    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.start and self.end and self.start > self.end:
            raise InvalidDateRangeException(self.start, self.end)
        return self

    def contains(self, day: date) -> bool:
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True

    def is_past(self, day: date) -> bool:
        """True once `day` lies beyond the end of the range."""
        return self.end is not None and day > self.end

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


class LedgerQuery(BaseModel):
    """
    Immutable per-request query: tenant scope, date range and an optional
    account filter. Passed explicitly into aggregation.
    """
    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    date_range: DateRange = DateRange()
    account_filter: Optional[FrozenSet[str]] = None

    def without_account_filter(self) -> "LedgerQuery":
        return self.model_copy(update={"account_filter": None})

    def with_range(self, date_range: DateRange) -> "LedgerQuery":
        return self.model_copy(update={"date_range": date_range})

"""
LedgerBook - Report Schemas

Pydantic schemas for derived reports: trial balance, Trading & P&L, balance
sheet, account ledger, GST summary, advance-tax projection and cost-centre
summary.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ledgerbook.schemas.ledger import AccountNature, VoucherKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# DIAGNOSTICS
# =============================================================================

class SkippedLine(BaseModel):
    """A voucher line left out of aggregation because its account is unknown."""
    model_config = ConfigDict(frozen=True)

    voucher_id: str
    line_index: int
    account_code: str
    debit: Decimal
    credit: Decimal


class AmbiguousLineNotice(BaseModel):
    """A line with both sides set (or both zero). It is netted, not rejected."""
    model_config = ConfigDict(frozen=True)

    voucher_id: str
    line_index: int
    account_code: str
    debit: Decimal
    credit: Decimal


class ReportBase(BaseModel):
    """Fields shared by all reports."""
    report_type: str
    tenant_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    generated_at: datetime = Field(default_factory=_utcnow)
    warnings: List[str] = []

    @computed_field
    @property
    def has_caveats(self) -> bool:
        return bool(self.warnings)


# =============================================================================
# TRIAL BALANCE
# =============================================================================

class TrialBalanceRow(BaseModel):
    account_code: str
    account_name: str
    nature: Optional[AccountNature] = None
    group: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")


class TrialBalanceReport(ReportBase):
    report_type: str = "trial_balance"
    rows: List[TrialBalanceRow] = []
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    difference: Decimal = Decimal("0")
    suspense_amount: Decimal = Decimal("0")
    skipped_lines: List[SkippedLine] = []
    ambiguous_lines: List[AmbiguousLineNotice] = []

    @computed_field
    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


# =============================================================================
# TRADING & PROFIT AND LOSS
# =============================================================================

class StatementLine(BaseModel):
    account_code: str
    account_name: str
    amount: Decimal


class ProfitAndLossReport(ReportBase):
    """
    Trading account (revenue vs cost of goods sold) followed by the profit and
    loss account (gross profit b/d vs operating expenses).
    """
    report_type: str = "profit_and_loss"

    revenue_lines: List[StatementLine] = []
    cogs_lines: List[StatementLine] = []
    expense_lines: List[StatementLine] = []

    total_revenue: Decimal = Decimal("0")
    total_cogs: Decimal = Decimal("0")
    total_operating_expenses: Decimal = Decimal("0")

    gross_profit: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")

    # Display balancing of the two T-accounts
    trading_total: Decimal = Decimal("0")
    gross_profit_bd: Decimal = Decimal("0")
    gross_loss_bd: Decimal = Decimal("0")
    pl_total: Decimal = Decimal("0")

    @computed_field
    @property
    def is_profit(self) -> bool:
        return self.net_profit >= 0


# =============================================================================
# BALANCE SHEET
# =============================================================================

class BalanceSheetSection(BaseModel):
    group: str
    lines: List[StatementLine] = []
    total: Decimal = Decimal("0")


class BalanceSheetReport(ReportBase):
    report_type: str = "balance_sheet"

    assets: List[BalanceSheetSection] = []
    liabilities: List[BalanceSheetSection] = []
    equity: List[BalanceSheetSection] = []

    total_assets: Decimal = Decimal("0")
    total_liabilities: Decimal = Decimal("0")
    total_equity: Decimal = Decimal("0")
    current_profit: Decimal = Decimal("0")
    total_liabilities_and_equity: Decimal = Decimal("0")

    @computed_field
    @property
    def is_balanced(self) -> bool:
        return self.total_assets == self.total_liabilities_and_equity


# =============================================================================
# ACCOUNT LEDGER
# =============================================================================

class LedgerPosting(BaseModel):
    voucher_id: str
    voucher_date: date
    narration: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    cost_centre: Optional[str] = None


class AccountLedgerReport(ReportBase):
    report_type: str = "account_ledger"

    account_code: str
    account_name: str
    nature: AccountNature
    opening_balance: Decimal = Decimal("0")
    postings: List[LedgerPosting] = []
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    closing_balance: Decimal = Decimal("0")


# =============================================================================
# GST SUMMARY
# =============================================================================

class GSTDocumentRow(BaseModel):
    """GSTR-1 style row for one invoice or credit note."""
    voucher_id: str
    voucher_date: date
    kind: VoucherKind
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    taxable_value: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")


class GSTSummaryReport(ReportBase):
    """GSTR-3B style liability summary with the GSTR-1 document register."""
    report_type: str = "gst_summary"

    outward_taxable_value: Decimal = Decimal("0")
    invoice_tax: Decimal = Decimal("0")
    credit_note_taxable_value: Decimal = Decimal("0")
    credit_note_tax: Decimal = Decimal("0")
    inward_taxable_value: Decimal = Decimal("0")
    purchase_tax: Decimal = Decimal("0")
    debit_note_tax: Decimal = Decimal("0")

    output_tax: Decimal = Decimal("0")
    input_credit: Decimal = Decimal("0")
    net_payable: Decimal = Decimal("0")
    cash_payable: Decimal = Decimal("0")
    credit_carried_forward: Decimal = Decimal("0")

    gst_ledger_balance: Decimal = Decimal("0")
    documents: List[GSTDocumentRow] = []


# =============================================================================
# ADVANCE TAX
# =============================================================================

class SlabTax(BaseModel):
    lower_limit: Decimal
    upper_limit: Optional[Decimal] = None
    rate: Decimal
    taxable_amount: Decimal
    tax: Decimal


class AdvanceTaxInstalment(BaseModel):
    due_date: date
    cumulative_percent: Decimal
    cumulative_amount: Decimal
    instalment_amount: Decimal


class AdvanceTaxProjection(ReportBase):
    report_type: str = "advance_tax"

    entity_type: str
    as_of: date
    fiscal_year_start: date
    months_elapsed: int
    profit_to_date: Decimal
    projected_annual_income: Decimal
    deductions: Decimal = Decimal("0")
    taxable_income: Decimal
    tax_before_cess: Decimal
    cess: Decimal
    total_tax: Decimal
    tds_credit: Decimal = Decimal("0")
    net_tax_payable: Decimal
    slab_breakdown: List[SlabTax] = []
    instalments: List[AdvanceTaxInstalment] = []


# =============================================================================
# COST CENTRE SUMMARY
# =============================================================================

class CostCentreRow(BaseModel):
    cost_centre: str
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    net: Decimal = Decimal("0")


class CostCentreSummaryReport(ReportBase):
    """Income and expense booked against each cost centre."""
    report_type: str = "cost_centre_summary"

    rows: List[CostCentreRow] = []
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    # Income and expense lines that carry no cost centre
    unallocated_income: Decimal = Decimal("0")
    unallocated_expense: Decimal = Decimal("0")


# =============================================================================
# ACCOUNT BALANCES
# =============================================================================

class AccountBalancesReport(ReportBase):
    """Raw signed balances for a date range, optionally filtered by account."""
    report_type: str = "account_balances"

    balances: Dict[str, Decimal] = {}
    vouchers_folded: int = 0
    skipped_lines: List[SkippedLine] = []
    ambiguous_lines: List[AmbiguousLineNotice] = []

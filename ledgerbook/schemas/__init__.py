"""
LedgerBook - Schemas Package

Pydantic schemas for request/response validation.
"""

from ledgerbook.schemas.ledger import (
    # Enums
    AccountFamily,
    AccountNature,
    AccountSource,
    NormalBalance,
    PartyKind,
    VoucherKind,
    # Accounts & parties
    Account,
    AccountCreate,
    Party,
    # Vouchers
    VoucherLine,
    JournalVoucher,
    JournalVoucherCreate,
    JournalVoucherResponse,
    NarrationRequest,
    NarrationResponse,
    # Queries
    DateRange,
    LedgerQuery,
)
from ledgerbook.schemas.reports import (
    SkippedLine,
    AmbiguousLineNotice,
    TrialBalanceRow,
    TrialBalanceReport,
    StatementLine,
    ProfitAndLossReport,
    BalanceSheetSection,
    BalanceSheetReport,
    LedgerPosting,
    AccountLedgerReport,
    GSTDocumentRow,
    GSTSummaryReport,
    SlabTax,
    AdvanceTaxInstalment,
    AdvanceTaxProjection,
    CostCentreRow,
    CostCentreSummaryReport,
    AccountBalancesReport,
)

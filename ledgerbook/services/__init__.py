"""
LedgerBook - Services Package

Business logic services.
"""

from ledgerbook.services.chart_of_accounts import (
    SYSTEM_ACCOUNTS,
    CatalogueView,
    ChartOfAccountsService,
    merge_catalogues,
)
from ledgerbook.services.balance_aggregator import (
    AggregationResult,
    BalanceAggregator,
    BalanceSnapshot,
    BalanceSnapshotIndex,
    aggregate,
    signed_amount,
)
from ledgerbook.services.narration import (
    NARRATION_RULES,
    NarrationRule,
    explain_narration,
    infer_narration,
    should_auto_generate_narration,
)
from ledgerbook.services.voucher_log import (
    InMemoryVoucherLog,
    VoucherRepository,
    parse_voucher,
    prepare_voucher,
    validate_voucher,
)
from ledgerbook.services.period_filter import filter_vouchers, fiscal_year_range
from ledgerbook.services.ledger_service import LedgerService

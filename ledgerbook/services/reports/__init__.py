"""
LedgerBook - Report Derivers Package

Pure, stateless report derivers over aggregated balances and voucher streams.

Modules:
- trial_balance: debit/credit columns with suspense handling
- profit_loss: Trading & P&L with display balancing
- balance_sheet: assets, liabilities and equity with current profit
- account_ledger: per-account postings with running balance
- gst_summary: GSTR-3B liability and GSTR-1 document register
- cost_centre: income and expense per cost centre
- advance_tax: annualised slab tax, cess and instalments
"""

from ledgerbook.services.reports.trial_balance import derive_trial_balance
from ledgerbook.services.reports.profit_loss import derive_profit_and_loss, trial_balance_net_profit
from ledgerbook.services.reports.balance_sheet import derive_balance_sheet, current_profit
from ledgerbook.services.reports.account_ledger import derive_account_ledger
from ledgerbook.services.reports.gst_summary import derive_gst_summary
from ledgerbook.services.reports.cost_centre import derive_cost_centre_summary
from ledgerbook.services.reports.advance_tax import (
    AdvanceTaxCalculator,
    TaxEntityType,
    TaxSlab,
    TAX_SLABS,
    calculate_advance_tax,
    months_elapsed,
)

__all__ = [
    "derive_trial_balance",
    "derive_profit_and_loss",
    "trial_balance_net_profit",
    "derive_balance_sheet",
    "current_profit",
    "derive_account_ledger",
    "derive_gst_summary",
    "derive_cost_centre_summary",
    "AdvanceTaxCalculator",
    "TaxEntityType",
    "TaxSlab",
    "TAX_SLABS",
    "calculate_advance_tax",
    "months_elapsed",
]

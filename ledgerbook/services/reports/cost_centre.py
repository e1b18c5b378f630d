"""
LedgerBook - Cost Centre Summary

Income and expense lines grouped by the cost centre they were tagged with.
Income is credit minus debit on Revenue and Other Income accounts; expense
is debit minus credit on Cost of Goods Sold and Expense accounts. Lines on
balance sheet accounts are ignored.
"""

import logging
from typing import Dict, Iterable, Optional

from ledgerbook.schemas.ledger import AccountFamily, DateRange, JournalVoucher
from ledgerbook.schemas.reports import CostCentreRow, CostCentreSummaryReport
from ledgerbook.services.balance_aggregator import ZERO
from ledgerbook.services.chart_of_accounts import CatalogueView

logger = logging.getLogger(__name__)


def derive_cost_centre_summary(
    vouchers: Iterable[JournalVoucher],
    catalogue: CatalogueView,
    tenant_id: str,
    date_range: Optional[DateRange] = None,
) -> CostCentreSummaryReport:
    date_range = date_range or DateRange()
    rows: Dict[str, CostCentreRow] = {}
    unallocated_income = unallocated_expense = ZERO
    warnings = []

    for voucher in vouchers:
        for line in voucher.lines:
            account = catalogue.get(line.account_code)
            if account is None:
                logger.warning(
                    f"Voucher {voucher.voucher_id}: account {line.account_code} not in catalogue, "
                    f"left out of cost centre summary"
                )
                warnings.append(f"{voucher.voucher_id}: unknown account {line.account_code}")
                continue

            family = account.nature.family
            if family == AccountFamily.INCOME:
                income, expense = line.credit - line.debit, ZERO
            elif family == AccountFamily.EXPENSE:
                income, expense = ZERO, line.debit - line.credit
            else:
                continue

            if not line.cost_centre:
                unallocated_income += income
                unallocated_expense += expense
                continue

            row = rows.setdefault(line.cost_centre, CostCentreRow(cost_centre=line.cost_centre))
            row.income += income
            row.expense += expense

    ordered = [rows[name] for name in sorted(rows)]
    for row in ordered:
        row.net = row.income - row.expense

    total_income = sum((row.income for row in ordered), ZERO)
    total_expense = sum((row.expense for row in ordered), ZERO)

    return CostCentreSummaryReport(
        tenant_id=tenant_id,
        start_date=date_range.start,
        end_date=date_range.end,
        rows=ordered,
        total_income=total_income,
        total_expense=total_expense,
        total_net=total_income - total_expense,
        unallocated_income=unallocated_income,
        unallocated_expense=unallocated_expense,
        warnings=warnings,
    )

"""
LedgerBook - Trading & Profit and Loss

Trading account:  revenue (Revenue + Other Income) vs cost of goods sold
P&L account:      gross profit b/d vs operating expenses

Both T-accounts are balanced for display by carrying the profit or loss to
the weaker side; the totals are the larger of the two sides.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from ledgerbook.schemas.ledger import AccountFamily, AccountNature, DateRange
from ledgerbook.schemas.reports import ProfitAndLossReport, StatementLine, TrialBalanceReport
from ledgerbook.services.balance_aggregator import AggregationResult, ZERO
from ledgerbook.services.chart_of_accounts import CatalogueView
from ledgerbook.utils.error_handling import ReconciliationMismatchException

logger = logging.getLogger(__name__)

REVENUE_NATURES = (AccountNature.REVENUE, AccountNature.OTHER_INCOME)
COGS_NATURES = (AccountNature.COST_OF_GOODS_SOLD,)
EXPENSE_NATURES = (AccountNature.EXPENSE,)


def _statement_lines(
    result: AggregationResult,
    catalogue: CatalogueView,
    natures: Sequence[AccountNature],
) -> List[StatementLine]:
    lines = []
    for account in catalogue.accounts_by_nature(*natures):
        amount = result.balance(account.code)
        if amount != 0:
            lines.append(StatementLine(
                account_code=account.code,
                account_name=account.name,
                amount=amount,
            ))
    return lines


def _total(lines: List[StatementLine]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)


def trial_balance_net_profit(trial_balance: TrialBalanceReport) -> Decimal:
    """Net profit implied by the income and expense rows of a trial balance."""
    return sum(
        (
            row.credit - row.debit
            for row in trial_balance.rows
            if row.nature is not None
            and row.nature.family in (AccountFamily.INCOME, AccountFamily.EXPENSE)
        ),
        ZERO,
    )


def derive_profit_and_loss(
    result: AggregationResult,
    catalogue: CatalogueView,
    tenant_id: str,
    date_range: Optional[DateRange] = None,
    trial_balance: Optional[TrialBalanceReport] = None,
) -> ProfitAndLossReport:
    """
    Derive the Trading & P&L statement.

    When `trial_balance` is given (over the same balances), net profit must
    equal credits minus debits across its income and expense rows.
    """
    date_range = date_range or DateRange()

    revenue_lines = _statement_lines(result, catalogue, REVENUE_NATURES)
    cogs_lines = _statement_lines(result, catalogue, COGS_NATURES)
    expense_lines = _statement_lines(result, catalogue, EXPENSE_NATURES)

    total_revenue = _total(revenue_lines)
    total_cogs = _total(cogs_lines)
    total_opex = _total(expense_lines)

    gross_profit = total_revenue - total_cogs
    net_profit = gross_profit - total_opex

    gross_profit_bd = max(gross_profit, ZERO)
    gross_loss_bd = max(-gross_profit, ZERO)
    trading_total = max(total_cogs + gross_profit_bd, total_revenue + gross_loss_bd)
    pl_total = max(
        total_opex + gross_loss_bd + max(net_profit, ZERO),
        gross_profit_bd + max(-net_profit, ZERO),
    )

    warnings = list(result.warnings)
    if trial_balance is not None:
        expected = trial_balance_net_profit(trial_balance)
        if expected != net_profit:
            logger.error(
                f"P&L net profit {net_profit} does not match trial balance {expected} "
                f"for tenant {tenant_id}"
            )
            raise ReconciliationMismatchException(
                report="profit_and_loss",
                expected=expected,
                actual=net_profit,
                warnings=warnings,
            )
        warnings = list(dict.fromkeys(warnings + trial_balance.warnings))

    return ProfitAndLossReport(
        tenant_id=tenant_id,
        start_date=date_range.start,
        end_date=date_range.end,
        revenue_lines=revenue_lines,
        cogs_lines=cogs_lines,
        expense_lines=expense_lines,
        total_revenue=total_revenue,
        total_cogs=total_cogs,
        total_operating_expenses=total_opex,
        gross_profit=gross_profit,
        net_profit=net_profit,
        trading_total=trading_total,
        gross_profit_bd=gross_profit_bd,
        gross_loss_bd=gross_loss_bd,
        pl_total=pl_total,
        warnings=warnings,
    )

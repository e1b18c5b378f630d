"""
LedgerBook - Balance Sheet

Assets, liabilities and equity grouped by display group, with the period's
profit carried to equity.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from ledgerbook.schemas.ledger import AccountFamily, AccountNature, DateRange
from ledgerbook.schemas.reports import BalanceSheetReport, BalanceSheetSection, StatementLine
from ledgerbook.services.balance_aggregator import AggregationResult, ZERO
from ledgerbook.services.chart_of_accounts import CatalogueView

ASSET_NATURES = (
    AccountNature.FIXED_ASSET,
    AccountNature.INVESTMENT,
    AccountNature.CURRENT_ASSET,
    AccountNature.CASH,
    AccountNature.BANK,
)
LIABILITY_NATURES = (AccountNature.LONG_TERM_LIABILITY, AccountNature.CURRENT_LIABILITY)
EQUITY_NATURES = (AccountNature.EQUITY,)


def _sections(
    result: AggregationResult,
    catalogue: CatalogueView,
    natures: Sequence[AccountNature],
) -> List[BalanceSheetSection]:
    grouped: Dict[str, List[StatementLine]] = OrderedDict()
    for nature in natures:
        for account in catalogue.accounts_by_nature(nature):
            amount = result.balance(account.code)
            if amount == 0:
                continue
            grouped.setdefault(account.display_group, []).append(StatementLine(
                account_code=account.code,
                account_name=account.name,
                amount=amount,
            ))
    return [
        BalanceSheetSection(
            group=group,
            lines=lines,
            total=sum((line.amount for line in lines), ZERO),
        )
        for group, lines in grouped.items()
    ]


def current_profit(result: AggregationResult, catalogue: CatalogueView) -> Decimal:
    profit = ZERO
    for account in catalogue:
        amount = result.balance(account.code)
        if account.nature.family == AccountFamily.INCOME:
            profit += amount
        elif account.nature.family == AccountFamily.EXPENSE:
            profit -= amount
    return profit


def derive_balance_sheet(
    result: AggregationResult,
    catalogue: CatalogueView,
    tenant_id: str,
    date_range: Optional[DateRange] = None,
) -> BalanceSheetReport:
    """`result` should be cumulative up to the balance sheet date."""
    date_range = date_range or DateRange()

    assets = _sections(result, catalogue, ASSET_NATURES)
    liabilities = _sections(result, catalogue, LIABILITY_NATURES)
    equity = _sections(result, catalogue, EQUITY_NATURES)

    total_assets = sum((s.total for s in assets), ZERO)
    total_liabilities = sum((s.total for s in liabilities), ZERO)
    total_equity = sum((s.total for s in equity), ZERO)
    profit = current_profit(result, catalogue)
    total_le = total_liabilities + total_equity + profit

    warnings = list(result.warnings)
    if total_assets != total_le:
        warnings.append(
            f"Balance sheet does not balance: assets {total_assets}, "
            f"liabilities and equity {total_le}"
        )

    return BalanceSheetReport(
        tenant_id=tenant_id,
        start_date=date_range.start,
        end_date=date_range.end,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        current_profit=profit,
        total_liabilities_and_equity=total_le,
        warnings=warnings,
    )

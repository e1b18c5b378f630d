"""
LedgerBook - Trial Balance

Each account with a non-zero balance is placed in the debit or credit column
by its nature and sign: a debit-nature account with a negative balance shows
in the credit column and vice versa.

Because every accepted voucher balances, the columns can only differ by the
net of lines the aggregator skipped. A difference explained by skipped lines
is posted to a suspense row with a warning. Any other difference is a
reconciliation failure.
"""

import logging
from typing import Optional

from ledgerbook.config import settings
from ledgerbook.schemas.ledger import DateRange
from ledgerbook.schemas.reports import TrialBalanceReport, TrialBalanceRow
from ledgerbook.services.balance_aggregator import AggregationResult, ZERO
from ledgerbook.services.chart_of_accounts import CatalogueView
from ledgerbook.utils.error_handling import ReconciliationMismatchException

logger = logging.getLogger(__name__)


def derive_trial_balance(
    result: AggregationResult,
    catalogue: CatalogueView,
    tenant_id: str,
    date_range: Optional[DateRange] = None,
    strict: Optional[bool] = None,
) -> TrialBalanceReport:
    strict = settings.trial_balance_strict if strict is None else strict
    date_range = date_range or DateRange()

    rows = []
    for code in sorted(result.balances):
        balance = result.balances[code]
        if balance == 0:
            continue
        account = catalogue.resolve(code)

        if account.nature.is_debit_increasing:
            debit, credit = (balance, ZERO) if balance > 0 else (ZERO, -balance)
        else:
            debit, credit = (ZERO, balance) if balance > 0 else (-balance, ZERO)

        rows.append(TrialBalanceRow(
            account_code=code,
            account_name=account.name,
            nature=account.nature,
            group=account.display_group,
            debit=debit,
            credit=credit,
        ))

    total_debit = sum((row.debit for row in rows), ZERO)
    total_credit = sum((row.credit for row in rows), ZERO)
    difference = total_debit - total_credit
    warnings = list(result.warnings)
    suspense = ZERO

    if difference != 0:
        explained = -(result.skipped_debit - result.skipped_credit)
        if difference == explained:
            warnings.append(
                f"Trial balance differs by {difference} because of skipped lines; "
                f"the difference is held in {settings.suspense_account_name}"
            )
        else:
            message = (
                f"Trial balance does not close: debits {total_debit}, credits {total_credit} "
                f"(skipped lines explain {explained})"
            )
            logger.error(f"{message} for tenant {tenant_id}")
            if strict:
                raise ReconciliationMismatchException(
                    report="trial_balance",
                    expected=total_debit,
                    actual=total_credit,
                    message=message,
                    warnings=warnings,
                )
            warnings.append(message)

        suspense = abs(difference)
        rows.append(TrialBalanceRow(
            account_code=settings.suspense_account_code,
            account_name=settings.suspense_account_name,
            nature=None,
            group=settings.suspense_account_name,
            debit=suspense if difference < 0 else ZERO,
            credit=suspense if difference > 0 else ZERO,
        ))
        total_debit = total_credit = max(total_debit, total_credit)

    return TrialBalanceReport(
        tenant_id=tenant_id,
        start_date=date_range.start,
        end_date=date_range.end,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
        difference=difference,
        suspense_amount=suspense,
        skipped_lines=result.skipped_lines,
        ambiguous_lines=result.ambiguous_lines,
        warnings=warnings,
    )

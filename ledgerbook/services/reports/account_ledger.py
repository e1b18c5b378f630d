"""
LedgerBook - Account Ledger

Postings to one account with a running balance, starting from the balance
brought forward from before the period.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledgerbook.schemas.ledger import Account, DateRange, JournalVoucher
from ledgerbook.schemas.reports import AccountLedgerReport, LedgerPosting
from ledgerbook.services.balance_aggregator import ZERO, signed_amount


def derive_account_ledger(
    account: Account,
    vouchers: Iterable[JournalVoucher],
    tenant_id: str,
    opening_balance: Decimal = ZERO,
    date_range: Optional[DateRange] = None,
) -> AccountLedgerReport:
    date_range = date_range or DateRange()
    running = opening_balance
    total_debit = total_credit = ZERO
    postings = []

    for voucher in vouchers:
        for line in voucher.lines:
            if line.account_code != account.code:
                continue
            running += signed_amount(account.nature, line.debit, line.credit)
            total_debit += line.debit
            total_credit += line.credit
            postings.append(LedgerPosting(
                voucher_id=voucher.voucher_id,
                voucher_date=voucher.voucher_date,
                narration=voucher.narration,
                debit=line.debit,
                credit=line.credit,
                balance=running,
                cost_centre=line.cost_centre,
            ))

    return AccountLedgerReport(
        tenant_id=tenant_id,
        start_date=date_range.start,
        end_date=date_range.end,
        account_code=account.code,
        account_name=account.name,
        nature=account.nature,
        opening_balance=opening_balance,
        postings=postings,
        total_debit=total_debit,
        total_credit=total_credit,
        closing_balance=running,
    )

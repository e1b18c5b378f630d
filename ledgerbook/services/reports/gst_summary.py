"""
LedgerBook - GST Summary

GSTR-3B style liability summary and GSTR-1 style document register.

Vouchers are classified by kind, not only by account, because the GST
payable account is credited by original charges and debited by reversals:

    invoice      output tax       = credits to GST accounts
    credit note  output reversal  = debits to GST accounts
    bill         input tax        = debits to GST accounts
    debit note   input reversal   = credits to GST accounts

    output_tax   = invoice tax - credit note tax
    input_credit = purchase tax - debit note tax
    net_payable  = output_tax - input_credit
"""

import logging
from typing import Iterable, List, Optional

from ledgerbook.config import settings
from ledgerbook.schemas.ledger import (
    AccountNature, AccountSource, DateRange, JournalVoucher, VoucherKind,
)
from ledgerbook.schemas.reports import GSTDocumentRow, GSTSummaryReport
from ledgerbook.services.balance_aggregator import ZERO
from ledgerbook.services.chart_of_accounts import CatalogueView

logger = logging.getLogger(__name__)

OUTWARD_NATURES = frozenset({AccountNature.REVENUE, AccountNature.OTHER_INCOME})
INWARD_NATURES = frozenset({
    AccountNature.COST_OF_GOODS_SOLD,
    AccountNature.EXPENSE,
    AccountNature.FIXED_ASSET,
    AccountNature.CURRENT_ASSET,
})


class _VoucherTotals:
    """Per-voucher debits and credits split into GST and taxable-value lines."""

    def __init__(self, voucher: JournalVoucher, catalogue: CatalogueView, gst_codes: frozenset):
        self.gst_debit = self.gst_credit = ZERO
        self.outward_debit = self.outward_credit = ZERO
        self.inward_debit = self.inward_credit = ZERO
        self.customer_code: Optional[str] = None

        for line in voucher.lines:
            if line.account_code in gst_codes:
                self.gst_debit += line.debit
                self.gst_credit += line.credit
                continue
            account = catalogue.get(line.account_code)
            if account is None:
                continue
            if account.source == AccountSource.PARTY:
                if account.group == "Customer" and self.customer_code is None:
                    self.customer_code = account.code
                continue
            if account.nature in OUTWARD_NATURES:
                self.outward_debit += line.debit
                self.outward_credit += line.credit
            elif account.nature in INWARD_NATURES:
                self.inward_debit += line.debit
                self.inward_credit += line.credit


def derive_gst_summary(
    vouchers: Iterable[JournalVoucher],
    catalogue: CatalogueView,
    tenant_id: str,
    date_range: Optional[DateRange] = None,
    gst_account_codes: Optional[Iterable[str]] = None,
) -> GSTSummaryReport:
    date_range = date_range or DateRange()
    gst_codes = frozenset(gst_account_codes or settings.gst_account_codes)

    outward_value = invoice_tax = ZERO
    cn_value = cn_tax = ZERO
    inward_value = purchase_tax = debit_note_tax = ZERO
    ledger_balance = ZERO
    documents: List[GSTDocumentRow] = []

    for voucher in vouchers:
        totals = _VoucherTotals(voucher, catalogue, gst_codes)
        ledger_balance += totals.gst_credit - totals.gst_debit

        if voucher.kind == VoucherKind.INVOICE:
            taxable, tax = totals.outward_credit, totals.gst_credit
            outward_value += taxable
            invoice_tax += tax
        elif voucher.kind == VoucherKind.CREDIT_NOTE:
            taxable, tax = totals.outward_debit, totals.gst_debit
            cn_value += taxable
            cn_tax += tax
        elif voucher.kind == VoucherKind.BILL:
            inward_value += totals.inward_debit
            purchase_tax += totals.gst_debit
            continue
        elif voucher.kind == VoucherKind.DEBIT_NOTE:
            inward_value -= totals.inward_credit
            debit_note_tax += totals.gst_credit
            continue
        else:
            continue

        party_id = voucher.party_id or totals.customer_code
        documents.append(GSTDocumentRow(
            voucher_id=voucher.voucher_id,
            voucher_date=voucher.voucher_date,
            kind=voucher.kind,
            party_id=party_id,
            party_name=catalogue.name_of(party_id) if party_id else None,
            taxable_value=taxable,
            tax=tax,
        ))

    output_tax = invoice_tax - cn_tax
    input_credit = purchase_tax - debit_note_tax
    net_payable = output_tax - input_credit

    warnings = []
    if ledger_balance != net_payable:
        warnings.append(
            f"GST ledger balance {ledger_balance} differs from net GST payable {net_payable}; "
            f"journal vouchers post to GST accounts directly"
        )
        logger.warning(f"{warnings[-1]} (tenant {tenant_id})")

    return GSTSummaryReport(
        tenant_id=tenant_id,
        start_date=date_range.start,
        end_date=date_range.end,
        outward_taxable_value=outward_value,
        invoice_tax=invoice_tax,
        credit_note_taxable_value=cn_value,
        credit_note_tax=cn_tax,
        inward_taxable_value=inward_value,
        purchase_tax=purchase_tax,
        debit_note_tax=debit_note_tax,
        output_tax=output_tax,
        input_credit=input_credit,
        net_payable=net_payable,
        cash_payable=max(net_payable, ZERO),
        credit_carried_forward=max(-net_payable, ZERO),
        gst_ledger_balance=ledger_balance,
        documents=documents,
        warnings=warnings,
    )

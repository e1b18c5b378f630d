"""
LedgerBook - Reports Router

API endpoints for derived financial reports.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from ledgerbook.dependencies import get_date_range, get_ledger_service
from ledgerbook.schemas.ledger import DateRange
from ledgerbook.schemas.reports import (
    AccountLedgerReport, AdvanceTaxProjection, BalanceSheetReport, CostCentreSummaryReport,
    GSTSummaryReport, ProfitAndLossReport, TrialBalanceReport,
)
from ledgerbook.services.ledger_service import LedgerService
from ledgerbook.services.reports import TaxEntityType


router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.get("/trial-balance", response_model=TrialBalanceReport)
async def get_trial_balance(
    strict: Optional[bool] = Query(None, description="Raise on unexplained differences"),
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """Trial balance for the period."""
    return await service.trial_balance(date_range, strict)


@router.get("/profit-loss", response_model=ProfitAndLossReport)
async def get_profit_and_loss(
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """Trading & Profit and Loss account for the period."""
    return await service.profit_and_loss(date_range)


@router.get("/balance-sheet", response_model=BalanceSheetReport)
async def get_balance_sheet(
    as_of: Optional[date] = Query(None, description="Balance sheet date (defaults to all vouchers)"),
    service: LedgerService = Depends(get_ledger_service),
):
    return await service.balance_sheet(as_of)


@router.get("/ledger/{account_code}", response_model=AccountLedgerReport)
async def get_account_ledger(
    account_code: str = Path(..., description="Account code or party id"),
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """Postings to one account with opening and running balances."""
    return await service.account_ledger(account_code, date_range)


@router.get("/gst-summary", response_model=GSTSummaryReport)
async def get_gst_summary(
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """GSTR-3B liability summary and GSTR-1 document register."""
    return await service.gst_summary(date_range)


@router.get("/cost-centres", response_model=CostCentreSummaryReport)
async def get_cost_centre_summary(
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """Income, expense and net result per cost centre."""
    return await service.cost_centre_summary(date_range)


@router.get("/advance-tax", response_model=AdvanceTaxProjection)
async def get_advance_tax(
    as_of: date = Query(..., description="Project from profit booked up to this date"),
    entity_type: TaxEntityType = Query(TaxEntityType.INDIVIDUAL_NEW),
    deductions: Decimal = Query(Decimal("0"), ge=0, description="Deductions (individuals only)"),
    tds_credit: Decimal = Query(Decimal("0"), ge=0, description="TDS/TCS already credited"),
    service: LedgerService = Depends(get_ledger_service),
):
    """Advance-tax projection and instalment schedule."""
    return await service.advance_tax(as_of, entity_type, deductions, tds_credit)

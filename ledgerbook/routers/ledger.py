"""
LedgerBook - Ledger Router

API endpoints for the chart of accounts, parties, journal vouchers and
narration suggestions. All endpoints are scoped by the X-Tenant-ID header.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from ledgerbook.dependencies import get_date_range, get_ledger_service
from ledgerbook.schemas.ledger import (
    Account, AccountCreate, DateRange, JournalVoucherCreate,
    JournalVoucherResponse, NarrationRequest, NarrationResponse, Party,
)
from ledgerbook.schemas.reports import AccountBalancesReport
from ledgerbook.services.ledger_service import LedgerService
from ledgerbook.utils.error_handling import ErrorCode, NotFoundException


router = APIRouter(prefix="/api/v1/ledger", tags=["Ledger"])


# ============================================================================
# CHART OF ACCOUNTS ENDPOINTS
# ============================================================================

@router.get("/accounts", response_model=List[Account])
async def list_accounts(
    service: LedgerService = Depends(get_ledger_service),
):
    """Merged chart of accounts: system, tenant and party accounts."""
    return await service.list_accounts()


@router.post("/accounts", response_model=Account, status_code=status.HTTP_201_CREATED)
async def create_account(
    data: AccountCreate,
    service: LedgerService = Depends(get_ledger_service),
):
    """Create a tenant account. A system account with the same code is overridden."""
    return await service.create_account(data)


@router.post("/parties", response_model=Party, status_code=status.HTTP_201_CREATED)
async def create_party(
    party: Party,
    service: LedgerService = Depends(get_ledger_service),
):
    """Register a customer or vendor sub-ledger."""
    return await service.create_party(party)


# ============================================================================
# VOUCHER ENDPOINTS
# ============================================================================

@router.post("/vouchers", response_model=JournalVoucherResponse, status_code=status.HTTP_201_CREATED)
async def post_voucher(
    data: JournalVoucherCreate,
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Post a journal voucher.

    Rejected whole when unbalanced or referencing unknown accounts. A blank
    narration is inferred from the lines.
    """
    voucher = await service.post_voucher(data)
    return JournalVoucherResponse.from_voucher(voucher)


@router.get("/vouchers", response_model=List[JournalVoucherResponse])
async def list_vouchers(
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """Vouchers in date order."""
    vouchers = await service.list_vouchers(date_range)
    return [JournalVoucherResponse.from_voucher(v) for v in vouchers]


@router.get("/vouchers/{voucher_id}", response_model=JournalVoucherResponse)
async def get_voucher(
    voucher_id: str = Path(..., description="Voucher ID"),
    service: LedgerService = Depends(get_ledger_service),
):
    voucher = await service.vouchers.get(service.tenant_id, voucher_id)
    if voucher is None:
        raise NotFoundException("Voucher", voucher_id, code=ErrorCode.VOUCHER_NOT_FOUND)
    return JournalVoucherResponse.from_voucher(voucher)


@router.post("/narration", response_model=NarrationResponse)
async def suggest_narration(
    request: NarrationRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """Suggest a narration for draft voucher lines."""
    return await service.suggest_narration(request)


@router.get("/balances", response_model=AccountBalancesReport)
async def get_balances(
    account: Optional[List[str]] = Query(None, description="Restrict to these account codes"),
    date_range: DateRange = Depends(get_date_range),
    service: LedgerService = Depends(get_ledger_service),
):
    """Signed balances per account for the period."""
    return await service.account_balances(date_range, account)

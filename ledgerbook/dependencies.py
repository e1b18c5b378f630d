"""
LedgerBook - FastAPI Dependencies

Shared dependencies for tenant scoping, database sessions and the per-request
ledger service.
"""

import re
from datetime import date
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.database import get_async_session
from ledgerbook.schemas.ledger import DateRange
from ledgerbook.services.ledger_service import LedgerService
from ledgerbook.services.period_filter import parse_date_range


TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")


async def get_tenant_id(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-ID"),
) -> str:
    """
    Tenant scope for the request.

    Authentication happens upstream; this only checks that a well-formed
    tenant id was forwarded.
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Tenant-ID header is required",
        )
    if not TENANT_ID_PATTERN.match(x_tenant_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is malformed",
        )
    return x_tenant_id


async def get_date_range(
    start_date: Optional[date] = Query(None, description="Inclusive start date"),
    end_date: Optional[date] = Query(None, description="Inclusive end date"),
) -> DateRange:
    return parse_date_range(start_date, end_date)


async def get_ledger_service(
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_async_session),
) -> LedgerService:
    return LedgerService(db, tenant_id)

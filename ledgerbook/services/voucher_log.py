"""
LedgerBook - Journal Voucher Log

Append-only voucher log with two stores sharing one contract:

- InMemoryVoucherLog: a lock-guarded, date-ordered list per tenant
- VoucherRepository: SQLAlchemy async store, one transaction per voucher

Every voucher is validated before it is accepted:
- every line resolves in the tenant's chart of accounts
- at least two lines and at least one non-zero amount
- amounts carry at most two decimal places and fit a Numeric(18, 2) column
- total debits equal total credits exactly

A voucher that fails any check is rejected whole.
"""

import bisect
import logging
import threading
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, AsyncIterator, Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import select, and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ledgerbook.models.ledger import JournalVoucherRecord, VoucherLineRecord
from ledgerbook.schemas.ledger import DateRange, JournalVoucher, LedgerQuery, VoucherLine
from ledgerbook.schemas.reports import AmbiguousLineNotice
from ledgerbook.services.balance_aggregator import BalanceSnapshotIndex
from ledgerbook.services.chart_of_accounts import CatalogueView
from ledgerbook.services.narration import infer_narration, should_auto_generate_narration
from ledgerbook.utils.error_handling import (
    DuplicateEntryException,
    InvariantViolationException,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Largest value a Numeric(18, 2) amount column holds
MAX_AMOUNT = Decimal("9999999999999999.99")


# =============================================================================
# VALIDATION
# =============================================================================

def validate_voucher(voucher: JournalVoucher, catalogue: CatalogueView) -> List[AmbiguousLineNotice]:
    """
    Check a voucher against the bookkeeping invariants.

    Returns notices for ambiguous lines (both sides set, or both zero); those
    are warnings, not rejections.
    """
    vid = voucher.voucher_id

    if len(voucher.lines) < 2:
        raise InvariantViolationException(
            "A voucher needs at least two lines", voucher_id=vid, field="lines",
        )

    unknown = sorted({line.account_code for line in voucher.lines if line.account_code not in catalogue})
    if unknown:
        raise InvariantViolationException(
            f"Unknown account codes: {', '.join(unknown)}",
            voucher_id=vid,
            details={"account_codes": unknown},
            field="lines",
        )

    for index, line in enumerate(voucher.lines):
        for amount in (line.debit, line.credit):
            if not amount.is_finite() or amount > MAX_AMOUNT:
                raise InvariantViolationException(
                    f"Line {index + 1}: amount {amount} exceeds the largest storable amount {MAX_AMOUNT}",
                    voucher_id=vid,
                    field=f"lines.{index}",
                )
            if amount != amount.quantize(CENT):
                raise InvariantViolationException(
                    f"Line {index + 1}: amount {amount} has more than two decimal places",
                    voucher_id=vid,
                    field=f"lines.{index}",
                )

    total_debit = voucher.total_debit
    total_credit = voucher.total_credit
    if max(total_debit, total_credit) > MAX_AMOUNT:
        raise InvariantViolationException(
            f"Voucher total exceeds the largest storable amount {MAX_AMOUNT}",
            voucher_id=vid,
            details={"total_debit": str(total_debit), "total_credit": str(total_credit)},
        )
    if total_debit == 0 and total_credit == 0:
        raise InvariantViolationException(
            "A voucher needs at least one non-zero amount", voucher_id=vid, field="lines",
        )
    if total_debit != total_credit:
        raise InvariantViolationException(
            f"Voucher is unbalanced. Debit: {total_debit}, Credit: {total_credit}",
            voucher_id=vid,
            details={"total_debit": str(total_debit), "total_credit": str(total_credit)},
        )

    notices = []
    for index, line in enumerate(voucher.lines):
        if line.is_ambiguous:
            logger.warning(
                f"Voucher {vid} line {index + 1} ({line.account_code}) is ambiguous: "
                f"debit {line.debit}, credit {line.credit}"
            )
            notices.append(AmbiguousLineNotice(
                voucher_id=vid,
                line_index=index,
                account_code=line.account_code,
                debit=line.debit,
                credit=line.credit,
            ))
    return notices


def _parse_amount(value: Any) -> Any:
    if isinstance(value, str):
        value = value.replace(",", "").strip() or "0"
        try:
            return Decimal(value)
        except InvalidOperation:
            raise InvariantViolationException(f"Malformed amount '{value}'")
    return value if value is not None else Decimal("0")


def parse_voucher(payload: Mapping[str, Any], tenant_id: Optional[str] = None) -> JournalVoucher:
    """
    Build a voucher from a raw mapping (imports, API payloads).

    Amount strings may contain thousands separators. A malformed date or
    amount is an invariant violation.
    """
    data = dict(payload)
    if tenant_id:
        data["tenant_id"] = tenant_id
    voucher_id = data.get("voucher_id")

    try:
        data["lines"] = [
            {
                **line,
                "debit": _parse_amount(line.get("debit")),
                "credit": _parse_amount(line.get("credit")),
            }
            for line in data.get("lines") or []
        ]
        return JournalVoucher.model_validate(data)
    except InvariantViolationException as e:
        raise InvariantViolationException(e.message, voucher_id=voucher_id)
    except (ValidationError, AttributeError, TypeError) as e:
        raise InvariantViolationException(
            f"Malformed voucher: {e}",
            voucher_id=voucher_id,
        )


def prepare_voucher(
    voucher: JournalVoucher,
    catalogue: CatalogueView,
) -> Tuple[JournalVoucher, List[AmbiguousLineNotice]]:
    """Validate and fill a blank or generic narration."""
    notices = validate_voucher(voucher, catalogue)
    if should_auto_generate_narration(voucher.narration):
        narration = infer_narration(
            voucher.lines,
            catalogue.get,
            catalogue.customer_ids,
            catalogue.vendor_ids,
        )
        voucher = voucher.model_copy(update={"narration": narration})
    return voucher, notices


def _sort_key(voucher: JournalVoucher) -> Tuple[date, str]:
    return voucher.voucher_date, voucher.voucher_id


# =============================================================================
# IN-MEMORY LOG
# =============================================================================

class InMemoryVoucherLog:
    """
    Single-writer, many-reader voucher log.

    Appends replace the tenant's list under a lock; readers iterate whatever
    list was current when they started, so a read never sees half a voucher.
    """

    def __init__(self, snapshots: Optional[BalanceSnapshotIndex] = None):
        self._lock = threading.Lock()
        self._vouchers: Dict[str, List[JournalVoucher]] = {}
        self._ids: Dict[str, set] = {}
        self.snapshots = snapshots

    def append(self, voucher: JournalVoucher, catalogue: CatalogueView) -> str:
        voucher, _ = prepare_voucher(voucher, catalogue)
        tenant_id = voucher.tenant_id

        with self._lock:
            ids = self._ids.setdefault(tenant_id, set())
            if voucher.voucher_id in ids:
                raise DuplicateEntryException("Voucher", "voucher_id", voucher.voucher_id)
            if voucher.reverses and voucher.reverses not in ids:
                raise InvariantViolationException(
                    f"Reversed voucher '{voucher.reverses}' does not exist",
                    voucher_id=voucher.voucher_id,
                    field="reverses",
                )

            current = self._vouchers.get(tenant_id, [])
            updated = list(current)
            bisect.insort(updated, voucher, key=_sort_key)
            self._vouchers[tenant_id] = updated
            ids.add(voucher.voucher_id)

            if self.snapshots is not None:
                self.snapshots.invalidate_from(tenant_id, voucher.voucher_date)

        logger.info(f"Appended voucher {voucher.voucher_id} for tenant {tenant_id}")
        return voucher.voucher_id

    def query(self, tenant_id: str, date_range: Optional[DateRange] = None) -> Iterator[JournalVoucher]:
        """Date-ascending, lazy and restartable. Stops past the range end."""
        vouchers = self._vouchers.get(tenant_id, [])
        date_range = date_range or DateRange()

        start = 0
        if date_range.start:
            start = bisect.bisect_left(vouchers, date_range.start, key=lambda v: v.voucher_date)

        for voucher in vouchers[start:]:
            if date_range.is_past(voucher.voucher_date):
                return
            yield voucher

    def get(self, tenant_id: str, voucher_id: str) -> Optional[JournalVoucher]:
        return next(
            (v for v in self._vouchers.get(tenant_id, []) if v.voucher_id == voucher_id),
            None,
        )

    def __len__(self) -> int:
        return sum(len(vouchers) for vouchers in self._vouchers.values())


# =============================================================================
# SQL STORE
# =============================================================================

class VoucherRepository:
    """Voucher log backed by the journal_vouchers / voucher_lines tables."""

    def __init__(self, db: AsyncSession, snapshots: Optional[BalanceSnapshotIndex] = None):
        self.db = db
        self.snapshots = snapshots

    async def _exists(self, tenant_id: str, voucher_id: str) -> bool:
        result = await self.db.execute(
            select(JournalVoucherRecord.id).where(
                and_(
                    JournalVoucherRecord.tenant_id == tenant_id,
                    JournalVoucherRecord.voucher_number == voucher_id,
                )
            )
        )
        return result.scalar_one_or_none() is not None

    async def append(self, voucher: JournalVoucher, catalogue: CatalogueView) -> JournalVoucher:
        """Validate and insert one voucher with all its lines in one transaction."""
        voucher, _ = prepare_voucher(voucher, catalogue)
        tenant_id = voucher.tenant_id

        if await self._exists(tenant_id, voucher.voucher_id):
            raise DuplicateEntryException("Voucher", "voucher_id", voucher.voucher_id)
        if voucher.reverses and not await self._exists(tenant_id, voucher.reverses):
            raise InvariantViolationException(
                f"Reversed voucher '{voucher.reverses}' does not exist",
                voucher_id=voucher.voucher_id,
                field="reverses",
            )

        record = JournalVoucherRecord(
            tenant_id=tenant_id,
            voucher_number=voucher.voucher_id,
            voucher_date=voucher.voucher_date,
            narration=voucher.narration,
            kind=voucher.kind,
            party_id=voucher.party_id,
            reverses=voucher.reverses,
            total_debit=voucher.total_debit,
            total_credit=voucher.total_credit,
            lines=[
                VoucherLineRecord(
                    line_number=index + 1,
                    account_code=line.account_code,
                    debit_amount=line.debit,
                    credit_amount=line.credit,
                    cost_centre=line.cost_centre,
                )
                for index, line in enumerate(voucher.lines)
            ],
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent writer won the race on the unique voucher number
            await self.db.rollback()
            raise DuplicateEntryException("Voucher", "voucher_id", voucher.voucher_id)

        if self.snapshots is not None:
            self.snapshots.invalidate_from(tenant_id, voucher.voucher_date)

        logger.info(f"Appended voucher {voucher.voucher_id} for tenant {tenant_id}")
        return voucher

    async def get(self, tenant_id: str, voucher_id: str) -> Optional[JournalVoucher]:
        result = await self.db.execute(
            select(JournalVoucherRecord)
            .options(selectinload(JournalVoucherRecord.lines))
            .where(
                and_(
                    JournalVoucherRecord.tenant_id == tenant_id,
                    JournalVoucherRecord.voucher_number == voucher_id,
                )
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None
        return JournalVoucher(
            voucher_id=record.voucher_number,
            tenant_id=record.tenant_id,
            voucher_date=record.voucher_date,
            narration=record.narration,
            kind=record.kind,
            party_id=record.party_id,
            reverses=record.reverses,
            lines=[
                VoucherLine(
                    account_code=line.account_code,
                    debit=line.debit_amount,
                    credit=line.credit_amount,
                    cost_centre=line.cost_centre,
                )
                for line in record.lines
            ],
        )

    async def stream(
        self,
        tenant_id: str,
        date_range: Optional[DateRange] = None,
    ) -> AsyncIterator[JournalVoucher]:
        """
        Yield the tenant's vouchers in date order from a server-side cursor.

        Lines are fetched joined to their voucher and regrouped here, so a
        voucher is only yielded once all its lines have been read.
        """
        date_range = date_range or DateRange()
        stmt = (
            select(
                JournalVoucherRecord.voucher_number,
                JournalVoucherRecord.voucher_date,
                JournalVoucherRecord.narration,
                JournalVoucherRecord.kind,
                JournalVoucherRecord.party_id,
                JournalVoucherRecord.reverses,
                VoucherLineRecord.account_code,
                VoucherLineRecord.debit_amount,
                VoucherLineRecord.credit_amount,
                VoucherLineRecord.cost_centre,
            )
            .join(VoucherLineRecord, VoucherLineRecord.voucher_id == JournalVoucherRecord.id)
            .where(JournalVoucherRecord.tenant_id == tenant_id)
            .order_by(
                JournalVoucherRecord.voucher_date,
                JournalVoucherRecord.voucher_number,
                VoucherLineRecord.line_number,
            )
        )
        if date_range.start:
            stmt = stmt.where(JournalVoucherRecord.voucher_date >= date_range.start)
        if date_range.end:
            stmt = stmt.where(JournalVoucherRecord.voucher_date <= date_range.end)

        result = await self.db.stream(stmt)
        header = None
        lines: List[VoucherLine] = []
        try:
            async for row in result:
                if header is None or row.voucher_number != header.voucher_number:
                    if header is not None:
                        yield self._to_voucher(tenant_id, header, lines)
                    header, lines = row, []
                lines.append(VoucherLine(
                    account_code=row.account_code,
                    debit=row.debit_amount,
                    credit=row.credit_amount,
                    cost_centre=row.cost_centre,
                ))
            if header is not None:
                yield self._to_voucher(tenant_id, header, lines)
        finally:
            await result.close()

    async def count(self, tenant_id: str, date_range: Optional[DateRange] = None) -> int:
        """Number of the tenant's vouchers inside `date_range`."""
        date_range = date_range or DateRange()
        stmt = select(func.count(JournalVoucherRecord.id)).where(
            JournalVoucherRecord.tenant_id == tenant_id
        )
        if date_range.start:
            stmt = stmt.where(JournalVoucherRecord.voucher_date >= date_range.start)
        if date_range.end:
            stmt = stmt.where(JournalVoucherRecord.voucher_date <= date_range.end)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def query(self, query: LedgerQuery) -> List[JournalVoucher]:
        return [voucher async for voucher in self.stream(query.tenant_id, query.date_range)]

    @staticmethod
    def _to_voucher(tenant_id: str, header, lines: List[VoucherLine]) -> JournalVoucher:
        return JournalVoucher(
            voucher_id=header.voucher_number,
            tenant_id=tenant_id,
            voucher_date=header.voucher_date,
            narration=header.narration,
            kind=header.kind,
            party_id=header.party_id,
            reverses=header.reverses,
            lines=lines,
        )

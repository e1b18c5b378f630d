"""
LedgerBook - Period & Scope Filter

Restricts a date-ordered voucher sequence to one tenant and one date range.
The input must be sorted by date; iteration stops at the first voucher past
the end of the range.
"""

import calendar
from datetime import date, timedelta
from itertools import dropwhile, takewhile
from typing import AsyncIterator, Iterable, Iterator, Optional

from ledgerbook.config import settings
from ledgerbook.schemas.ledger import DateRange, JournalVoucher, LedgerQuery


def filter_vouchers(
    vouchers: Iterable[JournalVoucher],
    query: LedgerQuery,
) -> Iterator[JournalVoucher]:
    """Lazily yield the tenant's vouchers inside the query's date range."""
    date_range = query.date_range
    scoped = (v for v in vouchers if v.tenant_id == query.tenant_id)
    if date_range.start:
        scoped = dropwhile(lambda v: v.voucher_date < date_range.start, scoped)
    return takewhile(lambda v: not date_range.is_past(v.voucher_date), scoped)


async def afilter_vouchers(
    vouchers: AsyncIterator[JournalVoucher],
    query: LedgerQuery,
) -> AsyncIterator[JournalVoucher]:
    """Async counterpart of `filter_vouchers`."""
    date_range = query.date_range
    async for voucher in vouchers:
        if voucher.tenant_id != query.tenant_id:
            continue
        if date_range.is_past(voucher.voucher_date):
            break
        if date_range.contains(voucher.voucher_date):
            yield voucher


def before(date_range: DateRange) -> Optional[DateRange]:
    """Range covering everything before `date_range` starts, for opening balances."""
    if date_range.start is None:
        return None
    return DateRange(end=date_range.start - timedelta(days=1))


def month_end_on_or_before(day: date) -> Optional[date]:
    """Last month-end on or before `day`; None when `day` falls in the first month of the calendar."""
    if day.day == calendar.monthrange(day.year, day.month)[1]:
        return day
    first = day.replace(day=1)
    if first == date.min:
        return None
    return first - timedelta(days=1)


def fiscal_year_start(day: date, start_month: Optional[int] = None) -> date:
    start_month = start_month or settings.fiscal_year_start_month
    year = day.year if day.month >= start_month else day.year - 1
    return date(year, start_month, 1)


def fiscal_year_range(day: date, start_month: Optional[int] = None) -> DateRange:
    """The fiscal year containing `day`."""
    start = fiscal_year_start(day, start_month)
    end = date(start.year + 1, start.month, 1) - timedelta(days=1)
    return DateRange(start=start, end=end)


def parse_date_range(start_date: Optional[date], end_date: Optional[date]) -> DateRange:
    """Build a range from optional query parameters. Raises on start > end."""
    return DateRange(start=start_date, end=end_date)

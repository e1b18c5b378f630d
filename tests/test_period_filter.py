"""
LedgerBook - Period Filter Tests
"""

from datetime import date

import pytest

from ledgerbook.schemas.ledger import DateRange, LedgerQuery
from ledgerbook.services.period_filter import (
    afilter_vouchers,
    before,
    filter_vouchers,
    fiscal_year_range,
    fiscal_year_start,
    month_end_on_or_before,
    parse_date_range,
)
from ledgerbook.utils.error_handling import ErrorCode, InvalidDateRangeException


def guarded(vouchers):
    """Yield vouchers, then fail if the consumer keeps reading."""
    yield from vouchers
    raise AssertionError("read past the end of the range")


class TestDateRange:
    """Inclusive, optionally open-ended ranges."""

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidDateRangeException) as exc_info:
            DateRange(start=date(2024, 5, 1), end=date(2024, 4, 1))

        assert exc_info.value.code == ErrorCode.INVALID_DATE_RANGE
        assert exc_info.value.status_code == 422

    def test_single_day_range(self):
        day = date(2024, 4, 1)
        assert DateRange(start=day, end=day).contains(day)

    def test_open_range(self):
        date_range = DateRange()

        assert date_range.is_open
        assert date_range.contains(date(1999, 1, 1))
        assert not date_range.is_past(date(2999, 1, 1))

    def test_parse_date_range(self):
        assert parse_date_range(None, date(2024, 4, 30)) == DateRange(end=date(2024, 4, 30))
        with pytest.raises(InvalidDateRangeException):
            parse_date_range(date(2024, 4, 30), date(2024, 4, 1))


class TestFilterVouchers:
    """Tenant scoping and early termination."""

    def test_filters_tenant_and_range(self, sample_vouchers, make_voucher):
        other = make_voucher(
            "JV-X", date(2024, 4, 12),
            ("6020", "1", "0"),
            ("1510", "0", "1"),
            tenant_id="tenant-b",
        )
        vouchers = sorted(sample_vouchers + [other], key=lambda v: v.voucher_date)
        query = LedgerQuery(
            tenant_id="tenant-a",
            date_range=DateRange(start=date(2024, 4, 10), end=date(2024, 4, 15)),
        )

        ids = [v.voucher_id for v in filter_vouchers(vouchers, query)]

        assert ids == ["INV-0001", "BILL-0001"]

    def test_stops_at_first_voucher_past_end(self, sample_vouchers):
        query = LedgerQuery(tenant_id="tenant-a", date_range=DateRange(end=date(2024, 4, 15)))

        ids = [v.voucher_id for v in filter_vouchers(guarded(sample_vouchers), query)]

        assert ids == ["JV-0001", "INV-0001", "BILL-0001"]

    @pytest.mark.asyncio
    async def test_async_filter(self, sample_vouchers):
        async def stream():
            for voucher in sample_vouchers:
                yield voucher
            raise AssertionError("read past the end of the range")

        query = LedgerQuery(
            tenant_id="tenant-a",
            date_range=DateRange(start=date(2024, 4, 2), end=date(2024, 4, 10)),
        )

        ids = [v.voucher_id async for v in afilter_vouchers(stream(), query)]

        assert ids == ["INV-0001"]

    def test_query_helpers(self):
        query = LedgerQuery(tenant_id="tenant-a", account_filter=frozenset({"1510"}))
        narrowed = query.with_range(DateRange(end=date(2024, 4, 30)))

        assert narrowed.date_range.end == date(2024, 4, 30)
        assert narrowed.account_filter == frozenset({"1510"})
        assert narrowed.without_account_filter().account_filter is None
        assert query.date_range.is_open


class TestPeriods:
    """Opening-balance and fiscal-year periods."""

    def test_before_range(self):
        prior = before(DateRange(start=date(2024, 4, 1), end=date(2024, 4, 30)))

        assert prior.start is None
        assert prior.end == date(2024, 3, 31)

    def test_before_open_range(self):
        assert before(DateRange(end=date(2024, 4, 30))) is None

    @pytest.mark.parametrize("day,expected", [
        (date(2024, 3, 31), date(2023, 4, 1)),
        (date(2024, 4, 1), date(2024, 4, 1)),
        (date(2025, 1, 15), date(2024, 4, 1)),
    ])
    def test_fiscal_year_start(self, day, expected):
        assert fiscal_year_start(day) == expected

    def test_calendar_fiscal_year(self):
        assert fiscal_year_start(date(2024, 6, 1), start_month=1) == date(2024, 1, 1)

    def test_fiscal_year_range(self):
        fiscal_year = fiscal_year_range(date(2024, 9, 30))

        assert fiscal_year.start == date(2024, 4, 1)
        assert fiscal_year.end == date(2025, 3, 31)

    @pytest.mark.parametrize("day,expected", [
        (date(2024, 4, 30), date(2024, 4, 30)),
        (date(2024, 4, 29), date(2024, 3, 31)),
        (date(2024, 3, 1), date(2024, 2, 29)),
        (date(2025, 2, 28), date(2025, 2, 28)),
        (date(2025, 1, 1), date(2024, 12, 31)),
        (date(1, 1, 15), None),
    ])
    def test_month_end_on_or_before(self, day, expected):
        assert month_end_on_or_before(day) == expected

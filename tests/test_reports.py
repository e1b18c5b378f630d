"""
LedgerBook - Report Deriver Tests

Trial balance, Trading & P&L, balance sheet and account ledger derived from
the April 2024 sample vouchers.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledgerbook.schemas.ledger import DateRange
from ledgerbook.services.balance_aggregator import AggregationResult, aggregate
from ledgerbook.services.reports import (
    current_profit,
    derive_account_ledger,
    derive_balance_sheet,
    derive_profit_and_loss,
    derive_trial_balance,
    trial_balance_net_profit,
)
from ledgerbook.utils.error_handling import ErrorCode, ReconciliationMismatchException


TENANT = "tenant-a"


class TestTrialBalance:
    """Debit and credit columns must close."""

    def test_sample_books_close(self, catalogue, sample_vouchers):
        report = derive_trial_balance(aggregate(sample_vouchers, catalogue), catalogue, TENANT)

        assert report.total_debit == Decimal("116800")
        assert report.total_credit == Decimal("116800")
        assert report.is_balanced
        assert report.difference == Decimal("0")
        assert not report.has_caveats

    def test_columns_follow_nature(self, catalogue, sample_vouchers):
        report = derive_trial_balance(aggregate(sample_vouchers, catalogue), catalogue, TENANT)
        rows = {row.account_code: row for row in report.rows}

        assert rows["1520"].debit == Decimal("98000")
        assert rows["2010"].credit == Decimal("100000")
        assert rows["VEND-001"].credit == Decimal("5900")
        assert rows["CUST-001"].group == "Customer"

    def test_negative_balance_switches_column(self, catalogue, make_voucher):
        voucher = make_voucher(
            "JV-1", date(2024, 4, 1),
            ("6020", "100", "0"),
            ("1510", "0", "100"),
        )
        report = derive_trial_balance(aggregate([voucher], catalogue), catalogue, TENANT)
        rows = {row.account_code: row for row in report.rows}

        assert rows["1510"].credit == Decimal("100")
        assert rows["1510"].debit == Decimal("0")
        assert report.is_balanced

    def test_zero_balances_omitted(self, catalogue, make_voucher):
        vouchers = [
            make_voucher("JV-1", date(2024, 4, 1), ("6020", "100", "0"), ("1510", "0", "100")),
            make_voucher("JV-2", date(2024, 4, 2), ("1510", "100", "0"), ("6020", "0", "100")),
        ]
        report = derive_trial_balance(aggregate(vouchers, catalogue), catalogue, TENANT)

        assert report.rows == []

    def test_skipped_lines_go_to_suspense(self, catalogue, make_voucher):
        voucher = make_voucher(
            "JV-1", date(2024, 4, 1),
            ("6020", "500", "0"),
            ("9998", "0", "500"),
        )
        report = derive_trial_balance(aggregate([voucher], catalogue), catalogue, TENANT)
        suspense = report.rows[-1]

        assert report.difference == Decimal("500")
        assert report.suspense_amount == Decimal("500")
        assert suspense.account_code == "9999"
        assert suspense.nature is None
        assert suspense.credit == Decimal("500")
        assert report.is_balanced
        assert report.has_caveats
        assert len(report.skipped_lines) == 1

    def test_unexplained_difference_raises_when_strict(self, catalogue):
        result = AggregationResult(balances={"6020": Decimal("500")})

        with pytest.raises(ReconciliationMismatchException) as exc_info:
            derive_trial_balance(result, catalogue, TENANT, strict=True)

        assert exc_info.value.code == ErrorCode.RECONCILIATION_MISMATCH
        assert exc_info.value.status_code == 409

    def test_unexplained_difference_is_caveat_when_lenient(self, catalogue):
        result = AggregationResult(balances={"6020": Decimal("500")})

        report = derive_trial_balance(result, catalogue, TENANT, strict=False)

        assert report.has_caveats
        assert report.suspense_amount == Decimal("500")
        assert report.is_balanced

    def test_date_range_on_report(self, catalogue, sample_vouchers):
        date_range = DateRange(start=date(2024, 4, 1), end=date(2024, 4, 30))
        report = derive_trial_balance(
            aggregate(sample_vouchers, catalogue), catalogue, TENANT, date_range,
        )

        assert report.start_date == date(2024, 4, 1)
        assert report.end_date == date(2024, 4, 30)


class TestProfitAndLoss:
    """Gross and net profit with display balancing."""

    def test_profit_case(self, catalogue, sample_vouchers):
        report = derive_profit_and_loss(aggregate(sample_vouchers, catalogue), catalogue, TENANT)

        assert report.total_revenue == Decimal("10000")
        assert report.total_cogs == Decimal("5000")
        assert report.gross_profit == Decimal("5000")
        assert report.total_operating_expenses == Decimal("2000")
        assert report.net_profit == Decimal("3000")
        assert report.is_profit

        # Trading: COGS 5,000 + gross profit c/d 5,000 vs sales 10,000
        assert report.gross_profit_bd == Decimal("5000")
        assert report.gross_loss_bd == Decimal("0")
        assert report.trading_total == Decimal("10000")
        # P&L: rent 2,000 + net profit 3,000 vs gross profit b/d 5,000
        assert report.pl_total == Decimal("5000")

    def test_loss_case(self, catalogue, make_voucher):
        vouchers = [
            make_voucher("JV-1", date(2024, 4, 1), ("1510", "1000", "0"), ("4010", "0", "1000")),
            make_voucher("JV-2", date(2024, 4, 2), ("5050", "3000", "0"), ("1510", "0", "3000")),
            make_voucher("JV-3", date(2024, 4, 3), ("6020", "500", "0"), ("1510", "0", "500")),
        ]
        report = derive_profit_and_loss(aggregate(vouchers, catalogue), catalogue, TENANT)

        assert report.gross_profit == Decimal("-2000")
        assert report.net_profit == Decimal("-2500")
        assert not report.is_profit
        assert report.gross_profit_bd == Decimal("0")
        assert report.gross_loss_bd == Decimal("2000")
        assert report.trading_total == Decimal("3000")
        assert report.pl_total == Decimal("2500")

    def test_other_income_counts_as_revenue(self, catalogue, make_voucher):
        voucher = make_voucher(
            "JV-1", date(2024, 4, 1),
            ("1520", "250", "0"),
            ("4510", "0", "250"),
        )
        report = derive_profit_and_loss(aggregate([voucher], catalogue), catalogue, TENANT)

        assert report.total_revenue == Decimal("250")
        assert [line.account_code for line in report.revenue_lines] == ["4510"]

    def test_reconciles_with_trial_balance(self, catalogue, sample_vouchers):
        result = aggregate(sample_vouchers, catalogue)
        trial_balance = derive_trial_balance(result, catalogue, TENANT)

        report = derive_profit_and_loss(result, catalogue, TENANT, trial_balance=trial_balance)

        assert trial_balance_net_profit(trial_balance) == report.net_profit

    def test_mismatched_trial_balance_raises(self, catalogue, sample_vouchers):
        trial_balance = derive_trial_balance(
            aggregate(sample_vouchers[:2], catalogue), catalogue, TENANT,
        )

        with pytest.raises(ReconciliationMismatchException):
            derive_profit_and_loss(
                aggregate(sample_vouchers, catalogue), catalogue, TENANT, trial_balance=trial_balance,
            )


class TestBalanceSheet:
    """Assets equal liabilities, equity and current profit."""

    def test_sample_books_balance(self, catalogue, sample_vouchers):
        report = derive_balance_sheet(aggregate(sample_vouchers, catalogue), catalogue, TENANT)

        assert report.total_assets == Decimal("109800")
        assert report.total_liabilities == Decimal("6800")
        assert report.total_equity == Decimal("100000")
        assert report.current_profit == Decimal("3000")
        assert report.total_liabilities_and_equity == Decimal("109800")
        assert report.is_balanced
        assert report.warnings == []

    def test_sections_grouped_by_display_group(self, catalogue, sample_vouchers):
        report = derive_balance_sheet(aggregate(sample_vouchers, catalogue), catalogue, TENANT)

        asset_groups = {section.group: section.total for section in report.assets}
        liability_groups = {section.group: section.total for section in report.liabilities}

        assert asset_groups == {"Customer": Decimal("11800"), "Bank": Decimal("98000")}
        assert liability_groups == {"Current Liability": Decimal("900"), "Vendor": Decimal("5900")}

    def test_current_profit(self, catalogue, sample_vouchers):
        assert current_profit(aggregate(sample_vouchers, catalogue), catalogue) == Decimal("3000")

    def test_unbalanced_is_flagged(self, catalogue):
        result = AggregationResult(balances={"1510": Decimal("100")})

        report = derive_balance_sheet(result, catalogue, TENANT)

        assert not report.is_balanced
        assert report.has_caveats


class TestAccountLedger:
    """Postings with running balance."""

    def test_running_balance(self, catalogue, sample_vouchers):
        report = derive_account_ledger(catalogue.resolve("1520"), sample_vouchers, TENANT)

        assert [p.voucher_id for p in report.postings] == ["JV-0001", "JV-0002"]
        assert [p.balance for p in report.postings] == [Decimal("100000"), Decimal("98000")]
        assert report.total_debit == Decimal("100000")
        assert report.total_credit == Decimal("2000")
        assert report.closing_balance == Decimal("98000")

    def test_opening_balance_carried(self, catalogue, sample_vouchers):
        report = derive_account_ledger(
            catalogue.resolve("1520"),
            sample_vouchers[3:],
            TENANT,
            opening_balance=Decimal("100000"),
        )

        assert report.opening_balance == Decimal("100000")
        assert report.closing_balance == Decimal("98000")

    def test_credit_nature_account(self, catalogue, sample_vouchers):
        report = derive_account_ledger(catalogue.resolve("2421"), sample_vouchers, TENANT)

        assert [p.balance for p in report.postings] == [Decimal("1800"), Decimal("900")]

"""
LedgerBook - GST Summary Tests

Output tax, input credit and net payable by voucher kind.
"""

from datetime import date
from decimal import Decimal

from ledgerbook.schemas.ledger import VoucherKind
from ledgerbook.services.reports import derive_gst_summary


TENANT = "tenant-a"


def invoice(make_voucher):
    return make_voucher(
        "INV-0001", date(2024, 4, 10),
        ("CUST-001", "11800", "0"),
        ("4010", "0", "10000"),
        ("2421", "0", "1800"),
    )


def credit_note(make_voucher):
    return make_voucher(
        "CN-0001", date(2024, 4, 12),
        ("4010", "1666.67", "0"),
        ("2421", "300", "0"),
        ("CUST-001", "0", "1966.67"),
    )


def bill(make_voucher):
    return make_voucher(
        "BILL-0001", date(2024, 4, 15),
        ("5050", "5000", "0"),
        ("2421", "900", "0"),
        ("VEND-001", "0", "5900"),
    )


class TestGSTNetting:
    """Invoice tax less credit notes less input credit."""

    def test_net_payable(self, catalogue, make_voucher):
        vouchers = [invoice(make_voucher), credit_note(make_voucher), bill(make_voucher)]

        report = derive_gst_summary(vouchers, catalogue, TENANT)

        assert report.invoice_tax == Decimal("1800")
        assert report.credit_note_tax == Decimal("300")
        assert report.purchase_tax == Decimal("900")
        assert report.output_tax == Decimal("1500")
        assert report.input_credit == Decimal("900")
        assert report.net_payable == Decimal("600")
        assert report.cash_payable == Decimal("600")
        assert report.credit_carried_forward == Decimal("0")
        assert report.gst_ledger_balance == Decimal("600")
        assert report.warnings == []

    def test_taxable_values(self, catalogue, make_voucher):
        vouchers = [invoice(make_voucher), credit_note(make_voucher), bill(make_voucher)]

        report = derive_gst_summary(vouchers, catalogue, TENANT)

        assert report.outward_taxable_value == Decimal("10000")
        assert report.credit_note_taxable_value == Decimal("1666.67")
        assert report.inward_taxable_value == Decimal("5000")

    def test_debit_note_reverses_input_credit(self, catalogue, make_voucher):
        debit_note = make_voucher(
            "DN-0001", date(2024, 4, 20),
            ("VEND-001", "1180", "0"),
            ("5050", "0", "1000"),
            ("2421", "0", "180"),
        )
        vouchers = [invoice(make_voucher), credit_note(make_voucher), bill(make_voucher), debit_note]

        report = derive_gst_summary(vouchers, catalogue, TENANT)

        assert report.debit_note_tax == Decimal("180")
        assert report.input_credit == Decimal("720")
        assert report.net_payable == Decimal("780")
        assert report.inward_taxable_value == Decimal("4000")
        assert report.gst_ledger_balance == Decimal("780")

    def test_excess_input_credit_carried_forward(self, catalogue, make_voucher):
        report = derive_gst_summary([bill(make_voucher)], catalogue, TENANT)

        assert report.net_payable == Decimal("-900")
        assert report.cash_payable == Decimal("0")
        assert report.credit_carried_forward == Decimal("900")

    def test_legacy_gst_code_counted(self, catalogue, make_voucher):
        voucher = make_voucher(
            "INV-0002", date(2024, 4, 10),
            ("CUST-001", "1180", "0"),
            ("4010", "0", "1000"),
            ("2110", "0", "180"),
        )

        report = derive_gst_summary([voucher], catalogue, TENANT)

        assert report.invoice_tax == Decimal("180")

    def test_custom_gst_codes(self, catalogue, make_voucher):
        report = derive_gst_summary(
            [invoice(make_voucher)], catalogue, TENANT, gst_account_codes=["2110"],
        )

        assert report.invoice_tax == Decimal("0")

    def test_explicit_kind_overrides_prefix(self, catalogue, make_voucher):
        voucher = make_voucher(
            "S-0001", date(2024, 4, 10),
            ("CUST-001", "1180", "0"),
            ("4010", "0", "1000"),
            ("2421", "0", "180"),
            kind=VoucherKind.INVOICE,
        )

        report = derive_gst_summary([voucher], catalogue, TENANT)

        assert report.invoice_tax == Decimal("180")


class TestGSTDocuments:
    """GSTR-1 document register."""

    def test_invoices_and_credit_notes_listed(self, catalogue, make_voucher):
        vouchers = [invoice(make_voucher), credit_note(make_voucher), bill(make_voucher)]

        report = derive_gst_summary(vouchers, catalogue, TENANT)

        assert [doc.voucher_id for doc in report.documents] == ["INV-0001", "CN-0001"]
        first = report.documents[0]
        assert first.kind == VoucherKind.INVOICE
        assert first.party_id == "CUST-001"
        assert first.party_name == "Acme Traders"
        assert first.taxable_value == Decimal("10000")
        assert first.tax == Decimal("1800")

    def test_journal_posting_to_gst_is_flagged(self, catalogue, make_voucher):
        settlement = make_voucher(
            "JV-0001", date(2024, 4, 30),
            ("2421", "600", "0"),
            ("1520", "0", "600"),
        )
        vouchers = [invoice(make_voucher), credit_note(make_voucher), bill(make_voucher), settlement]

        report = derive_gst_summary(vouchers, catalogue, TENANT)

        assert report.net_payable == Decimal("600")
        assert report.gst_ledger_balance == Decimal("0")
        assert report.has_caveats
        assert report.documents[-1].voucher_id == "CN-0001"

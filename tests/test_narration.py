"""
LedgerBook - Narration Inference Tests

The rule ladder is order-sensitive; each test names the rule it expects.
"""

from decimal import Decimal

import pytest

from ledgerbook.schemas.ledger import VoucherLine
from ledgerbook.services.narration import (
    GENERIC_NARRATION,
    LineCategory,
    NARRATION_RULES,
    classify_line,
    explain_narration,
    infer_narration,
    should_auto_generate_narration,
)


def line(code: str, debit: str = "0", credit: str = "0") -> VoucherLine:
    return VoucherLine(account_code=code, debit=Decimal(debit), credit=Decimal(credit))


def explain(catalogue, *lines, rules=NARRATION_RULES):
    return explain_narration(
        lines,
        catalogue.get,
        catalogue.customer_ids,
        catalogue.vendor_ids,
        rules=rules,
    )


def rules_from(name: str):
    names = [rule.name for rule in NARRATION_RULES]
    return NARRATION_RULES[names.index(name):]


class TestClassification:
    """Line categories from nature and party membership."""

    def test_cash_and_bank_by_nature(self, catalogue):
        assert classify_line(line("1510", "1"), catalogue.get).is_(LineCategory.CASH)
        assert classify_line(line("1520", "1"), catalogue.get).is_(LineCategory.BANK)

    def test_bank_takes_precedence_over_customer_membership(self, catalogue):
        classified = classify_line(line("1520", "1"), catalogue.get, customer_ids={"1520"})

        assert classified.is_(LineCategory.BANK)
        assert not classified.is_(LineCategory.CUSTOMER)

    def test_party_membership(self, catalogue):
        assert classify_line(line("CUST-001", "1"), catalogue.get).is_(LineCategory.CUSTOMER)
        assert classify_line(line("VEND-001", "1"), catalogue.get).is_(LineCategory.VENDOR)

    def test_caller_supplied_customer_ids(self, catalogue):
        classified = classify_line(line("1320", "1"), catalogue.get, customer_ids={"1320"})
        assert classified.is_(LineCategory.CUSTOMER)

    def test_cogs_is_expense_and_purchase(self, catalogue):
        classified = classify_line(line("5050", "1"), catalogue.get)
        assert classified.is_(LineCategory.EXPENSE)
        assert classified.is_(LineCategory.PURCHASE)

    def test_unknown_code_is_other(self, catalogue):
        classified = classify_line(line("ZZZ", "1"), catalogue.get)

        assert classified.is_(LineCategory.OTHER)
        assert classified.name == "ZZZ"


class TestRuleLadder:
    """First matching rule wins."""

    def test_receipt_from_customer_in_cash(self, catalogue):
        text, rule = explain(catalogue, line("1510", "1000"), line("CUST-001", credit="1000"))

        assert text == "Received payment from Acme Traders via Cash"
        assert rule == "cash_bank_receipt"

    def test_receipt_into_bank_uses_bank_name(self, catalogue):
        text, _ = explain(catalogue, line("1520", "500"), line("4010", credit="500"))
        assert text == "Received payment from Sales Revenue via HDFC Bank"

    def test_cash_preferred_over_bank_on_same_side(self, catalogue):
        text, _ = explain(
            catalogue,
            line("1520", "500"),
            line("1510", "500"),
            line("4010", credit="1000"),
        )
        assert text == "Received payment from Sales Revenue via Cash"

    def test_payment_for_expense(self, catalogue):
        text, rule = explain(catalogue, line("6020", "2000"), line("1510", credit="2000"))

        assert text == "Payment for Rent Expense via Cash"
        assert rule == "cash_bank_payment"

    def test_payment_for_cogs(self, catalogue):
        text, _ = explain(catalogue, line("5030", "300"), line("1520", credit="300"))
        assert text == "Payment for Carriage Inwards via HDFC Bank"

    def test_paid_to_vendor(self, catalogue):
        text, _ = explain(catalogue, line("VEND-001", "5900"), line("1520", credit="5900"))
        assert text == "Paid to Bharat Supplies via HDFC Bank"

    def test_generic_payment(self, catalogue):
        text, _ = explain(catalogue, line("1030", "45000"), line("1521", credit="45000"))
        assert text == "Payment to Office Equipment via ICICI Bank"

    def test_purchase_from_vendor(self, catalogue):
        text, rule = explain(
            catalogue,
            line("5050", "5000"),
            line("2421", "900"),
            line("VEND-001", credit="5900"),
        )

        assert text == "Purchase from Bharat Supplies"
        assert rule == "purchase"

    def test_sale_to_customer(self, catalogue):
        text, rule = explain(
            catalogue,
            line("CUST-001", "11800"),
            line("4010", credit="10000"),
            line("2421", credit="1800"),
        )

        assert text == "Sale to Acme Traders"
        assert rule == "sale"

    def test_bank_to_bank_matches_receipt_first(self, catalogue):
        """Receipt precedes transfer in the ladder."""
        text, rule = explain(catalogue, line("1520", "10000"), line("1521", credit="10000"))

        assert text == "Received payment from ICICI Bank via HDFC Bank"
        assert rule == "cash_bank_receipt"

    def test_expense_payment_catch_all(self, catalogue):
        text, rule = explain(
            catalogue,
            line("6050", "1200"),
            line("1520", credit="1200"),
            rules=rules_from("expense_payment"),
        )

        assert text == "Payment for Telephone & Internet via HDFC Bank"
        assert rule == "expense_payment"

    def test_bank_transfer(self, catalogue):
        text, rule = explain(
            catalogue,
            line("1520", "10000"),
            line("1521", credit="10000"),
            rules=rules_from("bank_transfer"),
        )

        assert text == "Transfer from HDFC Bank to ICICI Bank"
        assert rule == "bank_transfer"

    def test_two_line_journal(self, catalogue):
        text, rule = explain(catalogue, line("6020", "2000"), line("2430", credit="2000"))

        assert text == "Rent Expense to Expenses Payable"
        assert rule == "two_line"

    def test_two_line_journal_credit_first(self, catalogue):
        text, _ = explain(catalogue, line("2430", credit="2000"), line("6020", "2000"))
        assert text == "Rent Expense to Expenses Payable"

    def test_multi_line_journal(self, catalogue):
        text, rule = explain(
            catalogue,
            line("6020", "500"),
            line("6030", "500"),
            line("2430", credit="1000"),
        )

        assert text == "Journal Entry: Rent Expense to Expenses Payable"
        assert rule == "multi_line"

    def test_fallback_lists_names(self, catalogue):
        text, rule = explain(catalogue, line("6020", "100"))

        assert text == "Journal Entry - Rent Expense"
        assert rule == "fallback"

    def test_all_zero_lines_fall_back_to_generic(self, catalogue):
        text, rule = explain(catalogue, line("6020"), line("1510"))

        assert text == GENERIC_NARRATION
        assert rule == "fallback"

    def test_unknown_codes_use_raw_code(self, catalogue):
        assert infer_narration([line("AAA", "10"), line("BBB", credit="10")], catalogue.get) == "AAA to BBB"

    def test_no_lines(self, catalogue):
        assert infer_narration([], catalogue.get) == GENERIC_NARRATION


class TestAutoGenerate:
    """When a supplied narration is replaced."""

    @pytest.mark.parametrize("narration", [None, "", "   ", "Journal Entry"])
    def test_blank_or_generic_is_replaced(self, narration):
        assert should_auto_generate_narration(narration)

    def test_user_narration_is_kept(self):
        assert not should_auto_generate_narration("Rent for May")

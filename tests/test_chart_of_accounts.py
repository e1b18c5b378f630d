"""
LedgerBook - Chart of Accounts Tests

Merged catalogue: system accounts, tenant overrides and party sub-ledgers.
"""

import pytest

from ledgerbook.schemas.ledger import (
    Account, AccountFamily, AccountNature, AccountSource, NormalBalance, Party, PartyKind,
)
from ledgerbook.services.chart_of_accounts import SYSTEM_ACCOUNTS, merge_catalogues
from ledgerbook.utils.error_handling import ErrorCode, UnresolvableAccountException


class TestAccountNature:
    """Sign convention of each account nature."""

    @pytest.mark.parametrize("nature", [
        AccountNature.FIXED_ASSET,
        AccountNature.INVESTMENT,
        AccountNature.CURRENT_ASSET,
        AccountNature.CASH,
        AccountNature.BANK,
        AccountNature.COST_OF_GOODS_SOLD,
        AccountNature.EXPENSE,
    ])
    def test_debit_increasing_natures(self, nature):
        assert nature.is_debit_increasing
        assert nature.normal_balance == NormalBalance.DEBIT

    @pytest.mark.parametrize("nature", [
        AccountNature.LONG_TERM_LIABILITY,
        AccountNature.CURRENT_LIABILITY,
        AccountNature.EQUITY,
        AccountNature.REVENUE,
        AccountNature.OTHER_INCOME,
    ])
    def test_credit_increasing_natures(self, nature):
        assert not nature.is_debit_increasing
        assert nature.normal_balance == NormalBalance.CREDIT

    def test_families(self):
        assert AccountNature.BANK.family == AccountFamily.ASSET
        assert AccountNature.OTHER_INCOME.family == AccountFamily.INCOME
        assert AccountNature.COST_OF_GOODS_SOLD.family == AccountFamily.EXPENSE


class TestSystemCatalogue:
    """Resolving codes against the shared system catalogue."""

    def test_resolve_system_account(self, catalogue):
        account = catalogue.resolve("1510")

        assert account.name == "Cash on Hand"
        assert account.nature == AccountNature.CASH
        assert account.source == AccountSource.SYSTEM

    def test_resolve_unknown_code_raises(self, catalogue):
        with pytest.raises(UnresolvableAccountException) as exc_info:
            catalogue.resolve("0000")

        assert exc_info.value.code == ErrorCode.ACCOUNT_NOT_FOUND
        assert exc_info.value.status_code == 404

    def test_get_unknown_code_returns_none(self, catalogue):
        assert catalogue.get("0000") is None
        assert catalogue.name_of("0000") == "0000"

    def test_legacy_tax_codes_present(self, catalogue):
        """Historical vouchers post to 2110/2130/2120."""
        assert catalogue.resolve("2110").name == "GST Payable"
        assert catalogue.resolve("2130").name == "TDS Payable"
        assert catalogue.resolve("2120").name == "TCS Payable"

    def test_iterates_in_code_order(self, catalogue):
        codes = [account.code for account in catalogue]
        assert codes == sorted(codes)

    def test_accounts_by_nature(self, catalogue):
        banks = catalogue.codes_by_nature(AccountNature.BANK)
        assert banks == frozenset({"1520", "1521", "1522"})


class TestShadowingRule:
    """Tenant overrides system; last entry wins inside a source; parties never shadow."""

    def test_tenant_account_overrides_system(self):
        tenant = [Account(code="6020", name="Office Rent", nature=AccountNature.EXPENSE)]
        catalogue = merge_catalogues(SYSTEM_ACCOUNTS, tenant)

        account = catalogue.resolve("6020")
        assert account.name == "Office Rent"
        assert account.source == AccountSource.TENANT
        assert len(catalogue) == len(SYSTEM_ACCOUNTS)

    def test_tenant_account_can_change_nature(self):
        tenant = [Account(code="4530", name="Commission Paid", nature=AccountNature.EXPENSE)]
        catalogue = merge_catalogues(SYSTEM_ACCOUNTS, tenant)

        assert catalogue.resolve("4530").nature == AccountNature.EXPENSE

    def test_duplicate_inside_one_source_last_wins(self):
        tenant = [
            Account(code="7000", name="First", nature=AccountNature.EXPENSE),
            Account(code="7000", name="Second", nature=AccountNature.EXPENSE),
        ]
        catalogue = merge_catalogues(SYSTEM_ACCOUNTS, tenant)

        assert catalogue.resolve("7000").name == "Second"

    def test_new_tenant_account_added(self):
        tenant = [Account(code="6500", name="Software Licences", nature=AccountNature.EXPENSE)]
        catalogue = merge_catalogues(SYSTEM_ACCOUNTS, tenant)

        assert "6500" in catalogue
        assert len(catalogue) == len(SYSTEM_ACCOUNTS) + 1

    def test_party_colliding_with_account_is_dropped(self):
        party = Party(party_id="1510", name="Cash Customer", kind=PartyKind.CUSTOMER)
        catalogue = merge_catalogues(SYSTEM_ACCOUNTS, parties=[party])

        assert catalogue.resolve("1510").nature == AccountNature.CASH
        assert "1510" not in catalogue.customer_ids


class TestParties:
    """Customers and vendors as sub-ledger accounts."""

    def test_customer_is_current_asset(self, catalogue):
        account = catalogue.resolve("CUST-001")

        assert account.nature == AccountNature.CURRENT_ASSET
        assert account.display_group == "Customer"
        assert account.source == AccountSource.PARTY
        assert "CUST-001" in catalogue.customer_ids

    def test_vendor_is_current_liability(self, catalogue):
        account = catalogue.resolve("VEND-001")

        assert account.nature == AccountNature.CURRENT_LIABILITY
        assert account.display_group == "Vendor"
        assert "VEND-001" in catalogue.vendor_ids
        assert "VEND-001" not in catalogue.customer_ids

    def test_display_group_defaults_to_nature(self, catalogue):
        assert catalogue.resolve("6020").display_group == "Expense"

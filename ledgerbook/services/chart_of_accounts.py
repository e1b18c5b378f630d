"""
LedgerBook - Chart of Accounts Service

Shared system catalogue, tenant overrides and customer/vendor sub-ledgers
merged into one read-only view per tenant.

Shadowing rule:
- a tenant account overrides the system account with the same code
- a duplicate code inside one source resolves to the last entry
- a party never shadows a real account (the party is dropped)
"""

import logging
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.models.ledger import LedgerAccount, LedgerParty
from ledgerbook.schemas.ledger import (
    Account, AccountCreate, AccountNature, AccountSource, Party, PartyKind,
)
from ledgerbook.utils.error_handling import (
    DuplicateEntryException,
    UnresolvableAccountException,
)

logger = logging.getLogger(__name__)


def _system(code: str, name: str, nature: AccountNature) -> Account:
    return Account(code=code, name=name, nature=nature, source=AccountSource.SYSTEM)


# =============================================================================
# SYSTEM CATALOGUE
# =============================================================================

# The legacy GST/TDS/TCS payable codes (2110, 2130, 2120) are kept alongside
# 2421/2422/2423 because historical vouchers post to them.
SYSTEM_ACCOUNTS: Sequence[Account] = (
    # Fixed Assets
    _system("1010", "Land & Buildings", AccountNature.FIXED_ASSET),
    _system("1020", "Plant & Machinery", AccountNature.FIXED_ASSET),
    _system("1030", "Office Equipment", AccountNature.FIXED_ASSET),
    _system("1040", "Computers & Laptops", AccountNature.FIXED_ASSET),
    _system("1050", "Furniture & Fixtures", AccountNature.FIXED_ASSET),
    _system("1060", "Vehicles", AccountNature.FIXED_ASSET),
    _system("1090", "Accumulated Depreciation", AccountNature.FIXED_ASSET),
    # Investments
    _system("1210", "Investment in Mutual Funds", AccountNature.INVESTMENT),
    _system("1220", "Investment in Shares", AccountNature.INVESTMENT),
    # Current Assets
    _system("1310", "Inventory", AccountNature.CURRENT_ASSET),
    _system("1320", "Accounts Receivable / Sundry Debtors", AccountNature.CURRENT_ASSET),
    _system("1410", "Loans to Employees", AccountNature.CURRENT_ASSET),
    _system("1420", "Advances to Suppliers", AccountNature.CURRENT_ASSET),
    _system("1450", "Prepaid Expenses", AccountNature.CURRENT_ASSET),
    _system("1460", "TDS Receivable", AccountNature.CURRENT_ASSET),
    _system("1470", "TCS Receivable", AccountNature.CURRENT_ASSET),
    # Cash & Bank
    _system("1510", "Cash on Hand", AccountNature.CASH),
    _system("1520", "HDFC Bank", AccountNature.BANK),
    _system("1521", "ICICI Bank", AccountNature.BANK),
    _system("1522", "SBI Bank", AccountNature.BANK),
    # Equity
    _system("2010", "Owner's Equity / Share Capital", AccountNature.EQUITY),
    _system("2020", "Reserves & Surplus", AccountNature.EQUITY),
    _system("2030", "Retained Earnings", AccountNature.EQUITY),
    _system("2040", "Drawings", AccountNature.EQUITY),
    # Loans
    _system("2210", "Secured Term Loan", AccountNature.LONG_TERM_LIABILITY),
    _system("2220", "Unsecured Loan from Directors", AccountNature.LONG_TERM_LIABILITY),
    _system("2230", "Bank Overdraft / Cash Credit", AccountNature.CURRENT_LIABILITY),
    # Current Liabilities
    _system("2410", "Accounts Payable / Sundry Creditors", AccountNature.CURRENT_LIABILITY),
    _system("2420", "Duties & Taxes Payable", AccountNature.CURRENT_LIABILITY),
    _system("2421", "GST Payable", AccountNature.CURRENT_LIABILITY),
    _system("2110", "GST Payable", AccountNature.CURRENT_LIABILITY),
    _system("2422", "TDS Payable", AccountNature.CURRENT_LIABILITY),
    _system("2130", "TDS Payable", AccountNature.CURRENT_LIABILITY),
    _system("2423", "TCS Payable", AccountNature.CURRENT_LIABILITY),
    _system("2120", "TCS Payable", AccountNature.CURRENT_LIABILITY),
    _system("2430", "Expenses Payable", AccountNature.CURRENT_LIABILITY),
    _system("2440", "Advances from Customers", AccountNature.CURRENT_LIABILITY),
    # Revenue
    _system("4010", "Sales Revenue", AccountNature.REVENUE),
    _system("4020", "Service Revenue", AccountNature.REVENUE),
    _system("4030", "Sales Returns", AccountNature.REVENUE),
    # Other Income
    _system("4510", "Interest Income", AccountNature.OTHER_INCOME),
    _system("4520", "Dividend Income", AccountNature.OTHER_INCOME),
    _system("4530", "Commission Received", AccountNature.OTHER_INCOME),
    # Direct Expenses / COGS
    _system("5010", "Purchases - COGS", AccountNature.COST_OF_GOODS_SOLD),
    _system("5020", "Salaries and Wages - COGS", AccountNature.COST_OF_GOODS_SOLD),
    _system("5030", "Carriage Inwards", AccountNature.COST_OF_GOODS_SOLD),
    _system("5040", "Power & Fuel", AccountNature.COST_OF_GOODS_SOLD),
    _system("5050", "Purchases", AccountNature.COST_OF_GOODS_SOLD),
    # Indirect Expenses
    _system("6010", "Salaries and Wages - Indirect", AccountNature.EXPENSE),
    _system("6020", "Rent Expense", AccountNature.EXPENSE),
    _system("6030", "Office Maintenance", AccountNature.EXPENSE),
    _system("6040", "Printing & Stationery", AccountNature.EXPENSE),
    _system("6050", "Telephone & Internet", AccountNature.EXPENSE),
    _system("6060", "Legal & Professional Fees", AccountNature.EXPENSE),
    _system("6070", "Bank Charges", AccountNature.EXPENSE),
    _system("6080", "Advertising & Marketing", AccountNature.EXPENSE),
    _system("6090", "Travel & Conveyance", AccountNature.EXPENSE),
    _system("6100", "Depreciation Expense", AccountNature.EXPENSE),
    _system("6110", "Insurance Expense", AccountNature.EXPENSE),
    _system("6120", "Miscellaneous Expenses", AccountNature.EXPENSE),
    _system("6130", "Repairs & Maintenance", AccountNature.EXPENSE),
    _system("6140", "Electricity & Water", AccountNature.EXPENSE),
    _system("6150", "Staff Welfare", AccountNature.EXPENSE),
    _system("6160", "Recruitment Expenses", AccountNature.EXPENSE),
    _system("6170", "Subscription & Periodicals", AccountNature.EXPENSE),
    _system("6180", "Donations & Charity", AccountNature.EXPENSE),
    _system("6190", "Rates & Taxes", AccountNature.EXPENSE),
    _system("6200", "Postage & Courier", AccountNature.EXPENSE),
    _system("6210", "Vehicle Maintenance", AccountNature.EXPENSE),
    _system("6220", "IT & Software Expenses", AccountNature.EXPENSE),
    _system("6230", "Training & Development", AccountNature.EXPENSE),
    _system("6240", "Audit Fees", AccountNature.EXPENSE),
    _system("6250", "Commission to Sales Agents", AccountNature.EXPENSE),
    _system("6260", "Freight & Cartage Outward", AccountNature.EXPENSE),
    _system("6270", "Bad Debts", AccountNature.EXPENSE),
    _system("6280", "Loss on Sale of Assets", AccountNature.EXPENSE),
    _system("6290", "Office Refreshments", AccountNature.EXPENSE),
    _system("6300", "Security Expenses", AccountNature.EXPENSE),
    _system("6310", "Website Expenses", AccountNature.EXPENSE),
    _system("6320", "Business Promotion", AccountNature.EXPENSE),
)


# =============================================================================
# MERGED VIEW
# =============================================================================

class CatalogueView:
    """
    Read-only merged catalogue for one tenant.

    Iterates in account-code order. Use `resolve` where an unknown code is an
    error and `get` where it is expected.
    """

    def __init__(self, accounts: Dict[str, Account]):
        self._accounts = dict(sorted(accounts.items()))
        self._customer_ids = frozenset(
            code for code, account in self._accounts.items()
            if account.source == AccountSource.PARTY and account.group == "Customer"
        )
        self._vendor_ids = frozenset(
            code for code, account in self._accounts.items()
            if account.source == AccountSource.PARTY and account.group == "Vendor"
        )
        self._fingerprint = hash(tuple(
            (code, account.nature, account.source, account.group)
            for code, account in self._accounts.items()
        ))

    def __contains__(self, code: object) -> bool:
        return code in self._accounts

    def __iter__(self) -> Iterator[Account]:
        return iter(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)

    def resolve(self, code: str) -> Account:
        account = self._accounts.get(code)
        if account is None:
            raise UnresolvableAccountException(code)
        return account

    def get(self, code: str) -> Optional[Account]:
        return self._accounts.get(code)

    def name_of(self, code: str) -> str:
        """Account or party name, falling back to the raw code."""
        account = self._accounts.get(code)
        return account.name if account else code

    @property
    def fingerprint(self) -> int:
        """Changes whenever an account is added or its nature changes. Stable within a process only."""
        return self._fingerprint

    @property
    def customer_ids(self) -> FrozenSet[str]:
        return self._customer_ids

    @property
    def vendor_ids(self) -> FrozenSet[str]:
        return self._vendor_ids

    def accounts_by_nature(self, *natures: AccountNature) -> List[Account]:
        wanted = set(natures)
        return [account for account in self._accounts.values() if account.nature in wanted]

    def codes_by_nature(self, *natures: AccountNature) -> FrozenSet[str]:
        return frozenset(account.code for account in self.accounts_by_nature(*natures))


def _index_source(accounts: Iterable[Account], source_name: str) -> Dict[str, Account]:
    indexed: Dict[str, Account] = {}
    for account in accounts:
        if account.code in indexed:
            logger.warning(
                f"Duplicate {source_name} account code {account.code}: "
                f"'{account.name}' replaces '{indexed[account.code].name}'"
            )
        indexed[account.code] = account
    return indexed


def merge_catalogues(
    system: Iterable[Account],
    tenant: Iterable[Account] = (),
    parties: Iterable[Party] = (),
) -> CatalogueView:
    """
    Merge the system catalogue, the tenant's own accounts and its parties.

    Tenant accounts override system accounts with the same code. Parties are
    added last and are dropped when their id collides with a real account.
    """
    merged = _index_source(system, "system")

    for code, account in _index_source(tenant, "tenant").items():
        if code in merged:
            logger.info(
                f"Tenant account {code} '{account.name}' overrides system account "
                f"'{merged[code].name}'"
            )
        merged[code] = account.model_copy(update={"source": AccountSource.TENANT})

    party_accounts = _index_source((party.as_account() for party in parties), "party")
    for code, account in party_accounts.items():
        if code in merged:
            logger.warning(
                f"Party id {code} collides with account '{merged[code].name}'; party dropped"
            )
            continue
        merged[code] = account

    return CatalogueView(merged)


# =============================================================================
# PERSISTENCE
# =============================================================================

class ChartOfAccountsService:
    """Loads and maintains a tenant's accounts and parties."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tenant_accounts(self, tenant_id: str) -> List[Account]:
        result = await self.db.execute(
            select(LedgerAccount)
            .where(LedgerAccount.tenant_id == tenant_id)
            .order_by(LedgerAccount.code)
        )
        return [
            Account(code=row.code, name=row.name, nature=row.nature, source=AccountSource.TENANT)
            for row in result.scalars().all()
        ]

    async def get_parties(self, tenant_id: str, kind: Optional[PartyKind] = None) -> List[Party]:
        query = select(LedgerParty).where(LedgerParty.tenant_id == tenant_id)
        if kind:
            query = query.where(LedgerParty.kind == kind)
        query = query.order_by(LedgerParty.party_id)

        result = await self.db.execute(query)
        return [Party.model_validate(row) for row in result.scalars().all()]

    async def load_catalogue(self, tenant_id: str) -> CatalogueView:
        """Build the merged view for one tenant."""
        tenant_accounts = await self.get_tenant_accounts(tenant_id)
        parties = await self.get_parties(tenant_id)
        return merge_catalogues(SYSTEM_ACCOUNTS, tenant_accounts, parties)

    async def create_account(self, tenant_id: str, data: AccountCreate) -> Account:
        """Create a tenant account. Codes are unique per tenant."""
        existing = await self.db.execute(
            select(LedgerAccount.id).where(
                and_(
                    LedgerAccount.tenant_id == tenant_id,
                    LedgerAccount.code == data.code,
                )
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateEntryException("Account", "code", data.code)

        record = LedgerAccount(
            tenant_id=tenant_id,
            code=data.code,
            name=data.name,
            nature=data.nature,
        )
        self.db.add(record)
        await self.db.commit()

        logger.info(f"Created account {data.code} '{data.name}' for tenant {tenant_id}")
        return Account(code=record.code, name=record.name, nature=record.nature, source=AccountSource.TENANT)

    async def create_party(self, tenant_id: str, party: Party) -> Party:
        existing = await self.db.execute(
            select(LedgerParty.id).where(
                and_(
                    LedgerParty.tenant_id == tenant_id,
                    LedgerParty.party_id == party.party_id,
                )
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateEntryException("Party", "party_id", party.party_id)

        self.db.add(LedgerParty(
            tenant_id=tenant_id,
            party_id=party.party_id,
            name=party.name,
            kind=party.kind,
        ))
        await self.db.commit()

        logger.info(f"Created {party.kind.value} {party.party_id} for tenant {tenant_id}")
        return party

"""
LedgerBook - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import ledgerbook.models  # noqa: F401
from ledgerbook.database import Base, get_async_session
from ledgerbook.schemas.ledger import JournalVoucher, Party, PartyKind, VoucherLine
from ledgerbook.services.chart_of_accounts import CatalogueView, SYSTEM_ACCOUNTS, merge_catalogues
from ledgerbook.services.ledger_service import snapshot_index
from main import app


# In-memory SQLite replaces PostgreSQL in tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"

CUSTOMER = Party(party_id="CUST-001", name="Acme Traders", kind=PartyKind.CUSTOMER)
VENDOR = Party(party_id="VEND-001", name="Bharat Supplies", kind=PartyKind.VENDOR)


@pytest.fixture(autouse=True)
def clear_snapshots():
    """The snapshot index is process-wide; start every test empty."""
    snapshot_index.clear()
    yield
    snapshot_index.clear()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def tenant_headers() -> dict:
    return {"X-Tenant-ID": TENANT_ID}


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest.fixture
def catalogue() -> CatalogueView:
    """System chart of accounts with one customer and one vendor."""
    return merge_catalogues(SYSTEM_ACCOUNTS, parties=[CUSTOMER, VENDOR])


def build_voucher(
    voucher_id: str,
    voucher_date: date,
    *lines,
    tenant_id: str = TENANT_ID,
    **kwargs,
) -> JournalVoucher:
    """Build a voucher from (account_code, debit, credit) tuples without validating it."""
    return JournalVoucher(
        voucher_id=voucher_id,
        tenant_id=tenant_id,
        voucher_date=voucher_date,
        lines=[
            VoucherLine(account_code=code, debit=Decimal(debit), credit=Decimal(credit))
            for code, debit, credit in lines
        ],
        **kwargs,
    )


@pytest.fixture
def make_voucher() -> Callable[..., JournalVoucher]:
    return build_voucher


@pytest.fixture
def sample_vouchers() -> list:
    """
    Capital introduced, one sale, one purchase and one rent payment in April 2024.

    Closing balances: bank 98,000; customer 11,800; purchases 5,000; rent 2,000;
    capital 100,000; sales 10,000; GST payable 900; vendor 5,900.
    """
    return [
        build_voucher(
            "JV-0001", date(2024, 4, 1),
            ("1520", "100000", "0"),
            ("2010", "0", "100000"),
        ),
        build_voucher(
            "INV-0001", date(2024, 4, 10),
            ("CUST-001", "11800", "0"),
            ("4010", "0", "10000"),
            ("2421", "0", "1800"),
        ),
        build_voucher(
            "BILL-0001", date(2024, 4, 15),
            ("5050", "5000", "0"),
            ("2421", "900", "0"),
            ("VEND-001", "0", "5900"),
        ),
        build_voucher(
            "JV-0002", date(2024, 4, 20),
            ("6020", "2000", "0"),
            ("1520", "0", "2000"),
        ),
    ]

"""
LedgerBook - Ledger Service

Request-scoped orchestration for one tenant: merged chart of accounts,
voucher posting and report derivation.

The merged catalogue is loaded once per service instance (one request) and
never shared between tenants. Cumulative balances are served from the
snapshot index and only the residual vouchers are folded.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.config import settings
from ledgerbook.schemas.ledger import (
    Account, AccountCreate, DateRange, JournalVoucher, JournalVoucherCreate,
    LedgerQuery, NarrationRequest, NarrationResponse, Party,
)
from ledgerbook.schemas.reports import (
    AccountBalancesReport, AccountLedgerReport, AdvanceTaxProjection, BalanceSheetReport,
    CostCentreSummaryReport, GSTSummaryReport, ProfitAndLossReport, TrialBalanceReport,
)
from ledgerbook.services.balance_aggregator import (
    AggregationResult, BalanceAggregator, BalanceSnapshot, BalanceSnapshotIndex,
)
from ledgerbook.services.chart_of_accounts import (
    CatalogueView, ChartOfAccountsService, merge_catalogues, SYSTEM_ACCOUNTS,
)
from ledgerbook.services.narration import explain_narration
from ledgerbook.services.period_filter import before, fiscal_year_start, month_end_on_or_before
from ledgerbook.services.reports import (
    AdvanceTaxCalculator, TaxEntityType, current_profit, derive_account_ledger,
    derive_balance_sheet, derive_cost_centre_summary, derive_gst_summary, derive_profit_and_loss,
    derive_trial_balance,
)
from ledgerbook.services.voucher_log import VoucherRepository

logger = logging.getLogger(__name__)


# Process-wide; entries are keyed by tenant
snapshot_index = BalanceSnapshotIndex(settings.snapshot_limit_per_tenant)


class LedgerService:
    """Service for ledger operations scoped to one tenant."""

    def __init__(
        self,
        db: AsyncSession,
        tenant_id: str,
        snapshots: Optional[BalanceSnapshotIndex] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.snapshots = snapshots if snapshots is not None else snapshot_index
        self.accounts = ChartOfAccountsService(db)
        self.vouchers = VoucherRepository(db, self.snapshots)
        self._catalogue: Optional[CatalogueView] = None

    # =========================================================================
    # CHART OF ACCOUNTS
    # =========================================================================

    async def catalogue(self) -> CatalogueView:
        if self._catalogue is None:
            self._catalogue = await self.accounts.load_catalogue(self.tenant_id)
        return self._catalogue

    async def list_accounts(self) -> List[Account]:
        return list(await self.catalogue())

    async def create_account(self, data: AccountCreate) -> Account:
        account = await self.accounts.create_account(self.tenant_id, data)
        self._reset_catalogue()
        return account

    async def create_party(self, party: Party) -> Party:
        party = await self.accounts.create_party(self.tenant_id, party)
        self._reset_catalogue()
        return party

    def _reset_catalogue(self) -> None:
        # Snapshots may hold lines skipped under the old catalogue
        self._catalogue = None
        self.snapshots.invalidate_from(self.tenant_id, date.min)

    # =========================================================================
    # VOUCHERS
    # =========================================================================

    async def post_voucher(self, data: JournalVoucherCreate) -> JournalVoucher:
        voucher = JournalVoucher(tenant_id=self.tenant_id, **data.model_dump())
        return await self.vouchers.append(voucher, await self.catalogue())

    async def list_vouchers(self, date_range: Optional[DateRange] = None) -> List[JournalVoucher]:
        return await self.vouchers.query(LedgerQuery(
            tenant_id=self.tenant_id,
            date_range=date_range or DateRange(),
        ))

    async def suggest_narration(self, request: NarrationRequest) -> NarrationResponse:
        """Narration for draft lines; parties in the request extend the stored ones."""
        if request.customers or request.vendors:
            catalogue = merge_catalogues(
                SYSTEM_ACCOUNTS,
                await self.accounts.get_tenant_accounts(self.tenant_id),
                [
                    *await self.accounts.get_parties(self.tenant_id),
                    *request.customers,
                    *request.vendors,
                ],
            )
        else:
            catalogue = await self.catalogue()
        text, rule = explain_narration(
            request.lines,
            catalogue.get,
            catalogue.customer_ids,
            catalogue.vendor_ids,
        )
        return NarrationResponse(narration=text, rule=rule)

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    async def aggregate(self, query: LedgerQuery) -> AggregationResult:
        """Balances over the query's date range and account filter."""
        aggregator = BalanceAggregator(await self.catalogue(), account_filter=query.account_filter)
        await aggregator.fold_stream(self.vouchers.stream(query.tenant_id, query.date_range))
        return aggregator.result()

    async def cumulative_balances(self, as_of: date) -> AggregationResult:
        """
        Balances of every voucher dated on or before `as_of`.

        Snapshots are only kept at month-ends: the balances at the last
        month-end on or before `as_of` come from the snapshot index and the
        remaining days are folded on top without being stored.
        """
        catalogue = await self.catalogue()
        month_end = month_end_on_or_before(as_of)
        opening = await self._month_end_balances(month_end, catalogue) if month_end else None
        if month_end == as_of:
            return opening
        residual = DateRange(
            start=month_end + timedelta(days=1) if month_end else None,
            end=as_of,
        )
        return await self._fold_onto(opening, residual, catalogue)

    async def _month_end_balances(self, month_end: date, catalogue: CatalogueView) -> AggregationResult:
        snapshot, generation = await self._usable_snapshot(month_end, catalogue)
        if snapshot is not None and snapshot.as_of == month_end:
            return snapshot.to_result()

        residual = DateRange(
            start=snapshot.as_of + timedelta(days=1) if snapshot else None,
            end=month_end,
        )
        folded = await self._fold_onto(snapshot.to_result() if snapshot else None, residual, catalogue)
        self.snapshots.store(
            self.tenant_id,
            month_end,
            folded,
            generation=generation,
            catalogue_key=catalogue.fingerprint,
        )
        return folded

    async def _usable_snapshot(
        self,
        day: date,
        catalogue: CatalogueView,
    ) -> Tuple[Optional[BalanceSnapshot], int]:
        """
        Newest snapshot on or before `day` that still matches the log.

        The generation is taken before the snapshot is checked so a fold
        started from it is discarded if an append lands in between. A
        snapshot folded under another catalogue, or whose voucher count no
        longer matches the log (an append from another process), is dropped.
        """
        while True:
            generation = self.snapshots.generation(self.tenant_id)
            snapshot = self.snapshots.latest_on_or_before(self.tenant_id, day)
            if snapshot is None:
                return None, generation
            if snapshot.catalogue_key != catalogue.fingerprint:
                self.snapshots.invalidate_from(self.tenant_id, date.min)
                continue
            logged = await self.vouchers.count(self.tenant_id, DateRange(end=snapshot.as_of))
            if logged == snapshot.vouchers_folded:
                return snapshot, generation
            logger.info(
                f"Snapshot for tenant {self.tenant_id} at {snapshot.as_of} is stale: "
                f"{snapshot.vouchers_folded} vouchers folded, {logged} logged"
            )
            self.snapshots.invalidate_from(self.tenant_id, snapshot.as_of)

    async def _fold_onto(
        self,
        opening: Optional[AggregationResult],
        date_range: DateRange,
        catalogue: CatalogueView,
    ) -> AggregationResult:
        aggregator = BalanceAggregator(
            catalogue,
            opening_balances=opening.balances if opening else None,
        )
        await aggregator.fold_stream(self.vouchers.stream(self.tenant_id, date_range))
        folded = aggregator.result()

        if opening is not None:
            folded.skipped_lines[:0] = opening.skipped_lines
            folded.ambiguous_lines[:0] = opening.ambiguous_lines
            folded.vouchers_folded += opening.vouchers_folded
        return folded

    async def opening_balances(self, date_range: DateRange) -> AggregationResult:
        """Balances brought forward into `date_range`."""
        prior = before(date_range)
        if prior is None:
            return AggregationResult()
        return await self.cumulative_balances(prior.end)

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def account_balances(
        self,
        date_range: Optional[DateRange] = None,
        account_codes: Optional[List[str]] = None,
    ) -> AccountBalancesReport:
        date_range = date_range or DateRange()
        query = LedgerQuery(
            tenant_id=self.tenant_id,
            date_range=date_range,
            account_filter=frozenset(account_codes) if account_codes else None,
        )
        result = await self.aggregate(query)
        return AccountBalancesReport(
            tenant_id=self.tenant_id,
            start_date=date_range.start,
            end_date=date_range.end,
            balances=dict(sorted(result.balances.items())),
            vouchers_folded=result.vouchers_folded,
            skipped_lines=result.skipped_lines,
            ambiguous_lines=result.ambiguous_lines,
            warnings=result.warnings,
        )

    async def trial_balance(
        self,
        date_range: Optional[DateRange] = None,
        strict: Optional[bool] = None,
    ) -> TrialBalanceReport:
        date_range = date_range or DateRange()
        result = await self.aggregate(LedgerQuery(tenant_id=self.tenant_id, date_range=date_range))
        return derive_trial_balance(result, await self.catalogue(), self.tenant_id, date_range, strict)

    async def profit_and_loss(self, date_range: Optional[DateRange] = None) -> ProfitAndLossReport:
        date_range = date_range or DateRange()
        catalogue = await self.catalogue()
        result = await self.aggregate(LedgerQuery(tenant_id=self.tenant_id, date_range=date_range))
        trial_balance = derive_trial_balance(result, catalogue, self.tenant_id, date_range, strict=False)
        return derive_profit_and_loss(result, catalogue, self.tenant_id, date_range, trial_balance)

    async def balance_sheet(self, as_of: Optional[date] = None) -> BalanceSheetReport:
        catalogue = await self.catalogue()
        if as_of is None:
            result = await self.aggregate(LedgerQuery(tenant_id=self.tenant_id))
        else:
            result = await self.cumulative_balances(as_of)
        return derive_balance_sheet(result, catalogue, self.tenant_id, DateRange(end=as_of))

    async def account_ledger(
        self,
        account_code: str,
        date_range: Optional[DateRange] = None,
    ) -> AccountLedgerReport:
        date_range = date_range or DateRange()
        account = (await self.catalogue()).resolve(account_code)
        opening = await self.opening_balances(date_range)
        vouchers = await self.vouchers.query(LedgerQuery(tenant_id=self.tenant_id, date_range=date_range))
        return derive_account_ledger(
            account,
            vouchers,
            self.tenant_id,
            opening_balance=opening.balance(account_code),
            date_range=date_range,
        )

    async def gst_summary(self, date_range: Optional[DateRange] = None) -> GSTSummaryReport:
        date_range = date_range or DateRange()
        vouchers = await self.vouchers.query(LedgerQuery(tenant_id=self.tenant_id, date_range=date_range))
        return derive_gst_summary(vouchers, await self.catalogue(), self.tenant_id, date_range)

    async def cost_centre_summary(self, date_range: Optional[DateRange] = None) -> CostCentreSummaryReport:
        date_range = date_range or DateRange()
        vouchers = await self.vouchers.query(LedgerQuery(tenant_id=self.tenant_id, date_range=date_range))
        return derive_cost_centre_summary(vouchers, await self.catalogue(), self.tenant_id, date_range)

    async def advance_tax(
        self,
        as_of: date,
        entity_type: TaxEntityType = TaxEntityType.INDIVIDUAL_NEW,
        deductions: Decimal = Decimal("0"),
        tds_credit: Decimal = Decimal("0"),
    ) -> AdvanceTaxProjection:
        """Project this fiscal year's tax from profit booked up to `as_of`."""
        period = DateRange(start=fiscal_year_start(as_of), end=as_of)
        result = await self.aggregate(LedgerQuery(tenant_id=self.tenant_id, date_range=period))
        profit = current_profit(result, await self.catalogue())

        logger.debug(f"Advance tax for tenant {self.tenant_id}: profit to {as_of} is {profit}")
        calculator = AdvanceTaxCalculator(entity_type)
        return calculator.project(
            profit,
            as_of,
            tenant_id=self.tenant_id,
            deductions=deductions,
            tds_credit=tds_credit,
            warnings=result.warnings,
        )

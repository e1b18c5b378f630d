"""
LedgerBook - Balance Aggregator

Folds a voucher sequence into signed balances per account code.

Sign convention (every report depends on it):
- debit-increasing natures (assets, cash, bank, COGS, expenses): debit - credit
- all other natures (liabilities, equity, revenue, other income): credit - debit

Unknown account codes are skipped and recorded, never fatal. Ambiguous lines
(both sides set, or both zero) are netted under the sign rule and recorded.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import (
    AsyncIterable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple,
)

from ledgerbook.schemas.ledger import AccountNature, JournalVoucher
from ledgerbook.schemas.reports import AmbiguousLineNotice, SkippedLine
from ledgerbook.services.chart_of_accounts import CatalogueView

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def signed_amount(nature: AccountNature, debit: Decimal, credit: Decimal) -> Decimal:
    if nature.is_debit_increasing:
        return debit - credit
    return credit - debit


@dataclass
class AggregationResult:
    """Balances for one (tenant, date range) plus what was left out."""
    balances: Dict[str, Decimal] = field(default_factory=dict)
    skipped_lines: List[SkippedLine] = field(default_factory=list)
    ambiguous_lines: List[AmbiguousLineNotice] = field(default_factory=list)
    vouchers_folded: int = 0

    def balance(self, code: str) -> Decimal:
        return self.balances.get(code, ZERO)

    @property
    def skipped_debit(self) -> Decimal:
        return sum((line.debit for line in self.skipped_lines), ZERO)

    @property
    def skipped_credit(self) -> Decimal:
        return sum((line.credit for line in self.skipped_lines), ZERO)

    @property
    def warnings(self) -> List[str]:
        warnings = []
        if self.skipped_lines:
            codes = sorted({line.account_code for line in self.skipped_lines})
            warnings.append(
                f"{len(self.skipped_lines)} voucher line(s) skipped for unknown account codes: "
                f"{', '.join(codes)}"
            )
        if self.ambiguous_lines:
            warnings.append(
                f"{len(self.ambiguous_lines)} ambiguous voucher line(s) were netted"
            )
        return warnings


class BalanceAggregator:
    """
    Incremental fold over vouchers.

    Start from `opening_balances` (e.g. a snapshot) and fold the residual
    vouchers on top. The input vouchers are never modified.
    """

    def __init__(
        self,
        catalogue: CatalogueView,
        opening_balances: Optional[Mapping[str, Decimal]] = None,
        account_filter: Optional[Iterable[str]] = None,
    ):
        self.catalogue = catalogue
        self.account_filter: Optional[FrozenSet[str]] = (
            frozenset(account_filter) if account_filter is not None else None
        )
        self._balances: Dict[str, Decimal] = {}
        self._skipped: List[SkippedLine] = []
        self._ambiguous: List[AmbiguousLineNotice] = []
        self._count = 0

        for code, amount in (opening_balances or {}).items():
            if self._wanted(code):
                self._balances[code] = amount

    def _wanted(self, code: str) -> bool:
        return self.account_filter is None or code in self.account_filter

    def fold(self, voucher: JournalVoucher) -> "BalanceAggregator":
        for index, line in enumerate(voucher.lines):
            code = line.account_code
            if not self._wanted(code):
                continue

            account = self.catalogue.get(code)
            if account is None:
                logger.warning(
                    f"Skipping line {index + 1} of voucher {voucher.voucher_id}: "
                    f"unknown account code {code}"
                )
                self._skipped.append(SkippedLine(
                    voucher_id=voucher.voucher_id,
                    line_index=index,
                    account_code=code,
                    debit=line.debit,
                    credit=line.credit,
                ))
                continue

            if line.is_ambiguous:
                logger.warning(
                    f"Netting ambiguous line {index + 1} of voucher {voucher.voucher_id} "
                    f"({code}): debit {line.debit}, credit {line.credit}"
                )
                self._ambiguous.append(AmbiguousLineNotice(
                    voucher_id=voucher.voucher_id,
                    line_index=index,
                    account_code=code,
                    debit=line.debit,
                    credit=line.credit,
                ))

            amount = signed_amount(account.nature, line.debit, line.credit)
            self._balances[code] = self._balances.get(code, ZERO) + amount

        self._count += 1
        return self

    def fold_all(self, vouchers: Iterable[JournalVoucher]) -> "BalanceAggregator":
        for voucher in vouchers:
            self.fold(voucher)
        return self

    async def fold_stream(self, vouchers: AsyncIterable[JournalVoucher]) -> "BalanceAggregator":
        async for voucher in vouchers:
            self.fold(voucher)
        return self

    def result(self) -> AggregationResult:
        return AggregationResult(
            balances=dict(self._balances),
            skipped_lines=list(self._skipped),
            ambiguous_lines=list(self._ambiguous),
            vouchers_folded=self._count,
        )


def aggregate(
    vouchers: Iterable[JournalVoucher],
    catalogue: CatalogueView,
    opening_balances: Optional[Mapping[str, Decimal]] = None,
    account_filter: Optional[Iterable[str]] = None,
) -> AggregationResult:
    """Fold `vouchers` in one call."""
    return (
        BalanceAggregator(catalogue, opening_balances, account_filter)
        .fold_all(vouchers)
        .result()
    )


# =============================================================================
# OPENING BALANCE SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Cumulative balances of every voucher dated on or before `as_of`.

    `vouchers_folded` doubles as a watermark: the snapshot is only current
    while the log still holds exactly that many vouchers up to `as_of`.
    `catalogue_key` is the fingerprint of the catalogue it was folded under.
    """
    tenant_id: str
    as_of: date
    balances: Mapping[str, Decimal]
    skipped_lines: Tuple[SkippedLine, ...] = ()
    ambiguous_lines: Tuple[AmbiguousLineNotice, ...] = ()
    vouchers_folded: int = 0
    catalogue_key: Optional[int] = None

    def to_result(self) -> AggregationResult:
        return AggregationResult(
            balances=dict(self.balances),
            skipped_lines=list(self.skipped_lines),
            ambiguous_lines=list(self.ambiguous_lines),
            vouchers_folded=self.vouchers_folded,
        )


class BalanceSnapshotIndex:
    """
    Per-tenant index of cumulative balance snapshots.

    A report folds only the vouchers after the newest usable snapshot. A
    back-dated append must call `invalidate_from` with the voucher date.

    Every invalidation bumps the tenant's generation. A reader takes the
    generation before it starts folding and passes it to `store`; if an
    append invalidated snapshots in the meantime the fold is discarded.
    Each tenant keeps at most `max_per_tenant` snapshots, least recently
    used evicted first.
    """

    def __init__(self, max_per_tenant: int = 24):
        if max_per_tenant < 1:
            raise ValueError("max_per_tenant must be at least 1")
        self.max_per_tenant = max_per_tenant
        self._lock = threading.Lock()
        self._snapshots: Dict[str, "OrderedDict[date, BalanceSnapshot]"] = {}
        self._generations: Dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(snapshots) for snapshots in self._snapshots.values())

    def count(self, tenant_id: str) -> int:
        with self._lock:
            return len(self._snapshots.get(tenant_id, {}))

    def generation(self, tenant_id: str) -> int:
        with self._lock:
            return self._generations.get(tenant_id, 0)

    def store(
        self,
        tenant_id: str,
        as_of: date,
        result: AggregationResult,
        generation: Optional[int] = None,
        catalogue_key: Optional[int] = None,
    ) -> Optional[BalanceSnapshot]:
        """
        Save `result` as the snapshot at `as_of`.

        Returns None without storing when `generation` is given and the
        tenant has been invalidated since it was taken.
        """
        snapshot = BalanceSnapshot(
            tenant_id=tenant_id,
            as_of=as_of,
            balances=MappingProxyType(dict(result.balances)),
            skipped_lines=tuple(result.skipped_lines),
            ambiguous_lines=tuple(result.ambiguous_lines),
            vouchers_folded=result.vouchers_folded,
            catalogue_key=catalogue_key,
        )
        with self._lock:
            if generation is not None and generation != self._generations.get(tenant_id, 0):
                logger.debug(
                    f"Discarding snapshot for tenant {tenant_id} at {as_of}: "
                    f"log changed while it was folded"
                )
                return None
            snapshots = self._snapshots.setdefault(tenant_id, OrderedDict())
            snapshots[as_of] = snapshot
            snapshots.move_to_end(as_of)
            while len(snapshots) > self.max_per_tenant:
                snapshots.popitem(last=False)
        return snapshot

    def latest_on_or_before(self, tenant_id: str, day: date) -> Optional[BalanceSnapshot]:
        with self._lock:
            snapshots = self._snapshots.get(tenant_id, {})
            candidates = [as_of for as_of in snapshots if as_of <= day]
            if not candidates:
                return None
            as_of = max(candidates)
            snapshots.move_to_end(as_of)
            return snapshots[as_of]

    def invalidate_from(self, tenant_id: str, day: date) -> int:
        """Drop snapshots dated on or after `day`. Returns how many were dropped."""
        with self._lock:
            self._generations[tenant_id] = self._generations.get(tenant_id, 0) + 1
            snapshots = self._snapshots.get(tenant_id, {})
            stale = [as_of for as_of in snapshots if as_of >= day]
            for as_of in stale:
                del snapshots[as_of]
        if stale:
            logger.debug(f"Invalidated {len(stale)} snapshot(s) for tenant {tenant_id} from {day}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._snapshots.clear()
            self._generations.clear()

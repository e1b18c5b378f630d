"""
LedgerBook - Ledger Models

Persistence for the tenant chart of accounts, parties and the append-only
journal voucher log.

System accounts are not stored; they are merged in at read time. Voucher lines
reference accounts by code only, so a line may point at a system account, a
tenant account or a party id.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint, Date, ForeignKey, Index, Integer, String,
    Text, UniqueConstraint, Uuid, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerbook.models.base import BaseModel, Money
from ledgerbook.schemas.ledger import AccountNature, PartyKind, VoucherKind


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================

class LedgerAccount(BaseModel):
    """Tenant-defined account. Overrides a system account with the same code."""

    __tablename__ = "ledger_accounts"

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(40), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    nature: Mapped[AccountNature] = mapped_column(
        SQLEnum(AccountNature, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_ledger_account_code"),
    )

    def __repr__(self) -> str:
        return f"<LedgerAccount({self.code}: {self.name})>"


class LedgerParty(BaseModel):
    """Customer or vendor sub-ledger."""

    __tablename__ = "ledger_parties"

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    party_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    kind: Mapped[PartyKind] = mapped_column(SQLEnum(PartyKind), nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "party_id", name="uq_ledger_party_id"),
    )

    def __repr__(self) -> str:
        return f"<LedgerParty({self.kind.value}: {self.party_id})>"


# =============================================================================
# JOURNAL VOUCHERS
# =============================================================================

class JournalVoucherRecord(BaseModel):
    """
    A posted journal voucher.

    Rows are inserted once and never updated; corrections are new vouchers
    that set `reverses`.
    """

    __tablename__ = "journal_vouchers"

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    voucher_number: Mapped[str] = mapped_column(
        String(64), nullable=False,
        comment="Producer-assigned voucher id (e.g., INV-00042)",
    )
    voucher_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    narration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[VoucherKind] = mapped_column(
        SQLEnum(VoucherKind),
        default=VoucherKind.JOURNAL,
        nullable=False,
    )
    party_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reverses: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True,
        comment="Voucher number this voucher offsets",
    )

    total_debit: Mapped[Decimal] = mapped_column(
        Money(),
        default=Decimal("0.00"),
        nullable=False,
    )
    total_credit: Mapped[Decimal] = mapped_column(
        Money(),
        default=Decimal("0.00"),
        nullable=False,
    )

    lines: Mapped[List["VoucherLineRecord"]] = relationship(
        "VoucherLineRecord",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="VoucherLineRecord.line_number",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "voucher_number", name="uq_journal_voucher_number"),
        Index("ix_jv_tenant_date", "tenant_id", "voucher_date"),
        CheckConstraint("total_debit = total_credit", name="balanced_voucher"),
    )

    def __repr__(self) -> str:
        return f"<JournalVoucherRecord({self.voucher_number} on {self.voucher_date})>"


class VoucherLineRecord(BaseModel):
    """One debit/credit line of a voucher."""

    __tablename__ = "voucher_lines"

    voucher_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("journal_vouchers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    account_code: Mapped[str] = mapped_column(String(64), nullable=False)
    debit_amount: Mapped[Decimal] = mapped_column(
        Money(),
        default=Decimal("0.00"),
        nullable=False,
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Money(),
        default=Decimal("0.00"),
        nullable=False,
    )
    cost_centre: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    voucher: Mapped["JournalVoucherRecord"] = relationship(
        "JournalVoucherRecord", back_populates="lines",
    )

    __table_args__ = (
        UniqueConstraint("voucher_id", "line_number", name="uq_voucher_line_number"),
        Index("ix_vl_account", "account_code"),
        CheckConstraint("debit_amount >= 0 AND credit_amount >= 0", name="non_negative_amounts"),
    )

    def __repr__(self) -> str:
        return f"<VoucherLineRecord({self.account_code} DR: {self.debit_amount}, CR: {self.credit_amount})>"

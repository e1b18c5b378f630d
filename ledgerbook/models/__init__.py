"""
LedgerBook - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from ledgerbook.models.base import BaseModel, TimestampMixin
from ledgerbook.models.ledger import (
    LedgerAccount,
    LedgerParty,
    JournalVoucherRecord,
    VoucherLineRecord,
)

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "LedgerAccount",
    "LedgerParty",
    "JournalVoucherRecord",
    "VoucherLineRecord",
]

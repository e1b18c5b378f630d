"""
LedgerBook - Routers Package

FastAPI route handlers.

Routers:
- ledger: Chart of accounts, parties, vouchers, narration, balances
- reports: Trial balance, P&L, balance sheet, account ledger, GST, advance tax
"""

from ledgerbook.routers import ledger, reports

__all__ = ["ledger", "reports"]

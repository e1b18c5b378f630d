"""
LedgerBook - Double-Entry Ledger & Financial Reporting Engine

Multi-tenant journal voucher log with balance aggregation, trial balance,
Trading & P&L, balance sheet, GST summaries and advance-tax projections.
"""

__version__ = "0.1.0"

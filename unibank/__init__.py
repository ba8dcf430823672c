"""
UniBank Record Store

A single-process record store for a small retail bank: customers, accounts,
credentials and an append-only transaction journal, kept consistent with
colon-delimited text files across restarts. All monetary values use Decimal.
"""

__version__ = "1.0.0"

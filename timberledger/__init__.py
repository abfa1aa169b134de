"""Timber Ledger - record keeping backend for a timber supply chain."""

__version__ = "0.1.0"

"""Ledger domain: money arithmetic, balances, journal and idempotency."""

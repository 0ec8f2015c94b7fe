"""Ledgerline billing backend."""

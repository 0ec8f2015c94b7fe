"""Reconciliation domain: analytics, provider invoices and admin adjustments."""

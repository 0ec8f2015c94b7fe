"""Billing domain: accounts, topups and payment webhooks."""

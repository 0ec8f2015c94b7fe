"""Pricing domain: versioned per-model token prices."""

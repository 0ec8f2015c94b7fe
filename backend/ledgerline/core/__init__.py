"""Core module for the Ledgerline backend."""

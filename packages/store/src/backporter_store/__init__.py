"""Backport history ledger."""

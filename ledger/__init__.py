"""Ledger API: reset, balance queries, and deposit/withdraw/transfer events."""

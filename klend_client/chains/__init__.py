"""Ledger RPC clients."""

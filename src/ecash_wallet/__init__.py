"""Deterministic-secret counter and proof ledger for a Cashu ecash wallet."""

__version__ = "0.1.0"

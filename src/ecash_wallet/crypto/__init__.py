"""Seed derivation, BIP32 keys and deterministic output secrets."""

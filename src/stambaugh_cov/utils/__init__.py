"""Shared helpers (input checks, data loading)."""

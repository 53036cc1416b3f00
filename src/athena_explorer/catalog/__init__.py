"""Athena catalog browsing: tree levels (walker) and flat lookups (search)."""

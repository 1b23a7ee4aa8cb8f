"""Consumers of provider data: reconciliation, caching, scheduling."""

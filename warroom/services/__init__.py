"""Stateless services over normalized snapshots."""

"""Persistence layer for ContextFlow."""

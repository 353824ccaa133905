"""Shared helpers: debug output and cancellation."""

"""State store exceptions."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for state store errors."""


class LockTimeoutError(StoreError):
    """The store lock was not acquired within the bounded wait."""

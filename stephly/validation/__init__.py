"""Validation package."""

from stephly.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]

"""Input validation package."""

from moneymate.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]

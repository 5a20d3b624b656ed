"""
Ledger Errors

Every error carries a human-readable message suitable for showing to the
user. Storage failures are NOT part of this hierarchy: they are raised as
`StorageError` from the storage package and always propagate.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Missing or invalid input (amount <= 0, missing field, bad date)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(LedgerError):
    """Entity absent, or not owned by the caller."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.replace('_', ' ').capitalize()} not found: {entity_id}")


class InvalidStateError(LedgerError):
    """Operation not permitted in the entity's current state."""
    pass


class InsufficientFundsError(LedgerError):
    """
    The shared savings pool cannot cover a goal's target.

    `shortfall` is how much more must be saved.
    """

    def __init__(self, shortfall: Decimal, available: Decimal, required: Decimal):
        self.shortfall = shortfall
        self.available = available
        self.required = required
        super().__init__(
            f"Not enough savings: ${shortfall:,.2f} more needed "
            f"(available ${available:,.2f} of ${required:,.2f})"
        )

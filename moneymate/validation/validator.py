"""
Input Validation

DESIGN DECISION: Every value that reaches the ledger from outside passes
through here first. Validation happens in two stages:

STAGE 1 - FIELD PARSING:
- Required field presence
- Format (ISO dates, YYYY-MM months, decimal amounts)
- Sign (amounts must be positive)

STAGE 2 - MODEL VALIDATION:
- The pydantic model of the entity is built from the parsed fields
- Any schema failure is reported as a ledger ValidationError

IMPORTANT: Validation NEVER silently fixes issues.
A bad value is rejected with a message naming the field.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, TypeVar, Union

import pydantic

from moneymate.errors import ValidationError
from moneymate.models.ledger import MONTH_PATTERN, LedgerEntity, TransactionType


EntityT = TypeVar("EntityT", bound=LedgerEntity)

_MONTH_RE = re.compile(MONTH_PATTERN)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class LedgerValidator:
    """Parses and checks raw input for ledger operations."""

    @staticmethod
    def require_text(value: Optional[str], field: str, max_length: int = 100) -> str:
        """Non-empty, stripped string."""
        if value is None or not str(value).strip():
            raise ValidationError(f"{field} is required", field=field)
        text = str(value).strip()
        if len(text) > max_length:
            raise ValidationError(
                f"{field} must be at most {max_length} characters",
                field=field,
            )
        return text

    @staticmethod
    def parse_amount(value: Any, field: str = "amount") -> Decimal:
        """Strictly positive decimal with at most two decimal places."""
        if value is None or value == "":
            raise ValidationError(f"{field} is required", field=field)
        if isinstance(value, bool):
            raise ValidationError(f"{field} must be a number", field=field)
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number", field=field)
        if not amount.is_finite():
            raise ValidationError(f"{field} must be a number", field=field)
        if amount <= 0:
            raise ValidationError(f"{field} must be a positive number", field=field)
        try:
            cents = amount.quantize(Decimal("0.01"))
        except InvalidOperation:
            # More digits than the decimal context can hold
            raise ValidationError(f"{field} is too large", field=field)
        if amount != cents:
            raise ValidationError(
                f"{field} cannot have more than two decimal places",
                field=field,
            )
        return amount

    @staticmethod
    def parse_date(value: Union[date, str, None], field: str = "date") -> date:
        """A date object or a YYYY-MM-DD string."""
        if value is None or value == "":
            raise ValidationError(f"{field} is required", field=field)
        if isinstance(value, date):
            return value
        text = str(value).strip()
        if not _ISO_DATE_RE.match(text):
            raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", field=field)
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field} is not a valid calendar date", field=field)

    @staticmethod
    def parse_month(value: Optional[str], field: str = "month") -> str:
        """A YYYY-MM string."""
        if value is None or not str(value).strip():
            raise ValidationError(f"{field} is required", field=field)
        text = str(value).strip()
        if not _MONTH_RE.match(text):
            raise ValidationError(f"{field} must be in YYYY-MM format", field=field)
        return text

    @staticmethod
    def month_of(year: Any, month: Any) -> str:
        """Build a YYYY-MM string from numeric year and month."""
        try:
            year_number = int(year)
            month_number = int(month)
        except (TypeError, ValueError):
            raise ValidationError("year and month must be integers", field="month")
        if not 1 <= month_number <= 12:
            raise ValidationError("month must be between 1 and 12", field="month")
        if not 1 <= year_number <= 9999:
            raise ValidationError("year must be between 1 and 9999", field="year")
        return f"{year_number:04d}-{month_number:02d}"

    @staticmethod
    def parse_type(value: Union[TransactionType, str, None], field: str = "type") -> TransactionType:
        """One of income, expense, savings."""
        if value is None or value == "":
            raise ValidationError(f"{field} is required", field=field)
        try:
            return TransactionType(value)
        except ValueError:
            allowed = ", ".join(t.value for t in TransactionType)
            raise ValidationError(f"{field} must be one of: {allowed}", field=field)

    @staticmethod
    def optional_text(value: Optional[str], field: str, max_length: int = 255) -> Optional[str]:
        """Stripped string, or None when blank."""
        if value is None or not str(value).strip():
            return None
        text = str(value).strip()
        if len(text) > max_length:
            raise ValidationError(
                f"{field} must be at most {max_length} characters",
                field=field,
            )
        return text

    @staticmethod
    def build(model: type[EntityT], **data: Any) -> EntityT:
        """
        Stage 2: construct the entity, translating schema failures.
        """
        try:
            return model(**data)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ValidationError(first.get("msg", str(e)), field=field)

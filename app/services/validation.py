"""
Input coercion shared by the ledger services.

Routes already validate through pydantic; these helpers keep the
services safe when called directly (scheduler, scripts, tests).
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Type, TypeVar, Union

from app.domain.errors import ValidationError

E = TypeVar("E", bound=Enum)

# Matches the Numeric(18, 6) money columns
AMOUNT_SCALE = 6
AMOUNT_INTEGER_DIGITS = 12


def parse_enum(enum_cls: Type[E], value: Union[E, str, None], field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except (ValueError, AttributeError):
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}")


def parse_optional_enum(enum_cls: Type[E], value, field: str) -> Optional[E]:
    if value is None or value == "":
        return None
    return parse_enum(enum_cls, value, field)


def parse_amount(value, field: str = "amount") -> Decimal:
    """Positive decimal amount that fits the money columns without rounding"""
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if amount.adjusted() >= AMOUNT_INTEGER_DIGITS:
        raise ValidationError(f"{field} must have at most {AMOUNT_INTEGER_DIGITS} integer digits")
    if amount != amount.quantize(Decimal(1).scaleb(-AMOUNT_SCALE)):
        raise ValidationError(f"{field} must have at most {AMOUNT_SCALE} decimal places")
    return amount


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()
